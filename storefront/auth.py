from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from .errors import Unauthorized
from .schemas import Identity


class PasswordHasher:
    """One-way hash/verify for user passwords."""

    def __init__(self, schemes: Iterable[str] = ("argon2", "bcrypt")):
        self._context = CryptContext(schemes=list(schemes), deprecated="auto")

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, hashed_password: str) -> bool:
        try:
            return self._context.verify(password, hashed_password)
        except ValueError:
            # Unrecognised or malformed stored hash
            return False


class TokenService:
    """Issues and verifies signed, time-bounded identity claims (JWT)."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_minutes: int = 60):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    def issue(self, identity: Identity, expires_delta: Optional[timedelta] = None) -> str:
        to_encode = {"id": identity.id, "email": identity.email}
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=self.expire_minutes))
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> Identity:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            raise Unauthorized("Invalid or expired token", cause=e)

        user_id = payload.get("id")
        email = payload.get("email")
        if not isinstance(user_id, int) or not email:
            raise Unauthorized("Invalid or expired token")
        return Identity(id=user_id, email=email)


# auto_error=False: a missing header is reported as 401 by us, not 403 by FastAPI
bearer_scheme = HTTPBearer(auto_error=False)


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    tokens: TokenService = Depends(get_token_service),
) -> Identity:
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Missing or invalid authorization header")
    return tokens.verify(credentials.credentials)
