from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth import PasswordHasher, TokenService, get_current_identity, get_password_hasher, get_token_service
from ..crud import users as users_crud
from ..database import get_db
from ..errors import NotFound, Unauthorized
from ..schemas import AuthResponse, Envelope, Identity, LoginRequest, UserCreate, UserOut, UserWithPurchasesOut

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: UserCreate,
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    tokens: TokenService = Depends(get_token_service),
):
    user = users_crud.create_user(
        db,
        hasher,
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        password=body.password,
    )
    token = tokens.issue(Identity(id=user.id, email=user.email))
    return AuthResponse(data=UserOut.model_validate(user), token=token)


@router.post("/login", response_model=AuthResponse)
def login(
    body: LoginRequest,
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    tokens: TokenService = Depends(get_token_service),
):
    user = users_crud.authenticate(db, hasher, email=body.email, password=body.password)
    if user is None:
        # Same answer for unknown email and wrong password
        raise Unauthorized("Invalid email or password")

    token = tokens.issue(Identity(id=user.id, email=user.email))
    return AuthResponse(data=UserOut.model_validate(user), token=token)


@router.get("", response_model=Envelope[List[UserOut]])
def list_users(
    current_user: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return Envelope(data=users_crud.get_users(db))


@router.get("/{user_id}", response_model=Envelope[UserWithPurchasesOut])
def get_user_with_purchases(
    user_id: int,
    current_user: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    result = users_crud.get_user_with_purchases(db, user_id)
    if result is None:
        raise NotFound("User not found")
    return Envelope(data=result)
