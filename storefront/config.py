import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv


def _bool_env(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "y", "on"}


def _list_env(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [part.strip() for part in raw.split(",") if part.strip()]


@dataclass
class Settings:
    database_url: str = "sqlite:///./storefront.db"
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    password_schemes: List[str] = field(default_factory=lambda: ["argon2", "bcrypt"])
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    sql_echo: bool = False
    log_queries: bool = False
    # Empty disables event publishing
    rabbitmq_url: str = ""
    events_exchange: str = "storefront.events"


def get_settings() -> Settings:
    """Build settings from the environment (and a local .env file, if any)."""
    load_dotenv()

    return Settings(
        database_url=os.getenv("DATABASE_URL", Settings.database_url),
        secret_key=os.getenv("SECRET_KEY", Settings.secret_key),
        algorithm=os.getenv("ALGORITHM", Settings.algorithm),
        access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60")),
        password_schemes=_list_env("PASSWORD_SCHEMES", "argon2,bcrypt"),
        cors_origins=_list_env("CORS_ORIGINS", "*"),
        log_level=os.getenv("LOG_LEVEL", Settings.log_level).upper(),
        sql_echo=_bool_env("SQL_ECHO", False),
        log_queries=_bool_env("LOG_QUERIES", False),
        rabbitmq_url=os.getenv("RABBITMQ_URL", "").strip(),
        events_exchange=os.getenv("EVENTS_EXCHANGE", Settings.events_exchange),
    )
