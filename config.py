import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    database_url: str
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    token_ttl: timedelta = timedelta(hours=24)
    admin_username: str = "admin"
    admin_password: str = "password"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    sql_echo: bool = False


def _require(name: str) -> str:
    value = os.environ.get(name)
    if not value:
        raise ValueError(f"{name} is not set. Please check your .env file.")
    return value


def load_settings() -> Settings:
    """Read settings from the environment, loading a .env file first if present."""
    load_dotenv()

    origins = os.environ.get("CORS_ORIGINS", "*")

    return Settings(
        database_url=_require("DATABASE_URL"),
        jwt_secret=_require("JWT_SECRET"),
        token_ttl=timedelta(hours=int(os.environ.get("TOKEN_TTL_HOURS", "24"))),
        admin_username=os.environ.get("ADMIN_USERNAME", "admin"),
        admin_password=os.environ.get("ADMIN_PASSWORD", "password"),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        sql_echo=os.environ.get("SQL_ECHO", "false").lower() in ("1", "true", "yes"),
    )
