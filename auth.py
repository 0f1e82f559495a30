import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol

import jwt
from fastapi import Header, Request

from config import Settings
from errors import InvalidCredentials, InvalidSignature, InvalidToken, Unauthenticated

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class Claims:
    username: str
    expires_at: datetime


class CredentialVerifier(Protocol):
    def verify(self, username: str, password: str) -> bool: ...


class StaticCredentialVerifier:
    """Checks logins against a single configured account."""

    def __init__(self, username: str, password: str):
        self._username = username
        self._password = password

    def verify(self, username: str, password: str) -> bool:
        user_ok = secrets.compare_digest(username.encode(), self._username.encode())
        pass_ok = secrets.compare_digest(password.encode(), self._password.encode())
        return user_ok and pass_ok


def issue_token(username: str, settings: Settings) -> str:
    expire = datetime.now(timezone.utc) + settings.token_ttl
    return jwt.encode(
        {"username": username, "exp": expire},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )


def authenticate(
    username: str, password: str, verifier: CredentialVerifier, settings: Settings
) -> str:
    """Return a signed session token, or raise InvalidCredentials."""
    if not verifier.verify(username, password):
        logger.warning(f"LOGIN FAILED | username={username}")
        raise InvalidCredentials("invalid credentials")

    logger.info(f"LOGIN SUCCESS | username={username}")
    return issue_token(username, settings)


def decode_token(token: str, settings: Settings) -> Claims:
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "username"]},
        )
    except jwt.InvalidSignatureError:
        raise InvalidSignature("invalid token signature")
    except jwt.PyJWTError as e:
        logger.warning(f"Rejected token: {e}")
        raise InvalidToken("invalid token")

    username = payload["username"]
    if not isinstance(username, str) or not username:
        raise InvalidToken("invalid token")

    return Claims(
        username=username,
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )


def bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise Unauthenticated("missing authorization header")
    if not authorization.startswith(BEARER_PREFIX):
        raise Unauthenticated("invalid authorization header")

    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise Unauthenticated("invalid authorization header")
    return token


def require_claims(
    request: Request, authorization: Optional[str] = Header(default=None)
) -> Claims:
    """Dependency guarding protected routes; yields the verified claims."""
    token = bearer_token(authorization)
    return decode_token(token, request.app.state.settings)
