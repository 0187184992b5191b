# common/security.py
"""
Password hashing and bearer tokens.

Hashing goes through a passlib CryptContext so stored hashes carry their
scheme and can be upgraded transparently (deprecated="auto"). Tokens are
JWTs whose `sub` is the user id; nothing else about the principal is
trusted from the token.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from common.api_error import AuthenticationError
from common.config import SecurityConfig, get_config

pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """False for a wrong password and for unrecognised hash formats."""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


def _security(config: Optional[SecurityConfig]) -> SecurityConfig:
    return config or get_config().security


def create_access_token(
    user_id: str,
    *,
    expires_delta: Optional[timedelta] = None,
    config: Optional[SecurityConfig] = None,
) -> str:
    settings = _security(config)
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(hours=settings.access_token_expire_hours)
    )
    to_encode: dict[str, Any] = {
        "sub": str(user_id),
        "exp": int(expire.timestamp()),
        "iat": int(datetime.now(timezone.utc).timestamp()),
    }
    return jwt.encode(
        to_encode,
        settings.secret_key.get_secret_value(),
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str, config: Optional[SecurityConfig] = None) -> str:
    """
    Validate signature and expiry and return the user id.

    Raises:
        AuthenticationError: token is malformed, expired or has no subject
    """
    settings = _security(config)
    try:
        payload = jwt.decode(
            token,
            settings.secret_key.get_secret_value(),
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        raise AuthenticationError("Invalid or expired token") from e

    subject = payload.get("sub")
    if not subject or not isinstance(subject, str):
        raise AuthenticationError("Invalid token subject")
    return subject


__all__ = [
    "pwd_context",
    "get_password_hash",
    "verify_password",
    "create_access_token",
    "decode_access_token",
]
