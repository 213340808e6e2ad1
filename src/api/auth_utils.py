import os
from datetime import UTC, datetime, timedelta
from typing import Any, cast

from jose import jwt

SECRET_KEY = os.environ.get("TOKENS_SECRET_KEY", "dev-secret-unsafe")
ALGORITHM = "HS256"


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
    now_utc: datetime | None = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Claims to encode in the token
        expires_delta: Optional custom expiration delta
        now_utc: Current UTC time (for testing/determinism). Defaults to datetime.now(UTC).
    """
    to_encode = data.copy()
    current_time = now_utc if now_utc is not None else datetime.now(UTC)

    if expires_delta:
        expire = current_time + expires_delta
    else:
        expire = current_time + timedelta(minutes=15)

    to_encode.update({"exp": expire})
    encoded_jwt: str = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def create_admin_token(
    subject: str,
    capabilities: list[str],
    ttl_minutes: int = 60,
    now_utc: datetime | None = None,
) -> str:
    """Issue a token granting the given admin capabilities."""
    return create_access_token(
        {"sub": subject, "caps": capabilities},
        expires_delta=timedelta(minutes=ttl_minutes),
        now_utc=now_utc,
    )


def decode_access_token(token: str) -> dict[str, Any] | None:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        return cast(dict[str, Any], payload)
    except jwt.JWTError:
        return None


def has_capability(payload: dict[str, Any], capability: str) -> bool:
    caps = payload.get("caps")
    return isinstance(caps, list) and capability in caps
