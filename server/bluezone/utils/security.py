from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from bluezone.config import Settings, get_settings
from bluezone.schemas.user import TokenPayload


def create_access_token(subject: str, settings: Optional[Settings] = None, expires_minutes: Optional[int] = None) -> str:
    if settings is None:
        settings = get_settings()
    minutes = expires_minutes if expires_minutes is not None else settings.jwt_expires_minutes
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    payload = {"sub": subject, "exp": int(expire.timestamp())}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Optional[Settings] = None) -> TokenPayload:
    """Raises `jwt.PyJWTError` for a bad signature, expiry or malformed token."""
    if settings is None:
        settings = get_settings()
    payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    return TokenPayload(**payload)
