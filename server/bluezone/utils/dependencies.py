from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError
from starlette.requests import HTTPConnection

from bluezone.config import Settings, get_settings
from bluezone.database.connection import mongo_db_dependency
from bluezone.repositories.user_repository import UserRepository
from bluezone.utils.security import decode_access_token
from bluezone.utils.websocket_manager import ConnectionManager


bearer_scheme = HTTPBearer(auto_error=False)


def get_app_settings(conn: HTTPConnection) -> Settings:
    return getattr(conn.app.state, "settings", None) or get_settings()


def get_connection_manager(conn: HTTPConnection) -> ConnectionManager:
    return conn.app.state.connections


async def authenticate_token(token: str, db: AsyncIOMotorDatabase, settings: Settings) -> Optional[dict]:
    """User document for a valid token of an active user, else None."""
    try:
        payload = decode_access_token(token, settings)
    except (jwt.PyJWTError, ValidationError):
        return None
    user = await UserRepository(db).get_user_by_id(payload.sub)
    if not user or user.get("suspended"):
        return None
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db=Depends(mongo_db_dependency),
    settings: Settings = Depends(get_app_settings),
) -> dict:
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    user = await authenticate_token(credentials.credentials, db, settings)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or suspended user")
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db=Depends(mongo_db_dependency),
    settings: Settings = Depends(get_app_settings),
) -> Optional[dict]:
    if credentials is None:
        return None
    return await authenticate_token(credentials.credentials, db, settings)
