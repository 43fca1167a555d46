from fastapi import APIRouter, Depends

from bluezone.utils.dependencies import get_connection_manager
from bluezone.utils.websocket_manager import ConnectionManager


router = APIRouter(prefix="/presence", tags=["realtime"])


@router.get("/{user_id}")
async def presence(user_id: str, manager: ConnectionManager = Depends(get_connection_manager)):
    """
    Online status as seen by this process: a user is online while at
    least one of their sockets is connected.
    """
    return {"user_id": user_id, "online": manager.is_online(user_id)}
