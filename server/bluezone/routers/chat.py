import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from bluezone.database.connection import mongo_db_dependency
from bluezone.routers.conversations import get_chat_service
from bluezone.schemas.chat import SocketFrame, SocketMessage, TypingSignal
from bluezone.services.chat_service import ChatService
from bluezone.utils.dependencies import authenticate_token, get_app_settings, get_connection_manager
from bluezone.utils.errors import BlueZoneError
from bluezone.utils.websocket_manager import ConnectionManager, envelope


logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])

TYPING_EVENTS = ("typing:start", "typing:stop")


@router.websocket("/ws")
async def realtime_socket(
    websocket: WebSocket,
    db=Depends(mongo_db_dependency),
    settings=Depends(get_app_settings),
    manager: ConnectionManager = Depends(get_connection_manager),
    service: ChatService = Depends(get_chat_service),
):
    # JWT over the query string: ?token=...
    token = websocket.query_params.get("token")
    user = await authenticate_token(token, db, settings) if token else None
    if user is None:
        await websocket.close(code=4401)
        return

    await websocket.accept()
    await manager.join(websocket, user["_id"])
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = SocketFrame.model_validate_json(raw)
            except ValidationError:
                await websocket.send_json(envelope("error", {"detail": "Invalid frame"}))
                continue
            await _handle_frame(websocket, frame, user, service, manager)
    except WebSocketDisconnect:
        pass
    finally:
        await manager.leave(websocket)


async def _handle_frame(websocket: WebSocket, frame: SocketFrame, user: dict, service: ChatService, manager: ConnectionManager) -> None:
    event = frame.event
    data = frame.data or {}

    if event == "ping":
        await websocket.send_json(envelope("pong", {}))
        return

    if event in TYPING_EVENTS:
        try:
            signal = TypingSignal.model_validate(data)
        except ValidationError:
            await websocket.send_json(envelope("error", {"event": event, "detail": "Invalid payload"}))
            return
        # best effort, nothing stored
        await manager.relay(event, websocket, signal.model_dump(by_alias=True))
        return

    if event == "message:send":
        try:
            outgoing = SocketMessage.model_validate(data)
        except ValidationError:
            await websocket.send_json(envelope("error", {"event": event, "detail": "Invalid payload"}))
            return
        try:
            message = await service.send_message(outgoing.conversation_id, user["_id"], outgoing.content, sender=user)
        except BlueZoneError as exc:
            await websocket.send_json(envelope("error", {"event": event, "detail": exc.message}))
            return
        await websocket.send_json(envelope("message:ack", {"message": message, "clientMessageId": outgoing.client_message_id}))
        return

    logger.debug("Ignoring unknown event %r from user %s", event, user["_id"])
    await websocket.send_json(envelope("error", {"event": event, "detail": "Unknown event"}))
