from fastapi import APIRouter, Depends, status

from bluezone.database.connection import mongo_db_dependency
from bluezone.repositories.notification_repository import NotificationRepository
from bluezone.repositories.persistence_gateway import PersistenceGateway
from bluezone.repositories.user_repository import UserRepository
from bluezone.schemas.chat import SendMessageRequest, StartConversationRequest
from bluezone.services.chat_service import ChatService
from bluezone.services.notification_service import NotificationDispatcher
from bluezone.utils.dependencies import get_app_settings, get_connection_manager, get_current_user


router = APIRouter(prefix="/messages", tags=["chat"])


def get_chat_service(db=Depends(mongo_db_dependency), settings=Depends(get_app_settings), manager=Depends(get_connection_manager)) -> ChatService:
    gateway = PersistenceGateway(db, transactions=settings.mongo_transactions)
    dispatcher = NotificationDispatcher(NotificationRepository(db), manager)
    return ChatService(gateway, UserRepository(db), dispatcher, manager)


@router.get("/conversations")
async def list_conversations(current_user: dict = Depends(get_current_user), service: ChatService = Depends(get_chat_service)):
    items = await service.list_conversations(current_user["_id"])
    return {"conversations": items}


@router.get("/unread-count")
async def unread_count(current_user: dict = Depends(get_current_user), service: ChatService = Depends(get_chat_service)):
    return {"unread": await service.get_total_unread(current_user["_id"])}


@router.get("/conversations/{conversation_id}")
async def get_conversation(conversation_id: str, current_user: dict = Depends(get_current_user), service: ChatService = Depends(get_chat_service)):
    return {"conversation": await service.get_conversation(conversation_id, current_user["_id"])}


@router.post("/conversations", status_code=status.HTTP_201_CREATED)
async def start_conversation(body: StartConversationRequest, current_user: dict = Depends(get_current_user), service: ChatService = Depends(get_chat_service)):
    conversation = await service.start_conversation(current_user["_id"], body.recipient_id)
    return {"conversation": conversation}


@router.post("/conversations/{conversation_id}/messages", status_code=status.HTTP_201_CREATED)
async def send_message(conversation_id: str, body: SendMessageRequest, current_user: dict = Depends(get_current_user), service: ChatService = Depends(get_chat_service)):
    message = await service.send_message(conversation_id, current_user["_id"], body.content, sender=current_user)
    return {"message": message}


@router.put("/conversations/{conversation_id}/read")
async def mark_read(conversation_id: str, current_user: dict = Depends(get_current_user), service: ChatService = Depends(get_chat_service)):
    updated = await service.mark_read(conversation_id, current_user["_id"])
    return {"success": True, "updated": updated}


@router.delete("/conversations/{conversation_id}")
async def leave_conversation(conversation_id: str, current_user: dict = Depends(get_current_user), service: ChatService = Depends(get_chat_service)):
    result = await service.leave_conversation(conversation_id, current_user["_id"])
    return {"success": True, "conversationDeleted": result.conversation_deleted}
