from fastapi import APIRouter, Depends

from bluezone.database.connection import mongo_db_dependency
from bluezone.repositories.notification_repository import NotificationRepository
from bluezone.services.notification_service import NotificationDispatcher
from bluezone.utils.dependencies import get_connection_manager, get_current_user


router = APIRouter(prefix="/notifications", tags=["notifications"])


def get_dispatcher(db=Depends(mongo_db_dependency), manager=Depends(get_connection_manager)) -> NotificationDispatcher:
    return NotificationDispatcher(NotificationRepository(db), manager)


@router.get("")
async def list_notifications(current_user: dict = Depends(get_current_user), dispatcher: NotificationDispatcher = Depends(get_dispatcher)):
    return {"notifications": await dispatcher.list_notifications(current_user["_id"])}


@router.get("/unread-count")
async def unread_notifications(current_user: dict = Depends(get_current_user), dispatcher: NotificationDispatcher = Depends(get_dispatcher)):
    return {"unread": await dispatcher.unread_count(current_user["_id"])}


@router.put("/read-all")
async def mark_all_read(current_user: dict = Depends(get_current_user), dispatcher: NotificationDispatcher = Depends(get_dispatcher)):
    updated = await dispatcher.mark_all_read(current_user["_id"])
    return {"success": True, "updated": updated}


@router.put("/{notification_id}/read")
async def mark_notification_read(notification_id: str, current_user: dict = Depends(get_current_user), dispatcher: NotificationDispatcher = Depends(get_dispatcher)):
    return {"notification": await dispatcher.mark_read(notification_id, current_user["_id"])}


@router.delete("/{notification_id}")
async def dismiss_notification(notification_id: str, current_user: dict = Depends(get_current_user), dispatcher: NotificationDispatcher = Depends(get_dispatcher)):
    await dispatcher.dismiss(notification_id, current_user["_id"])
    return {"success": True}
