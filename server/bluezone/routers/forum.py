from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from bluezone.database.connection import mongo_db_dependency
from bluezone.models.reaction import SubjectKind
from bluezone.repositories.discussion_repository import DiscussionRepository
from bluezone.repositories.notification_repository import NotificationRepository
from bluezone.repositories.persistence_gateway import PersistenceGateway
from bluezone.repositories.reaction_repository import ReactionRepository
from bluezone.repositories.user_repository import UserRepository
from bluezone.schemas.forum import DiscussionCreate, DiscussionUpdate, ReplyCreate, ReplyUpdate
from bluezone.services.forum_service import ForumService
from bluezone.services.notification_service import NotificationDispatcher
from bluezone.services.reaction_service import LikeAggregator, LikeResult
from bluezone.utils.dependencies import get_app_settings, get_connection_manager, get_current_user, get_optional_user


router = APIRouter(prefix="/forum", tags=["forum"])


def get_forum_service(db=Depends(mongo_db_dependency)) -> ForumService:
    return ForumService(DiscussionRepository(db), ReactionRepository(db), UserRepository(db))


def get_like_aggregator(db=Depends(mongo_db_dependency), settings=Depends(get_app_settings), manager=Depends(get_connection_manager)) -> LikeAggregator:
    gateway = PersistenceGateway(db, transactions=settings.mongo_transactions)
    dispatcher = NotificationDispatcher(NotificationRepository(db), manager)
    return LikeAggregator(gateway, DiscussionRepository(db), dispatcher)


def _like_response(result: LikeResult) -> dict:
    return {"success": True, "liked": result.liked, "likes": result.likes, "notification": result.notification.status}


@router.get("/discussions")
async def list_discussions(
    search: Optional[str] = None,
    category: Optional[str] = None,
    sort: str = "recent",
    limit: int = Query(10, ge=1, le=50),
    offset: int = Query(0, ge=0),
    current_user=Depends(get_optional_user),
    service: ForumService = Depends(get_forum_service),
):
    viewer_id = current_user["_id"] if current_user else None
    return await service.list_discussions(viewer_id, search, category, sort, limit, offset)


@router.get("/discussions/trending")
async def trending_discussions(current_user=Depends(get_optional_user), service: ForumService = Depends(get_forum_service)):
    viewer_id = current_user["_id"] if current_user else None
    return {"discussions": await service.trending_discussions(viewer_id)}


@router.post("/discussions", status_code=status.HTTP_201_CREATED)
async def create_discussion(body: DiscussionCreate, current_user: dict = Depends(get_current_user), service: ForumService = Depends(get_forum_service)):
    discussion = await service.create_discussion(current_user["_id"], body.title, body.content, body.category, body.tags)
    return {"discussion": discussion}


@router.get("/discussions/{discussion_id}")
async def get_discussion(discussion_id: str, current_user=Depends(get_optional_user), service: ForumService = Depends(get_forum_service)):
    viewer_id = current_user["_id"] if current_user else None
    return await service.get_discussion(discussion_id, viewer_id)


@router.put("/discussions/{discussion_id}")
async def update_discussion(discussion_id: str, body: DiscussionUpdate, current_user: dict = Depends(get_current_user), service: ForumService = Depends(get_forum_service)):
    discussion = await service.update_discussion(discussion_id, current_user, body.title, body.content, body.category)
    return {"discussion": discussion}


@router.delete("/discussions/{discussion_id}")
async def delete_discussion(discussion_id: str, current_user: dict = Depends(get_current_user), service: ForumService = Depends(get_forum_service)):
    await service.delete_discussion(discussion_id, current_user)
    return {"success": True}


@router.post("/discussions/{discussion_id}/replies", status_code=status.HTTP_201_CREATED)
async def add_reply(discussion_id: str, body: ReplyCreate, current_user: dict = Depends(get_current_user), service: ForumService = Depends(get_forum_service)):
    reply = await service.add_reply(discussion_id, current_user["_id"], body.content, body.parent_id)
    return {"reply": reply}


@router.put("/replies/{reply_id}")
async def update_reply(reply_id: str, body: ReplyUpdate, current_user: dict = Depends(get_current_user), service: ForumService = Depends(get_forum_service)):
    reply = await service.update_reply(reply_id, current_user, body.content)
    return {"reply": reply}


@router.delete("/replies/{reply_id}")
async def delete_reply(reply_id: str, current_user: dict = Depends(get_current_user), service: ForumService = Depends(get_forum_service)):
    await service.delete_reply(reply_id, current_user)
    return {"success": True}


@router.post("/discussions/{discussion_id}/like")
async def like_discussion(discussion_id: str, current_user: dict = Depends(get_current_user), likes: LikeAggregator = Depends(get_like_aggregator)):
    result = await likes.toggle_like(SubjectKind.DISCUSSION, discussion_id, current_user["_id"], current_user.get("name"))
    return _like_response(result)


@router.post("/replies/{reply_id}/like")
async def like_reply(reply_id: str, current_user: dict = Depends(get_current_user), likes: LikeAggregator = Depends(get_like_aggregator)):
    result = await likes.toggle_like(SubjectKind.REPLY, reply_id, current_user["_id"], current_user.get("name"))
    return _like_response(result)
