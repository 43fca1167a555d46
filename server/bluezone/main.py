import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorDatabase

from bluezone.config import Settings, get_settings
from bluezone.database.connection import close_mongo_connection, connect_to_mongo, get_database, use_database
from bluezone.repositories.conversation_repository import ConversationRepository
from bluezone.repositories.discussion_repository import DiscussionRepository
from bluezone.repositories.message_repository import MessageRepository
from bluezone.repositories.notification_repository import NotificationRepository
from bluezone.repositories.reaction_repository import ReactionRepository
from bluezone.repositories.user_repository import UserRepository
from bluezone.routers.chat import router as chat_router
from bluezone.routers.conversations import router as conversations_router
from bluezone.routers.forum import router as forum_router
from bluezone.routers.notifications import router as notifications_router
from bluezone.routers.presence import router as presence_router
from bluezone.utils.errors import BlueZoneError
from bluezone.utils.logging_config import setup_logging
from bluezone.utils.websocket_manager import ConnectionManager


logger = logging.getLogger(__name__)


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    for repo in (
        UserRepository(db),
        ConversationRepository(db),
        MessageRepository(db),
        ReactionRepository(db),
        NotificationRepository(db),
        DiscussionRepository(db),
    ):
        await repo.ensure_indexes()


def create_app(settings: Optional[Settings] = None, database: Optional[AsyncIOMotorDatabase] = None) -> FastAPI:
    if settings is None:
        settings = get_settings()
    setup_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):

        if database is not None:
            use_database(database)
        else:
            await connect_to_mongo(settings)
        await ensure_indexes(get_database())
        try:
            yield
        finally:
            if database is None:
                await close_mongo_connection()

    app = FastAPI(title="BlueZone API", lifespan=lifespan)
    app.state.settings = settings
    app.state.connections = ConnectionManager()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(BlueZoneError)
    async def bluezone_error_handler(request: Request, exc: BlueZoneError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    app.include_router(conversations_router)
    app.include_router(chat_router)
    app.include_router(notifications_router)
    app.include_router(forum_router)
    app.include_router(presence_router)

    @app.get("/")
    async def root():

        return {"status": "ok", "online_users": len(app.state.connections.online_users())}

    logger.info("BlueZone API configured (transactions=%s)", settings.mongo_transactions)
    return app


app = create_app()
