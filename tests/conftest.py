"""
Shared fixtures: an in-memory MongoDB and the wired-up core services
"""

import pytest
from mongomock_motor import AsyncMongoMockClient

from bluezone.main import ensure_indexes
from bluezone.models.user import UserRole
from bluezone.repositories.discussion_repository import DiscussionRepository
from bluezone.repositories.notification_repository import NotificationRepository
from bluezone.repositories.persistence_gateway import PersistenceGateway
from bluezone.repositories.reaction_repository import ReactionRepository
from bluezone.repositories.user_repository import UserRepository
from bluezone.services.chat_service import ChatService
from bluezone.services.forum_service import ForumService
from bluezone.services.notification_service import NotificationDispatcher
from bluezone.services.reaction_service import LikeAggregator
from bluezone.utils.websocket_manager import ConnectionManager


class FakeConnection:
    """Stands in for a WebSocket: records every frame sent to it"""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    def events(self, name=None):
        return [frame for frame in self.sent if name is None or frame["event"] == name]


@pytest.fixture
def connection_factory():
    return FakeConnection


@pytest.fixture
async def db():
    database = AsyncMongoMockClient()["bluezone_test"]
    await ensure_indexes(database)
    return database


@pytest.fixture
async def users(db):
    repo = UserRepository(db)
    ids = {}
    for name in ("u1", "u2", "u3"):
        ids[name] = await repo.create_user(f"{name}@example.com", name.upper())
    ids["mod"] = await repo.create_user("mod@example.com", "Moderator", UserRole.MODERATOR)
    return ids


@pytest.fixture
def manager():
    return ConnectionManager()


@pytest.fixture
def gateway(db):
    return PersistenceGateway(db)


@pytest.fixture
def notification_repo(db):
    return NotificationRepository(db)


@pytest.fixture
def dispatcher(notification_repo, manager):
    return NotificationDispatcher(notification_repo, manager)


@pytest.fixture
def chat_service(gateway, db, dispatcher, manager):
    return ChatService(gateway, UserRepository(db), dispatcher, manager)


@pytest.fixture
def forum_service(db):
    return ForumService(DiscussionRepository(db), ReactionRepository(db), UserRepository(db))


@pytest.fixture
def like_aggregator(gateway, db, dispatcher):
    return LikeAggregator(gateway, DiscussionRepository(db), dispatcher)
