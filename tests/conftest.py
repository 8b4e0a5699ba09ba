import os

# Settings are read at import time, so the environment must be in place first
os.environ["DATABASE_URL"] = "mongodb://localhost:27017"
os.environ["DATABASE_NAME"] = "messaging_test"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["DB_TRANSACTIONS_ENABLED"] = "false"

from datetime import timedelta

import pytest
from bson import ObjectId
from mongomock_motor import AsyncMongoMockClient

from db.init_db import init_db_indexes
from realtime.outbox import EventOutbox
from realtime.presence import InMemoryPresenceRegistry
from repos.conversation_repo import ConversationRepository
from repos.message_repo import MessageRepository
from repos.user_repo import UserRepository
from services.conversation_service import ConversationService
from services.message_service import MessageService
from services.user_service import UserService
from utils.time import get_current_utc_time


class RecordingHandler:
    """Stands in for the dispatcher and keeps every delivered event"""

    def __init__(self):
        self.events = []

    async def __call__(self, event):
        self.events.append(event)

    def types(self):
        return [event.event_type for event in self.events]


@pytest.fixture
async def db():
    client = AsyncMongoMockClient()
    database = client["messaging_test"]
    await init_db_indexes(database)
    return database


@pytest.fixture
def make_user(db):
    async def _make_user(first_name="Test", last_name="User", username=None, user_type="normal",
                         last_login_minutes_ago=None, is_active=True, email=None):
        user_id = ObjectId()
        username = username or f"{first_name.lower()}{str(user_id)[-4:]}"
        last_login = None
        if last_login_minutes_ago is not None:
            last_login = get_current_utc_time() - timedelta(minutes=last_login_minutes_ago)

        await db.users.insert_one({
            "_id": user_id,
            "username": username,
            "email": email or f"{username}@example.com",
            "first_name": first_name,
            "last_name": last_name,
            "user_type": user_type,
            "avatar_url": None,
            "last_login": last_login,
            "is_active": is_active,
        })
        return str(user_id)

    return _make_user


@pytest.fixture
async def alice(make_user):
    return await make_user("Alice", "Anders", username="alice")


@pytest.fixture
async def bob(make_user):
    return await make_user("Bob", "Brown", username="bob")


@pytest.fixture
async def carol(make_user):
    return await make_user("Carol", "Clark", username="carol")


@pytest.fixture
def presence():
    return InMemoryPresenceRegistry()


@pytest.fixture
def recorder():
    return RecordingHandler()


@pytest.fixture
def outbox(recorder):
    return EventOutbox(recorder)


@pytest.fixture
def conversation_repo(db):
    return ConversationRepository(db)


@pytest.fixture
def message_repo(db):
    return MessageRepository(db)


@pytest.fixture
def user_repo(db):
    return UserRepository(db)


@pytest.fixture
def conversation_service(conversation_repo, message_repo, user_repo, presence, outbox):
    return ConversationService(conversation_repo, message_repo, user_repo, presence, outbox)


@pytest.fixture
def message_service(db, message_repo, conversation_repo, user_repo, outbox):
    return MessageService(db, message_repo, conversation_repo, user_repo, outbox)


@pytest.fixture
def user_service(user_repo, presence):
    return UserService(user_repo, presence)
