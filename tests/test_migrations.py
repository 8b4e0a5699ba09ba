import importlib.util
from pathlib import Path

import pytest
from bson import ObjectId
from mongomock_motor import AsyncMongoMockClient

MIGRATION = Path(__file__).resolve().parent.parent / "mongo" / "055_add_conversation_pair_key.py"


@pytest.fixture
def migration():
    spec = importlib.util.spec_from_file_location("add_conversation_pair_key", MIGRATION)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def legacy_db():
    return AsyncMongoMockClient()["legacy_messaging"]


async def test_backfill_sets_pair_key_and_index(migration, legacy_db):
    low, high = sorted([str(ObjectId()), str(ObjectId())])
    await legacy_db.conversations.insert_one({"participants": [high, low]})

    await migration.backfill_pair_keys(legacy_db)

    conversation = await legacy_db.conversations.find_one({})
    assert conversation["participants"] == [low, high]
    assert conversation["pair_key"] == f"{low}:{high}"
    assert conversation["deleted_by"] == []
    assert conversation["last_message_id"] is None

    index_info = await legacy_db.conversations.index_information()
    assert any(index.get("unique") for index in index_info.values())


async def test_duplicate_pairs_fail_the_migration(migration, legacy_db):
    user_a, user_b = str(ObjectId()), str(ObjectId())
    await legacy_db.conversations.insert_many([
        {"participants": [user_a, user_b]},
        {"participants": [user_b, user_a]},
    ])

    with pytest.raises(migration.MigrationError):
        await migration.backfill_pair_keys(legacy_db)

    index_info = await legacy_db.conversations.index_information()
    assert not any(index.get("unique") for index in index_info.values())


async def test_failed_migration_exits_non_zero(migration, monkeypatch):
    async def failing():
        raise migration.MigrationError("duplicates")

    monkeypatch.setattr(migration, "migrate_conversation_pair_keys", failing)

    with pytest.raises(SystemExit) as exit_info:
        await migration.main()

    assert exit_info.value.code == 1
