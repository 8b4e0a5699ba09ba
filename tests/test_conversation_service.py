import asyncio

import pytest
from bson import ObjectId

from helpers.errors import InvalidRequestError, NotFoundError, UnauthorizedError
from models.enums import EventType
from models.message_model import MessageCreate


async def test_get_or_create_is_order_independent(conversation_service, alice, bob):
    first, created_first = await conversation_service.get_or_create(alice, bob)
    second, created_second = await conversation_service.get_or_create(bob, alice)

    assert created_first is True
    assert created_second is False
    assert first.id == second.id
    assert first.participants == sorted([alice, bob])
    assert first.deleted_by == []


async def test_get_or_create_is_idempotent(conversation_service, db, alice, bob):
    for _ in range(3):
        await conversation_service.get_or_create(alice, bob)

    assert await db.conversations.count_documents({}) == 1


async def test_concurrent_get_or_create_yields_one_conversation(conversation_service, db, alice, bob):
    results = await asyncio.gather(*[
        conversation_service.get_or_create(*pair)
        for pair in [(alice, bob), (bob, alice)] * 4
    ])

    assert len({conversation.id for conversation, _ in results}) == 1
    assert [created for _, created in results].count(True) == 1
    assert await db.conversations.count_documents({}) == 1


async def test_losing_insert_returns_existing_conversation(conversation_repo, monkeypatch, db, alice, bob):
    winner, created = await conversation_repo.find_or_create(alice, bob)
    assert created is True

    find_one = conversation_repo.conversations.find_one
    lookups = []

    async def stale_first_lookup(*args, **kwargs):
        lookups.append(args[0])
        if len(lookups) == 1:
            return None
        return await find_one(*args, **kwargs)

    monkeypatch.setattr(conversation_repo.conversations, "find_one", stale_first_lookup)

    conversation, created = await conversation_repo.find_or_create(bob, alice)

    assert created is False
    assert conversation.id == winner.id
    assert len(lookups) == 2
    assert await db.conversations.count_documents({}) == 1


async def test_get_or_create_with_self_is_rejected(conversation_service, alice):
    with pytest.raises(InvalidRequestError):
        await conversation_service.get_or_create(alice, alice)


async def test_get_or_create_summary_unknown_user(conversation_service, alice):
    with pytest.raises(NotFoundError):
        await conversation_service.get_or_create_summary(alice, str(ObjectId()))


async def test_get_or_create_summary_marks_new(conversation_service, alice, bob):
    summary = await conversation_service.get_or_create_summary(alice, bob)
    assert summary.is_new is True
    assert summary.other_participant.id == bob
    assert summary.other_participant.first_name == "Bob"
    assert summary.unread_count == 0
    assert summary.last_message is None

    again = await conversation_service.get_or_create_summary(bob, alice)
    assert again.is_new is False
    assert again.id == summary.id
    assert again.other_participant.id == alice


async def test_get_by_id_hides_from_non_participants(conversation_service, alice, bob, carol):
    conversation, _ = await conversation_service.get_or_create(alice, bob)

    assert (await conversation_service.get_by_id(conversation.id, alice)).id == conversation.id
    assert await conversation_service.get_by_id(conversation.id, carol) is None
    assert await conversation_service.get_by_id("not-an-id", alice) is None
    assert await conversation_service.get_by_id(str(ObjectId()), alice) is None


async def test_soft_delete_hides_for_requester_only(conversation_service, alice, bob):
    conversation, _ = await conversation_service.get_or_create(alice, bob)

    await conversation_service.soft_delete(conversation.id, alice)

    assert await conversation_service.list_for_user(alice) == []
    bob_list = await conversation_service.list_for_user(bob)
    assert [c.id for c in bob_list] == [conversation.id]


async def test_soft_delete_is_idempotent(conversation_service, conversation_repo, alice, bob):
    conversation, _ = await conversation_service.get_or_create(alice, bob)

    await conversation_service.soft_delete(conversation.id, alice)
    await conversation_service.soft_delete(conversation.id, alice)

    stored = await conversation_repo.get_by_id(conversation.id)
    assert stored.deleted_by == [alice]


async def test_soft_delete_missing_conversation(conversation_service, alice):
    with pytest.raises(NotFoundError):
        await conversation_service.soft_delete(str(ObjectId()), alice)


async def test_soft_delete_by_stranger_looks_like_not_found(conversation_service, alice, bob, carol):
    conversation, _ = await conversation_service.get_or_create(alice, bob)

    with pytest.raises(UnauthorizedError) as exc_info:
        await conversation_service.soft_delete(conversation.id, carol)

    assert exc_info.value.status_code == 404
    assert exc_info.value.code == "NOT_FOUND"


async def test_soft_delete_publishes_event(conversation_service, outbox, recorder, alice, bob):
    conversation, _ = await conversation_service.get_or_create(alice, bob)

    await conversation_service.soft_delete(conversation.id, alice)
    await outbox.drain()

    assert recorder.types() == [EventType.CONVERSATION_DELETED]
    assert recorder.events[0].actor_id == alice


async def test_explicit_get_or_create_restores_for_both(conversation_service, conversation_repo, alice, bob):
    conversation, _ = await conversation_service.get_or_create(alice, bob)
    await conversation_service.soft_delete(conversation.id, alice)
    await conversation_service.soft_delete(conversation.id, bob)

    restored, created = await conversation_service.get_or_create(bob, alice)

    assert created is False
    assert restored.id == conversation.id
    assert restored.deleted_by == []
    assert [c.id for c in await conversation_service.list_for_user(alice)] == [conversation.id]
    assert [c.id for c in await conversation_service.list_for_user(bob)] == [conversation.id]


async def test_list_orders_by_latest_activity(conversation_service, message_service, alice, bob, carol):
    with_bob, _ = await conversation_service.get_or_create(alice, bob)
    with_carol, _ = await conversation_service.get_or_create(alice, carol)
    await asyncio.sleep(0.01)

    await message_service.send(bob, MessageCreate(recipient_id=alice, content="ping"))

    conversations = await conversation_service.list_for_user(alice)
    assert [c.id for c in conversations] == [with_bob.id, with_carol.id]
    assert conversations[0].unread_count == 1
    assert conversations[0].last_message.content == "ping"
    assert conversations[1].unread_count == 0


async def test_list_paginates(conversation_service, make_user, alice):
    for i in range(5):
        other = await make_user(f"User{i}", "Page")
        await conversation_service.get_or_create(alice, other)

    page_one = await conversation_service.list_for_user(alice, limit=2, offset=0)
    page_two = await conversation_service.list_for_user(alice, limit=2, offset=2)
    page_three = await conversation_service.list_for_user(alice, limit=2, offset=4)

    assert len(page_one) == 2
    assert len(page_two) == 2
    assert len(page_three) == 1
    ids = [c.id for c in page_one + page_two + page_three]
    assert len(set(ids)) == 5


async def test_list_search_matches_last_message_content(conversation_service, message_service, alice, bob, carol):
    await message_service.send(alice, MessageCreate(recipient_id=bob, content="Invoice attached"))
    await message_service.send(alice, MessageCreate(recipient_id=carol, content="See you tomorrow"))

    results = await conversation_service.list_for_user(alice, search="invoice")

    assert len(results) == 1
    assert results[0].other_participant.id == bob


async def test_list_search_escapes_regex(conversation_service, message_service, alice, bob):
    await message_service.send(alice, MessageCreate(recipient_id=bob, content="costs (approx) $5"))

    assert len(await conversation_service.list_for_user(alice, search="(approx)")) == 1
    assert await conversation_service.list_for_user(alice, search=".*nothing") == []


async def test_list_reports_live_presence(conversation_service, presence, alice, bob):
    await conversation_service.get_or_create(alice, bob)

    [summary] = await conversation_service.list_for_user(alice)
    assert summary.other_participant.is_online is False

    await presence.register(bob, "sid-1")
    [summary] = await conversation_service.list_for_user(alice)
    assert summary.other_participant.is_online is True


async def test_get_summary_requires_participant(conversation_service, alice, bob, carol):
    conversation, _ = await conversation_service.get_or_create(alice, bob)

    summary = await conversation_service.get_summary(conversation.id, bob)
    assert summary.other_participant.id == alice

    with pytest.raises(NotFoundError):
        await conversation_service.get_summary(conversation.id, carol)


async def test_summary_for_deleted_account(conversation_service, db, alice, bob):
    conversation, _ = await conversation_service.get_or_create(alice, bob)
    await db.users.delete_one({"_id": ObjectId(bob)})

    summary = await conversation_service.get_summary(conversation.id, alice)
    assert summary.other_participant.id == bob
    assert summary.other_participant.role == "unknown"
