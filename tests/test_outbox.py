import asyncio

from models.enums import EventType
from models.events_model import DomainEvent
from realtime.outbox import EventOutbox


def make_event(conversation_id="c1", event_type=EventType.MESSAGE_CREATED):
    return DomainEvent(
        event_type=event_type,
        conversation_id=conversation_id,
        actor_id="u1",
        participants=["u1", "u2"],
        payload={"message": {"content": "hi"}}
    )


async def test_events_are_delivered_in_order(recorder):
    outbox = EventOutbox(recorder)
    outbox.publish(make_event("c1"))
    outbox.publish(make_event("c2"))

    await outbox.drain()

    assert [e.conversation_id for e in recorder.events] == ["c1", "c2"]
    assert outbox.pending == 0


async def test_failing_handler_does_not_block_later_events():
    delivered = []

    async def flaky(event):
        if event.conversation_id == "bad":
            raise RuntimeError("emit failed")
        delivered.append(event.conversation_id)

    outbox = EventOutbox(flaky)
    outbox.publish(make_event("bad"))
    outbox.publish(make_event("good"))

    await outbox.drain()

    assert delivered == ["good"]


async def test_worker_delivers_in_background(recorder):
    outbox = EventOutbox(recorder)
    await outbox.start()
    try:
        outbox.publish(make_event("c1"))
        for _ in range(50):
            if recorder.events:
                break
            await asyncio.sleep(0.01)
    finally:
        await outbox.stop()

    assert [e.conversation_id for e in recorder.events] == ["c1"]


async def test_stop_flushes_queue(recorder):
    outbox = EventOutbox(recorder)
    outbox.publish(make_event("c1"))

    await outbox.stop()

    assert len(recorder.events) == 1


async def test_without_handler_events_are_dropped():
    outbox = EventOutbox()
    outbox.publish(make_event())

    await outbox.drain()

    assert outbox.pending == 0


def test_client_payload_shape():
    event = make_event(event_type=EventType.MESSAGE_DELETED)
    event.payload = {"message_id": "m1"}

    payload = event.to_client_payload()

    assert payload["conversation_id"] == "c1"
    assert payload["user_id"] == "u1"
    assert payload["message_id"] == "m1"
    assert "timestamp" in payload
