import pytest
from bson import ObjectId
from httpx import ASGITransport, AsyncClient

from dependencies.db import get_db
from dependencies.realtime import get_outbox, get_presence
from helpers.auth import create_access_token
from main import app


@pytest.fixture
async def client(db, presence, outbox):
    async def override_get_db():
        return db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_presence] = lambda: presence
    app.dependency_overrides[get_outbox] = lambda: outbox

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client

    app.dependency_overrides.clear()


def auth(user_id):
    token = create_access_token({"sub": "someone", "id": user_id, "type": "normal"})
    return {"Authorization": f"Bearer {token}"}


async def test_root_is_alive(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "API is alive!"}
    assert "X-Request-ID" in response.headers


async def test_requests_without_token_are_rejected(client):
    response = await client.get("/conversations/")

    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHENTICATED"
    assert response.headers["WWW-Authenticate"] == "Bearer"


async def test_token_for_unknown_user_is_rejected(client):
    response = await client.get("/conversations/", headers=auth(str(ObjectId())))
    assert response.status_code == 401


async def test_send_and_read_flow(client, alice, bob):
    sent = await client.post("/messages/", json={"recipient_id": bob, "content": "hello"}, headers=auth(alice))
    assert sent.status_code == 201
    message = sent.json()
    conversation_id = message["conversation_id"]

    unread = await client.get("/conversations/unread-count", headers=auth(bob))
    assert unread.json() == {"unread_count": 1}

    listing = await client.get("/conversations/", headers=auth(bob))
    assert listing.status_code == 200
    [summary] = listing.json()["conversations"]
    assert summary["id"] == conversation_id
    assert summary["other_participant"]["id"] == alice
    assert summary["unread_count"] == 1

    history = await client.get(f"/conversations/{conversation_id}/messages", headers=auth(bob))
    assert [m["content"] for m in history.json()] == ["hello"]

    read = await client.post(f"/conversations/{conversation_id}/read", headers=auth(bob))
    assert read.json() == {"conversation_id": conversation_id, "marked_count": 1, "unread_count": 0}


async def test_send_validation_errors(client, alice, bob):
    blank = await client.post("/messages/", json={"recipient_id": bob, "content": "  "}, headers=auth(alice))
    assert blank.status_code == 400
    assert blank.json()["detail"] == "Validation error"

    to_self = await client.post("/messages/", json={"recipient_id": alice, "content": "hi"}, headers=auth(alice))
    assert to_self.status_code == 400
    assert to_self.json()["code"] == "INVALID_REQUEST"


async def test_get_or_create_and_fetch(client, alice, bob):
    created = await client.post(f"/conversations/with/{bob}", headers=auth(alice))
    assert created.status_code == 200
    body = created.json()
    assert body["is_new"] is True

    again = await client.post(f"/conversations/with/{alice}", headers=auth(bob))
    assert again.json()["id"] == body["id"]
    assert again.json()["is_new"] is False

    fetched = await client.get(f"/conversations/{body['id']}", headers=auth(alice))
    assert fetched.status_code == 200
    assert fetched.json()["other_participant"]["username"] == "bob"


async def test_conversation_access_never_reveals_existence(client, alice, bob, carol):
    created = await client.post(f"/conversations/with/{bob}", headers=auth(alice))
    conversation_id = created.json()["id"]

    foreign = await client.get(f"/conversations/{conversation_id}", headers=auth(carol))
    missing = await client.get(f"/conversations/{ObjectId()}", headers=auth(carol))
    foreign_delete = await client.delete(f"/conversations/{conversation_id}", headers=auth(carol))

    assert foreign.status_code == missing.status_code == foreign_delete.status_code == 404
    assert foreign.json()["detail"] == missing.json()["detail"]


async def test_hide_conversation(client, alice, bob):
    created = await client.post(f"/conversations/with/{bob}", headers=auth(alice))
    conversation_id = created.json()["id"]

    response = await client.delete(f"/conversations/{conversation_id}", headers=auth(alice))
    assert response.status_code == 204

    assert (await client.get("/conversations/", headers=auth(alice))).json()["conversations"] == []
    assert len((await client.get("/conversations/", headers=auth(bob))).json()["conversations"]) == 1


async def test_edit_and_delete_message(client, alice, bob):
    sent = (await client.post("/messages/", json={"recipient_id": bob, "content": "helo"}, headers=auth(alice))).json()

    forbidden = await client.patch(f"/messages/{sent['id']}", json={"content": "nope"}, headers=auth(bob))
    assert forbidden.status_code == 403

    edited = await client.patch(f"/messages/{sent['id']}", json={"content": "hello"}, headers=auth(alice))
    assert edited.status_code == 200
    assert edited.json()["content"] == "hello"

    deleted = await client.delete(f"/messages/{sent['id']}", headers=auth(alice))
    assert deleted.status_code == 204

    gone = await client.delete(f"/messages/{sent['id']}", headers=auth(alice))
    assert gone.status_code == 404


async def test_message_events_are_queued(client, outbox, recorder, alice, bob):
    await client.post("/messages/", json={"recipient_id": bob, "content": "hello"}, headers=auth(alice))

    await outbox.drain()

    assert len(recorder.events) == 1


async def test_search_users_route(client, alice, bob, carol):
    response = await client.get("/search/users", params={"q": "car"}, headers=auth(alice))

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["users"][0]["id"] == carol
    assert body["users"][0]["is_online"] is False
