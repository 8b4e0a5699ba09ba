from realtime.presence import InMemoryPresenceRegistry


async def test_first_connection_brings_user_online():
    presence = InMemoryPresenceRegistry()

    assert await presence.register("u1", "sid-a") is True
    assert await presence.is_online("u1") is True
    assert await presence.user_for("sid-a") == "u1"


async def test_second_tab_is_not_a_transition():
    presence = InMemoryPresenceRegistry()
    await presence.register("u1", "sid-a")

    assert await presence.register("u1", "sid-b") is False
    assert await presence.connection_count("u1") == 2
    assert sorted(await presence.connections_for("u1")) == ["sid-a", "sid-b"]


async def test_offline_only_after_last_connection_leaves():
    presence = InMemoryPresenceRegistry()
    await presence.register("u1", "sid-a")
    await presence.register("u1", "sid-b")

    assert await presence.unregister("sid-a") is None
    assert await presence.is_online("u1") is True

    assert await presence.unregister("sid-b") == "u1"
    assert await presence.is_online("u1") is False
    assert await presence.connection_count("u1") == 0
    assert await presence.online_users() == []


async def test_unknown_socket_is_ignored():
    presence = InMemoryPresenceRegistry()

    assert await presence.unregister("never-seen") is None
    assert await presence.user_for("never-seen") is None


async def test_filter_online():
    presence = InMemoryPresenceRegistry()
    await presence.register("u1", "sid-a")
    await presence.register("u3", "sid-c")

    assert await presence.filter_online(["u1", "u2", "u3"]) == ["u1", "u3"]
    assert sorted(await presence.online_users()) == ["u1", "u3"]


async def test_reused_socket_id_moves_to_new_user():
    presence = InMemoryPresenceRegistry()
    await presence.register("u1", "sid-a")

    assert await presence.register("u2", "sid-a") is True
    assert await presence.is_online("u1") is False
    assert await presence.user_for("sid-a") == "u2"
