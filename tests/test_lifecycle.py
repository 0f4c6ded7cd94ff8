import asyncio

import pytest

from gatechat.chat.admission import CLOSE_POLICY
from gatechat.core.exceptions import Conflict, Forbidden, NotFound, ValidationFailed

from helpers import drain


async def admit(manager, admin, conn, sender):
    await manager.admission.request_join(conn, "r1", "p", sender)
    request = manager.admission.owned_by(conn)[0]
    await manager.admission.approve(admin, request.request_id)


@pytest.fixture
async def admin(manager, room, open_conn):
    conn = open_conn()
    await manager.attach_admin(conn, "r1", "a", "Boss")
    return conn


async def test_create_stores_hashes_not_plaintext(manager):
    room = await manager.lifecycle.create("r9", "secret", "admin-secret")
    stored = await manager.store.get_room("r9")

    assert room.enabled is True
    assert stored.room_pass_hash != "secret"
    assert manager.hasher.verify("secret", stored.room_pass_hash)
    assert manager.hasher.verify("admin-secret", stored.admin_pass_hash)
    assert not manager.hasher.verify("secret", stored.admin_pass_hash)


@pytest.mark.parametrize("room_id, room_password, admin_password", [
    ("", "p", "a"),
    ("r2", None, "a"),
    ("r2", "p", ""),
])
async def test_create_requires_every_field(manager, room_id, room_password, admin_password):
    with pytest.raises(ValidationFailed) as exc:
        await manager.lifecycle.create(room_id, room_password, admin_password)
    assert exc.value.message == "Missing fields"


async def test_create_duplicate_conflicts(manager, room):
    with pytest.raises(Conflict) as exc:
        await manager.lifecycle.create("r1", "x", "y")
    assert exc.value.message == "Room already exists"
    # the original passphrase still works
    stored = await manager.store.get_room("r1")
    assert manager.hasher.verify("p", stored.room_pass_hash)


async def test_apply_rejects_bad_credentials_first(manager, room):
    with pytest.raises(NotFound):
        await manager.lifecycle.apply("nope", "a", "disable")
    with pytest.raises(Forbidden) as exc:
        await manager.lifecycle.apply("r1", "p", "disable")
    assert exc.value.message == "Wrong admin password"
    with pytest.raises(ValidationFailed) as exc:
        await manager.lifecycle.apply("r1", "a", "explode")
    assert exc.value.message == "Unknown action"
    assert (await manager.store.get_room("r1")).enabled is True


async def test_disable_evicts_members_and_denies_requests(manager, admin, open_conn):
    alice, bob, carol = open_conn(), open_conn(), open_conn()
    await admit(manager, admin, alice, "Alice")
    await admit(manager, admin, bob, "Bob")
    await manager.admission.request_join(carol, "r1", "p", "Carol")
    await drain(admin, alice, bob, carol)

    await manager.lifecycle.apply("r1", "a", "disable")
    await drain(admin, alice, bob, carol)

    for member in (alice, bob):
        assert member.websocket.sent[-1] == {"type": "kicked", "reason": "Room disabled"}
        assert member.websocket.closed == (CLOSE_POLICY, "Room disabled")
        assert member.room_id is None
    assert carol.websocket.sent[-1] == {"type": "error", "error": "Room disabled"}
    assert carol.websocket.closed[0] == CLOSE_POLICY
    assert len(manager.admission) == 0

    assert admin.websocket.last("room-status") == {"type": "room-status", "enabled": False}
    assert admin.websocket.closed is None
    assert manager.directory.members_of("r1") == set()
    assert manager.directory.admins_of("r1") == {admin}
    assert (await manager.store.get_room("r1")).enabled is False


async def test_disabled_room_rejects_joins_and_chat(manager, admin, open_conn):
    await manager.lifecycle.disable("r1")
    newcomer = open_conn()

    await manager.handle_frame(newcomer, '{"type": "request-join", "roomId": "r1", "roomPassword": "p"}')
    await manager.handle_frame(admin, '{"type": "chat", "text": "anyone?"}')
    await drain(newcomer, admin)

    assert newcomer.websocket.last("error")["error"] == "Room disabled"
    assert admin.websocket.last("error")["error"] == "Room disabled"
    assert (await manager.store.list_messages("r1", 10))[0] == []


async def test_enable_reopens_room(manager, admin, open_conn):
    await manager.lifecycle.apply("r1", "a", "disable")
    await manager.lifecycle.apply("r1", "a", "enable")
    alice = open_conn()
    await manager.admission.request_join(alice, "r1", "p", "Alice")
    await drain(admin, alice)

    statuses = [m["enabled"] for m in admin.websocket.sent if m["type"] == "room-status"]
    assert statuses == [False, True]
    assert alice.websocket.types() == ["waiting"]
    assert manager.states.is_enabled("r1")


async def test_clear_wipes_history_and_notifies(manager, admin, open_conn):
    alice = open_conn()
    await admit(manager, admin, alice, "Alice")
    await manager.broadcaster.send_text(alice, "hello")
    await manager.broadcaster.send_text(admin, "hi")

    await manager.lifecycle.apply("r1", "a", "clear")
    await drain(admin, alice)

    assert (await manager.store.list_messages("r1", 10))[0] == []
    assert alice.websocket.sent[-1] == {"type": "chat-cleared"}
    assert admin.websocket.sent[-1] == {"type": "chat-cleared"}
    assert alice.room_id == "r1"


async def test_admin_attach_wrong_password(manager, room, open_conn):
    conn = open_conn()
    await manager.handle_frame(conn, '{"type": "admin-attach", "roomId": "r1", "adminPassword": "p"}')
    await drain(conn)

    assert conn.websocket.sent == [{"type": "error", "error": "Wrong admin password"}]
    assert not conn.is_admin


async def test_admin_attach_allowed_on_disabled_room(manager, room, open_conn):
    await manager.lifecycle.disable("r1")
    conn = open_conn()
    assert await manager.attach_admin(conn, "r1", "a", "Boss")
    await drain(conn)

    assert conn.websocket.types() == ["admin-attached", "pending-list", "history"]
    assert conn.name == "Boss"


async def test_admin_attach_replaces_pending_request(manager, room, open_conn):
    watcher, conn = open_conn(), open_conn()
    await manager.attach_admin(watcher, "r1", "a")
    await manager.admission.request_join(conn, "r1", "p", "Alice")

    await manager.attach_admin(conn, "r1", "a")
    await drain(watcher, conn)

    assert manager.admission.owned_by(conn) == []
    assert watcher.websocket.last("join-request-closed") is not None
    assert conn.websocket.last("pending-list")["requests"] == []
    assert manager.directory.admins_of("r1") == {watcher, conn}


async def test_overlapping_switch_is_rejected(manager, admin, monkeypatch):
    gate = asyncio.Event()
    set_enabled = manager.store.set_enabled

    async def slow_set_enabled(room_id, enabled):
        await gate.wait()
        return await set_enabled(room_id, enabled)

    monkeypatch.setattr(manager.store, "set_enabled", slow_set_enabled)
    disabling = asyncio.create_task(manager.lifecycle.apply("r1", "a", "disable"))
    while "r1" not in manager.lifecycle._switching:
        await asyncio.sleep(0)

    with pytest.raises(Conflict) as exc:
        await manager.lifecycle.enable("r1")
    assert exc.value.message == "Room action in progress"

    gate.set()
    await disabling
    assert manager.states.is_enabled("r1") is False
    assert (await manager.store.get_room("r1")).enabled is False

    await manager.lifecycle.enable("r1")
    assert manager.states.is_enabled("r1") is True
