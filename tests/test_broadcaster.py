import pytest

from gatechat.core.exceptions import Forbidden

from helpers import drain


@pytest.fixture
async def pair(manager, room, open_conn):
    """An admin and an admitted member of r1."""
    admin, member = open_conn(), open_conn()
    await manager.attach_admin(admin, "r1", "a", "Boss")
    request = await manager.admission.request_join(member, "r1", "p", "Alice")
    await manager.admission.approve(admin, request.request_id)
    await drain(admin, member)
    return admin, member


async def test_chat_reaches_members_and_admins_once(manager, pair):
    admin, member = pair
    event = await manager.broadcaster.send_text(member, "  hello  ")
    await drain(admin, member)

    assert event["text"] == "hello"
    assert event["sender"] == "Alice"
    assert member.websocket.sent[-1] == event
    assert [m for m in admin.websocket.sent if m["type"] == "chat"] == [event]


async def test_admin_in_both_sets_gets_one_copy(manager, pair, open_conn):
    admin, member = pair
    manager.directory.add_member("r1", admin)
    await manager.broadcaster.send_text(member, "once")
    await drain(admin)

    assert len([m for m in admin.websocket.sent if m["type"] == "chat"]) == 1


@pytest.mark.parametrize("text", ["", "   ", None, 42, {"x": 1}])
async def test_blank_or_invalid_text_is_dropped(manager, pair, text):
    admin, member = pair
    before = len(member.websocket.sent)
    assert await manager.broadcaster.send_text(member, text) is None
    await drain(member)

    assert len(member.websocket.sent) == before
    assert (await manager.store.list_messages("r1", 10))[0] == []


async def test_chat_requires_a_room(manager, room, open_conn):
    stranger = open_conn()
    with pytest.raises(Forbidden) as exc:
        await manager.broadcaster.send_text(stranger, "hi")
    assert exc.value.message == "Not in a room"


async def test_waiting_requester_cannot_chat(manager, room, open_conn):
    conn = open_conn()
    await manager.handle_frame(conn, '{"type": "request-join", "roomId": "r1", "roomPassword": "p"}')
    await manager.handle_frame(conn, '{"type": "chat", "text": "let me in"}')
    await drain(conn)

    assert conn.websocket.types() == ["waiting", "error"]
    assert conn.websocket.last("error")["error"] == "Not in a room"


async def test_long_text_is_truncated(manager, pair):
    admin, member = pair
    event = await manager.broadcaster.send_text(member, "x" * 5000)
    assert len(event["text"]) == 4000


async def test_history_is_oldest_first_and_bounded(manager, pair):
    admin, member = pair
    for i in range(55):
        await manager.broadcaster.send_text(member, f"m{i}")

    history, cursor = await manager.broadcaster.history("r1")

    assert len(history) == 50
    assert history[0]["text"] == "m5"
    assert history[-1]["text"] == "m54"
    assert cursor > 0
    assert [h["ts"] for h in history] == sorted(h["ts"] for h in history)


async def test_history_replayed_to_late_joiner(manager, pair, open_conn):
    admin, member = pair
    await manager.broadcaster.send_text(member, "first")
    await manager.broadcaster.publish_file("r1", "Alice", "/uploads/x.png", "image/png", "cat.png")

    late = open_conn()
    request = await manager.admission.request_join(late, "r1", "p", "Bob")
    await manager.admission.approve(admin, request.request_id)
    await drain(late)

    messages = late.websocket.last("history")["messages"]
    assert [m["type"] for m in messages] == ["chat", "file"]
    assert messages[1] == {
        "type": "file",
        "sender": "Alice",
        "url": "/uploads/x.png",
        "mime": "image/png",
        "name": "cat.png",
        "ts": messages[1]["ts"],
    }


async def test_rooms_are_isolated(manager, pair, open_conn):
    admin, member = pair
    await manager.lifecycle.create("r2", "p2", "a2")
    other = open_conn()
    await manager.attach_admin(other, "r2", "a2")
    await drain(other)
    before = len(other.websocket.sent)

    await manager.broadcaster.send_text(member, "r1 only")
    await drain(other)

    assert len(other.websocket.sent) == before
    assert (await manager.store.list_messages("r2", 10))[0] == []


async def test_disable_during_insert_discards_message(manager, pair, monkeypatch):
    admin, member = pair
    insert = manager.store.insert_message

    async def insert_then_disable(obj_in):
        result = await insert(obj_in)
        await manager.lifecycle.disable("r1")
        return result

    monkeypatch.setattr(manager.store, "insert_message", insert_then_disable)
    with pytest.raises(Forbidden) as exc:
        await manager.broadcaster.send_text(member, "after disable")
    await drain(admin, member)

    assert exc.value.message == "Room disabled"
    assert (await manager.store.list_messages("r1", 10))[0] == []
    assert [m for m in admin.websocket.sent if m["type"] == "chat"] == []
    assert member.websocket.sent[-1]["type"] == "kicked"


async def test_file_published_into_disabled_room_is_discarded(manager, pair, monkeypatch):
    admin, member = pair
    insert = manager.store.insert_message

    async def insert_then_disable(obj_in):
        result = await insert(obj_in)
        await manager.lifecycle.disable("r1")
        return result

    monkeypatch.setattr(manager.store, "insert_message", insert_then_disable)
    with pytest.raises(Forbidden):
        await manager.broadcaster.publish_file("r1", "Alice", "/uploads/x.png", "image/png", "cat.png")
    await drain(admin)

    assert (await manager.store.list_messages("r1", 10))[0] == []
    assert admin.websocket.last("file") is None
