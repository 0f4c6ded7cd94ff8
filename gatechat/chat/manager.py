"""
Room manager: the single owner of live chat state.

Holds the session registry, room directory, pending join requests and the
enabled-state cache, and routes inbound control frames to the component that
handles them. Everything runs on one event loop, so no locks are needed.
"""
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import WebSocket

from gatechat.chat import events
from gatechat.chat.admission import AdmissionController
from gatechat.chat.broadcaster import MessageBroadcaster
from gatechat.chat.connection import Connection, SessionRegistry
from gatechat.chat.directory import RoomDirectory
from gatechat.chat.lifecycle import RoomLifecycleManager
from gatechat.chat.states import RoomStates
from gatechat.chat.store import RecordStore
from gatechat.core.exceptions import ChatError, ValidationFailed
from gatechat.core.security import PassphraseHasher
from gatechat.storage.blob import BlobStore
from gatechat.utils.text import as_str, clamp

logger = logging.getLogger(__name__)

FrameHandler = Callable[[Connection, Dict[str, Any]], Awaitable[Any]]


class RoomManager:
    def __init__(
        self,
        store: RecordStore,
        hasher: PassphraseHasher,
        blobs: BlobStore,
        *,
        history_limit: int = 200,
        max_name_length: int = 20,
        max_text_length: int = 4000,
        outbox_size: int = 256,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.blobs = blobs
        self.max_name_length = max_name_length
        self.outbox_size = outbox_size

        self.registry = SessionRegistry()
        self.directory = RoomDirectory()
        self.states = RoomStates()
        self.broadcaster = MessageBroadcaster(
            store, self.directory, self.states,
            history_limit=history_limit,
            max_text_length=max_text_length,
        )
        self.admission = AdmissionController(
            store, hasher, self.directory, self.states, self.broadcaster,
            max_name_length=max_name_length,
        )
        self.lifecycle = RoomLifecycleManager(
            store, hasher, self.directory, self.states, self.admission,
        )
        self._handlers: Dict[str, FrameHandler] = {
            "admin-attach": self._on_admin_attach,
            "request-join": self._on_request_join,
            "approve": self._on_approve,
            "deny": self._on_deny,
            "chat": self._on_chat,
        }

    # --- connection lifecycle ---

    def connect(self, websocket: WebSocket) -> Connection:
        conn = Connection(websocket, outbox_size=self.outbox_size)
        conn.start()
        self.registry.register(conn)
        logger.debug("Connected %r (%d live)", conn, len(self.registry))
        return conn

    def disconnect(self, conn: Connection) -> None:
        """Release everything a connection holds. Safe to call more than once."""
        if conn.released:
            return
        conn.released = True
        conn.closing = True
        role = conn.role
        self.registry.unregister(conn)
        self.directory.discard(conn)
        self.admission.abandon(conn)
        conn.room_id = None
        conn.is_admin = False
        logger.debug("Disconnected %s %r (%d live)", role, conn, len(self.registry))

    # --- inbound frames ---

    async def handle_frame(self, conn: Connection, raw: Optional[str]) -> None:
        """Dispatch one inbound frame. Malformed frames are ignored."""
        try:
            msg = json.loads(raw) if raw is not None else None
        except (ValueError, TypeError):
            logger.debug("Ignoring non-JSON frame from %r", conn)
            return
        if not isinstance(msg, dict):
            return
        kind = msg.get("type")
        handler = self._handlers.get(kind) if isinstance(kind, str) else None
        if handler is None:
            logger.debug("Ignoring frame type %r from %r", msg.get("type"), conn)
            return
        try:
            await handler(conn, msg)
        except ChatError as e:
            conn.send(events.error(e.message))

    async def _on_admin_attach(self, conn: Connection, msg: Dict[str, Any]) -> None:
        await self.attach_admin(
            conn, as_str(msg.get("roomId")), as_str(msg.get("adminPassword")), msg.get("sender"),
        )

    async def _on_request_join(self, conn: Connection, msg: Dict[str, Any]) -> None:
        await self.admission.request_join(
            conn, as_str(msg.get("roomId")), as_str(msg.get("roomPassword")), msg.get("sender"),
        )

    async def _on_approve(self, conn: Connection, msg: Dict[str, Any]) -> None:
        await self.admission.approve(conn, as_str(msg.get("requestId")))

    async def _on_deny(self, conn: Connection, msg: Dict[str, Any]) -> None:
        self.admission.deny(conn, as_str(msg.get("requestId")))

    async def _on_chat(self, conn: Connection, msg: Dict[str, Any]) -> None:
        await self.broadcaster.send_text(conn, msg.get("text"))

    async def attach_admin(
        self,
        conn: Connection,
        room_id: Optional[str],
        admin_password: Optional[str],
        sender: Any = None,
    ) -> bool:
        """Give a connection the admin seat of a room and catch it up."""
        if conn.room_id and conn.room_id != room_id:
            raise ValidationFailed("Already in a room")
        room = await self.lifecycle.authorize(room_id, admin_password)
        if conn.closing:
            return False
        if conn.room_id and conn.room_id != room.room_id:
            raise ValidationFailed("Already in a room")

        # a connection cannot both wait for admission and administer
        self.admission.abandon(conn)
        if not conn.room_id:
            conn.name = clamp(sender, self.max_name_length, default="Admin")
        conn.room_id = room.room_id
        conn.is_admin = True
        self.directory.add_admin(room.room_id, conn)
        conn.send(events.state("admin-attached"))
        conn.send(events.pending_list(self.admission.pending_for(room.room_id)))
        logger.info("Admin %s attached to room %s", conn.name, room.room_id)

        conn.hold()
        try:
            messages, cursor = await self.broadcaster.history(room.room_id)
        except ChatError:
            conn.release()
            raise
        if conn.closing or conn.room_id != room.room_id:
            conn.release()
            return True
        conn.release(cursor, head=events.history(messages))
        return True
