"""
Live control-channel connections and the registry that tracks them.

Each connection owns a bounded outbound queue drained by its own writer task, so a
slow peer never blocks delivery to anyone else.
"""
import asyncio
import json
import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from fastapi import WebSocket

logger = logging.getLogger(__name__)

_CLOSE = object()


class Connection:
    """One WebSocket peer: display name, room affiliation, admin flag, outbox."""

    def __init__(self, websocket: WebSocket, outbox_size: int = 256) -> None:
        self.id = uuid.uuid4().hex
        self.websocket = websocket
        self.name = "User"
        self.room_id: Optional[str] = None
        self.is_admin = False
        self.closing = False
        self.released = False
        self._outbox: asyncio.Queue = asyncio.Queue(maxsize=outbox_size)
        self._writer: Optional[asyncio.Task] = None
        # (message id or None, event) parked while history is loading
        self._held: Optional[List[Tuple[Optional[int], Dict[str, Any]]]] = None

    def __repr__(self) -> str:
        return f"<Connection {self.id[:8]} name={self.name!r} room={self.room_id!r} admin={self.is_admin}>"

    @property
    def role(self) -> str:
        if self.is_admin:
            return "admin"
        if self.room_id:
            return "member"
        return "anonymous"

    @property
    def queued(self) -> int:
        return self._outbox.qsize()

    @property
    def holding(self) -> bool:
        return self._held is not None

    def start(self) -> None:
        if self._writer is None:
            self._writer = asyncio.create_task(self._drain())

    def send(self, event: Dict[str, Any], message_id: Optional[int] = None) -> None:
        """
        Queue an event without waiting. Dropped if the peer is closing or backed up.

        message_id is set for stored chat/file events so that a connection catching
        up on history can skip what the history already contains.
        """
        if self.closing:
            return
        if self._held is not None:
            if len(self._held) >= self._outbox.maxsize:
                logger.warning("Hold buffer full for %r, dropping %s", self, event.get("type"))
                return
            self._held.append((message_id, event))
            return
        self._enqueue(event)

    def hold(self) -> None:
        """Park outgoing events until release()."""
        if self._held is None:
            self._held = []

    def release(self, after_id: int = 0, head: Optional[Dict[str, Any]] = None) -> None:
        """
        Stop holding. head (the history frame) goes out first, then the parked
        events, minus stored messages with an id at or below after_id.
        """
        held, self._held = self._held, None
        if head is not None:
            self._enqueue(head)
        for message_id, event in held or ():
            if message_id is None or message_id > after_id:
                self._enqueue(event)

    def _enqueue(self, event: Dict[str, Any]) -> None:
        try:
            self._outbox.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning("Outbox full for %r, dropping %s", self, event.get("type"))

    def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the transport once everything queued before this call has been sent."""
        if self.closing:
            return
        self.release()
        self.closing = True
        try:
            self._outbox.put_nowait((_CLOSE, code, reason))
        except asyncio.QueueFull:
            # no room left for the marker; drop the backlog, the peer is leaving anyway
            self._clear_outbox()
            self._outbox.put_nowait((_CLOSE, code, reason))

    def _clear_outbox(self) -> None:
        while not self._outbox.empty():
            self._outbox.get_nowait()

    async def _drain(self) -> None:
        while True:
            item = await self._outbox.get()
            if isinstance(item, tuple) and item[0] is _CLOSE:
                _, code, reason = item
                try:
                    await self.websocket.close(code=code, reason=reason)
                except Exception as e:
                    logger.debug("Close failed for %r: %s", self, e)
                return
            try:
                await self.websocket.send_text(json.dumps(item, default=str))
            except Exception as e:
                logger.warning("Send failed for %r: %s", self, e)
                self.closing = True
                return

    async def finish(self) -> None:
        """Stop the writer once the socket is gone."""
        self.closing = True
        if self._writer is None:
            return
        if not self._writer.done():
            self._writer.cancel()
        try:
            await self._writer
        except asyncio.CancelledError:
            pass


class SessionRegistry:
    """Every live connection, by id."""

    def __init__(self) -> None:
        self._connections: Dict[str, Connection] = {}

    def register(self, conn: Connection) -> None:
        self._connections[conn.id] = conn

    def unregister(self, conn: Connection) -> None:
        self._connections.pop(conn.id, None)

    def __len__(self) -> int:
        return len(self._connections)
