"""
Message broadcaster: persist chat and file events, then fan them out to the room.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from gatechat.chat import events
from gatechat.chat.connection import Connection
from gatechat.chat.directory import RoomDirectory
from gatechat.chat.states import RoomStates
from gatechat.chat.store import RecordStore
from gatechat.core.exceptions import Forbidden
from gatechat.model.message import KIND_FILE, KIND_TEXT

logger = logging.getLogger(__name__)


class MessageBroadcaster:
    def __init__(
        self,
        store: RecordStore,
        directory: RoomDirectory,
        states: RoomStates,
        history_limit: int = 200,
        max_text_length: int = 4000,
    ) -> None:
        self.store = store
        self.directory = directory
        self.states = states
        self.history_limit = history_limit
        self.max_text_length = max_text_length

    async def history(self, room_id: str) -> Tuple[List[Dict[str, Any]], int]:
        """Replayable messages and the id of the newest one."""
        return await self.store.list_messages(room_id, self.history_limit)

    async def send_text(self, conn: Connection, text: Any) -> Optional[Dict[str, Any]]:
        """Record and broadcast a chat line. Blank text is dropped silently."""
        room_id = conn.room_id
        if not room_id:
            raise Forbidden("Not in a room")
        body = text.strip() if isinstance(text, str) else ""
        if not body:
            return None
        if not self.states.is_enabled(room_id):
            raise Forbidden("Room disabled")
        return await self._publish({
            "room_id": room_id,
            "sender": conn.name,
            "kind": KIND_TEXT,
            "text": body[: self.max_text_length],
            "ts": events.now_ms(),
        })

    async def publish_file(self, room_id: str, sender: str, url: str, mime: str, name: str) -> Dict[str, Any]:
        """Record and broadcast an uploaded file. Callers have already authorized the upload."""
        event = await self._publish({
            "room_id": room_id,
            "sender": sender,
            "kind": KIND_FILE,
            "url": url,
            "mime": mime,
            "name": name,
            "ts": events.now_ms(),
        })
        logger.info("File %s from %s shared in room %s", name, sender, room_id)
        return event

    async def _publish(self, obj_in: Dict[str, Any]) -> Dict[str, Any]:
        room_id = obj_in["room_id"]
        message_id, event = await self.store.insert_message(obj_in)
        if not self.states.is_enabled(room_id):
            # disabled while the insert was in flight
            await self.store.delete_message(message_id)
            logger.info("Dropped %s message %s: room %s was disabled", event["type"], message_id, room_id)
            raise Forbidden("Room disabled")
        sent = self.directory.broadcast_room(room_id, event, message_id)
        logger.debug("Delivered %s to %d connections in room %s", event["type"], sent, room_id)
        return event
