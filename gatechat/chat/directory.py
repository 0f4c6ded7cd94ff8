"""
In-memory room directory: member and admin sets per room, plus fan-out.
"""
import logging
from typing import Any, Dict, Iterable, Optional, Set

from gatechat.chat.connection import Connection

logger = logging.getLogger(__name__)


class RoomDirectory:
    """Tracks which connections are members or admins of each room."""

    def __init__(self) -> None:
        # room_id -> set of Connection
        self._members: Dict[str, Set[Connection]] = {}
        self._admins: Dict[str, Set[Connection]] = {}

    @staticmethod
    def _add(index: Dict[str, Set[Connection]], room_id: str, conn: Connection) -> None:
        if room_id not in index:
            index[room_id] = set()
        index[room_id].add(conn)

    @staticmethod
    def _remove(index: Dict[str, Set[Connection]], room_id: str, conn: Connection) -> None:
        if room_id in index:
            index[room_id].discard(conn)
            if not index[room_id]:
                del index[room_id]

    def add_member(self, room_id: str, conn: Connection) -> None:
        self._add(self._members, room_id, conn)
        logger.debug("Member %r added to room %s", conn, room_id)

    def remove_member(self, room_id: str, conn: Connection) -> None:
        self._remove(self._members, room_id, conn)

    def add_admin(self, room_id: str, conn: Connection) -> None:
        self._add(self._admins, room_id, conn)
        logger.debug("Admin %r attached to room %s", conn, room_id)

    def remove_admin(self, room_id: str, conn: Connection) -> None:
        self._remove(self._admins, room_id, conn)

    def members_of(self, room_id: str) -> Set[Connection]:
        return set(self._members.get(room_id) or ())

    def admins_of(self, room_id: str) -> Set[Connection]:
        return set(self._admins.get(room_id) or ())

    def audience_of(self, room_id: str) -> Set[Connection]:
        """Members and admins of a room, each connection once."""
        return self.members_of(room_id) | self.admins_of(room_id)

    def discard(self, conn: Connection) -> None:
        """Remove a connection from every set it belongs to."""
        for index in (self._members, self._admins):
            for room_id in [rid for rid, conns in index.items() if conn in conns]:
                self._remove(index, room_id, conn)

    def evict_members(self, room_id: str) -> Set[Connection]:
        """Drop the whole member set of a room and return it."""
        return self._members.pop(room_id, set())

    @staticmethod
    def broadcast(conns: Iterable[Connection], event: Dict[str, Any], message_id: Optional[int] = None) -> int:
        """Queue one event on every connection. Never raises, never waits."""
        sent = 0
        for conn in conns:
            try:
                conn.send(event, message_id)
                sent += 1
            except Exception as e:
                logger.warning("Broadcast to %r failed: %s", conn, e)
        return sent

    def broadcast_members(self, room_id: str, event: Dict[str, Any]) -> int:
        return self.broadcast(self.members_of(room_id), event)

    def broadcast_admins(self, room_id: str, event: Dict[str, Any]) -> int:
        return self.broadcast(self.admins_of(room_id), event)

    def broadcast_room(self, room_id: str, event: Dict[str, Any], message_id: Optional[int] = None) -> int:
        return self.broadcast(self.audience_of(room_id), event, message_id)
