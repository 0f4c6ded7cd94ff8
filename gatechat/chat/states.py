"""
Latest known enabled state per room.

Lifecycle transitions write here synchronously at the moment they take effect, so
handlers that suspended on the record store or on bcrypt can re-check the room
without another round trip.
"""
from typing import Dict

from gatechat.schema.room import RoomInfo


class RoomStates:
    def __init__(self) -> None:
        self._enabled: Dict[str, bool] = {}

    def remember(self, room: RoomInfo) -> bool:
        """Seed from a stored snapshot unless a transition already recorded a newer value."""
        return self._enabled.setdefault(room.room_id, room.enabled)

    def set(self, room_id: str, enabled: bool) -> None:
        self._enabled[room_id] = enabled

    def is_enabled(self, room_id: str) -> bool:
        return self._enabled.get(room_id, True)
