"""
Room lifecycle: create, enable, disable, clear.
"""
import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Set

from fastapi.concurrency import run_in_threadpool

from gatechat.chat import events
from gatechat.chat.admission import CLOSE_POLICY, AdmissionController
from gatechat.chat.connection import Connection
from gatechat.chat.directory import RoomDirectory
from gatechat.chat.states import RoomStates
from gatechat.chat.store import RecordStore
from gatechat.core.exceptions import Conflict, Forbidden, NotFound, ValidationFailed
from gatechat.core.security import PassphraseHasher
from gatechat.schema.room import RoomInfo

logger = logging.getLogger(__name__)

ACTIONS = ("enable", "disable", "clear")
DISABLED_REASON = "Room disabled"


class RoomLifecycleManager:
    def __init__(
        self,
        store: RecordStore,
        hasher: PassphraseHasher,
        directory: RoomDirectory,
        states: RoomStates,
        admission: AdmissionController,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.directory = directory
        self.states = states
        self.admission = admission
        # rooms with an enable/disable whose store write has not returned yet
        self._switching: Set[str] = set()

    async def create(
        self,
        room_id: Optional[str],
        room_password: Optional[str],
        admin_password: Optional[str],
    ) -> RoomInfo:
        if not room_id or not room_password or not admin_password:
            raise ValidationFailed("Missing fields")
        room_pass_hash = await run_in_threadpool(self.hasher.hash, room_password)
        admin_pass_hash = await run_in_threadpool(self.hasher.hash, admin_password)
        room = await self.store.create_room(room_id, room_pass_hash, admin_pass_hash)
        self.states.set(room.room_id, room.enabled)
        logger.info("Room %s created", room.room_id)
        return room

    async def authorize(self, room_id: Optional[str], admin_password: Optional[str]) -> RoomInfo:
        """Check the admin passphrase of a room."""
        room = await self.store.get_room(room_id) if room_id else None
        if not room:
            raise NotFound("Room")
        ok = await run_in_threadpool(self.hasher.verify, admin_password or "", room.admin_pass_hash)
        if not ok:
            raise Forbidden("Wrong admin password")
        self.states.remember(room)
        return room

    async def apply(self, room_id: Optional[str], admin_password: Optional[str], action: Optional[str]) -> None:
        room = await self.authorize(room_id, admin_password)
        if action not in ACTIONS:
            raise ValidationFailed("Unknown action")
        await getattr(self, action)(room.room_id)

    @contextmanager
    def _switch(self, room_id: str) -> Iterator[None]:
        if room_id in self._switching:
            raise Conflict("Room action in progress")
        self._switching.add(room_id)
        try:
            yield
        finally:
            self._switching.discard(room_id)

    async def enable(self, room_id: str) -> None:
        with self._switch(room_id):
            await self.store.set_enabled(room_id, True)
        self.states.set(room_id, True)
        self.directory.broadcast_room(room_id, events.room_status(True))
        logger.info("Room %s enabled", room_id)

    async def disable(self, room_id: str, reason: str = DISABLED_REASON) -> int:
        """Disable a room, evict its members and turn away pending requests."""
        with self._switch(room_id):
            await self.store.set_enabled(room_id, False)
        # From here to the end nothing suspends: the transition is atomic for other handlers.
        self.states.set(room_id, False)
        self.directory.broadcast_admins(room_id, events.room_status(False))
        evicted = self.directory.evict_members(room_id)
        for conn in evicted:
            self._kick(conn, reason)
        denied = self.admission.deny_room(room_id, reason)
        logger.info("Room %s disabled: %d members evicted, %d requests denied", room_id, len(evicted), denied)
        return len(evicted)

    async def clear(self, room_id: str) -> int:
        deleted = await self.store.delete_messages(room_id)
        self.directory.broadcast_room(room_id, events.state("chat-cleared"))
        logger.info("Room %s cleared (%d messages)", room_id, deleted)
        return deleted

    def _kick(self, conn: Connection, reason: str) -> None:
        conn.send(events.kicked(reason))
        self.directory.discard(conn)
        conn.room_id = None
        conn.is_admin = False
        conn.close(code=CLOSE_POLICY, reason=reason)
