"""
Admission controller: the join-request state machine.

A request starts REQUESTED and ends exactly once as APPROVED, DENIED or
ABANDONED. It is always removed from the pending map before its terminal side
effects run, so a request id can never be resolved twice.
"""
import logging
import secrets
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from fastapi.concurrency import run_in_threadpool

from gatechat.chat import events
from gatechat.chat.broadcaster import MessageBroadcaster
from gatechat.chat.connection import Connection
from gatechat.chat.directory import RoomDirectory
from gatechat.chat.states import RoomStates
from gatechat.chat.store import RecordStore
from gatechat.core.exceptions import ChatError, Forbidden, NotFound, ValidationFailed
from gatechat.core.security import PassphraseHasher
from gatechat.utils.text import clamp

logger = logging.getLogger(__name__)

# WebSocket close code for peers the server turns away.
CLOSE_POLICY = 1008


@dataclass
class PendingJoinRequest:
    request_id: str
    connection: Connection
    room_id: str
    sender: str
    created_at: int = field(default_factory=events.now_ms)


class AdmissionController:
    """Tracks outstanding join requests and resolves them on admin decisions."""

    def __init__(
        self,
        store: RecordStore,
        hasher: PassphraseHasher,
        directory: RoomDirectory,
        states: RoomStates,
        broadcaster: MessageBroadcaster,
        max_name_length: int = 20,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.directory = directory
        self.states = states
        self.broadcaster = broadcaster
        self.max_name_length = max_name_length
        # request_id -> request, in creation order
        self._pending: Dict[str, PendingJoinRequest] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def get(self, request_id: str) -> Optional[PendingJoinRequest]:
        return self._pending.get(request_id)

    def pending_for(self, room_id: str) -> List[PendingJoinRequest]:
        return [r for r in self._pending.values() if r.room_id == room_id]

    def owned_by(self, conn: Connection) -> List[PendingJoinRequest]:
        return [r for r in self._pending.values() if r.connection is conn]

    def _check_requester(self, conn: Connection) -> None:
        if conn.room_id:
            raise ValidationFailed("Already in a room")
        if self.owned_by(conn):
            raise ValidationFailed("Join request already pending")

    async def request_join(
        self,
        conn: Connection,
        room_id: Optional[str],
        password: Optional[str],
        sender: Optional[str],
    ) -> Optional[PendingJoinRequest]:
        """Validate a join attempt and park it until an admin decides."""
        self._check_requester(conn)
        room = await self.store.get_room(room_id) if room_id else None
        if not room:
            raise NotFound("Room")
        if not self.states.remember(room):
            raise Forbidden("Room disabled")
        ok = await run_in_threadpool(self.hasher.verify, password or "", room.room_pass_hash)
        if not ok:
            raise Forbidden("Wrong passkey")

        # Everything below runs without suspending; re-check what may have moved.
        if conn.closing:
            return None
        if not self.states.is_enabled(room.room_id):
            raise Forbidden("Room disabled")
        self._check_requester(conn)

        conn.name = clamp(sender, self.max_name_length, default="User")
        request = PendingJoinRequest(
            request_id=secrets.token_hex(8),
            connection=conn,
            room_id=room.room_id,
            sender=conn.name,
        )
        self._pending[request.request_id] = request
        self.directory.broadcast_admins(
            room.room_id,
            events.join_request(request.request_id, request.sender, request.created_at),
        )
        conn.send(events.state("waiting"))
        logger.info("Join request %s from %s for room %s", request.request_id, request.sender, room.room_id)
        return request

    def _close(self, request: PendingJoinRequest) -> None:
        self._pending.pop(request.request_id, None)
        self.directory.broadcast_admins(request.room_id, events.join_request_closed(request.request_id))

    def _resolve(self, admin: Connection, request_id: Optional[str]) -> PendingJoinRequest:
        if not admin.is_admin or not admin.room_id:
            raise Forbidden("Not authorized")
        request = self.get(request_id) if request_id else None
        if request is None:
            raise NotFound("Request")
        if request.room_id != admin.room_id:
            raise Forbidden("Wrong room")
        self._close(request)
        return request

    async def approve(self, admin: Connection, request_id: Optional[str]) -> Optional[Connection]:
        request = self._resolve(admin, request_id)
        member = request.connection
        if member.closing or member.room_id:
            logger.info("Request %s approved but requester is no longer waiting", request.request_id)
            return None

        member.name = request.sender
        member.room_id = request.room_id
        self.directory.add_member(request.room_id, member)
        member.send(events.state("joined"))
        logger.info("%s admitted to room %s", member.name, request.room_id)

        # live room traffic waits until the history frame is out
        member.hold()
        try:
            messages, cursor = await self.broadcaster.history(request.room_id)
        except ChatError as e:
            member.release(head=events.error(e.message))
            messages = None
        if member.closing or member.room_id != request.room_id:
            member.release()
            return member
        if messages is not None:
            member.release(cursor, head=events.history(messages))
        self.directory.broadcast_members(request.room_id, events.system(f"{member.name} joined."))
        return member

    def deny(self, admin: Connection, request_id: Optional[str]) -> Connection:
        request = self._resolve(admin, request_id)
        requester = request.connection
        requester.send(events.state("denied"))
        requester.close(code=CLOSE_POLICY, reason="Denied")
        logger.info("Join request %s for room %s denied", request.request_id, request.room_id)
        return requester

    def abandon(self, conn: Connection) -> int:
        """Drop every request a departing connection still owns."""
        requests = self.owned_by(conn)
        for request in requests:
            self._close(request)
            logger.info("Join request %s abandoned", request.request_id)
        return len(requests)

    def deny_room(self, room_id: str, reason: str) -> int:
        """Turn away everyone still waiting on a room."""
        requests = self.pending_for(room_id)
        for request in requests:
            self._close(request)
            request.connection.send(events.error(reason))
            request.connection.close(code=CLOSE_POLICY, reason=reason)
        if requests:
            logger.info("Denied %d pending requests for room %s: %s", len(requests), room_id, reason)
        return len(requests)
