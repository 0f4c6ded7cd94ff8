"""
Record store: room and message persistence behind an async interface.

SQLAlchemy work is blocking, so every call runs in the thread pool with its own
session. Callers must treat each call as a suspension point.
"""
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from gatechat.chat import events
from gatechat.core.exceptions import Conflict, InternalError
from gatechat.crud import message_crud, room_crud
from gatechat.schema.room import RoomInfo

logger = logging.getLogger(__name__)


class RecordStore:
    """Durable rooms and messages."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def _call(self, fn: Callable[[Session], Any], conflict: str) -> Any:
        db = self._session_factory()
        try:
            return fn(db)
        except IntegrityError as e:
            db.rollback()
            logger.warning("Record store conflict: %s", e)
            raise Conflict(conflict)
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Record store failure: %s", e)
            raise InternalError("DB error")
        finally:
            db.close()

    async def _run(self, fn: Callable[[Session], Any], conflict: str = "Conflicting record") -> Any:
        return await run_in_threadpool(self._call, fn, conflict)

    async def get_room(self, room_id: str) -> Optional[RoomInfo]:
        def fn(db: Session) -> Optional[RoomInfo]:
            room = room_crud.get_by_id(db, room_id=room_id)
            return RoomInfo.model_validate(room) if room else None

        return await self._run(fn)

    async def create_room(self, room_id: str, room_pass_hash: str, admin_pass_hash: str) -> RoomInfo:
        def fn(db: Session) -> RoomInfo:
            if room_crud.get_by_id(db, room_id=room_id):
                raise Conflict("Room already exists")
            room = room_crud.create_from_dict(
                db,
                obj_in={
                    "room_id": room_id,
                    "room_pass_hash": room_pass_hash,
                    "admin_pass_hash": admin_pass_hash,
                    "enabled": True,
                },
            )
            return RoomInfo.model_validate(room)

        # the unique key also catches a concurrent create of the same id
        return await self._run(fn, conflict="Room already exists")

    async def set_enabled(self, room_id: str, enabled: bool) -> bool:
        def fn(db: Session) -> bool:
            return room_crud.set_enabled(db, room_id=room_id, enabled=enabled) is not None

        return await self._run(fn)

    async def insert_message(self, obj_in: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
        """Append a message. Returns its id and the event to broadcast."""
        def fn(db: Session) -> Tuple[int, Dict[str, Any]]:
            msg = message_crud.create_from_dict(db, obj_in=obj_in)
            return msg.id, events.message_payload(msg)

        return await self._run(fn)

    async def list_messages(self, room_id: str, limit: int) -> Tuple[List[Dict[str, Any]], int]:
        """Newest messages, oldest first, and the id of the last one (0 when empty)."""
        def fn(db: Session) -> Tuple[List[Dict[str, Any]], int]:
            items = message_crud.list_recent(db, room_id=room_id, limit=limit)
            return [events.message_payload(m) for m in items], (items[-1].id if items else 0)

        return await self._run(fn)

    async def delete_messages(self, room_id: str) -> int:
        def fn(db: Session) -> int:
            return message_crud.delete_for_room(db, room_id=room_id)

        return await self._run(fn)

    async def delete_message(self, message_id: int) -> bool:
        def fn(db: Session) -> bool:
            return message_crud.remove(db, id=message_id) is not None

        return await self._run(fn)
