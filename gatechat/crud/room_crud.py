"""
Room CRUD.
"""
from typing import Any, Dict, Optional
from sqlalchemy.orm import Session

from gatechat.model.room import Room
from gatechat.crud.base import CRUDBase


class CRUDRoom(CRUDBase[Room, Dict[str, Any], Dict[str, Any]]):
    def get_by_id(self, db: Session, *, room_id: str) -> Optional[Room]:
        return self.get(db, room_id)

    def set_enabled(self, db: Session, *, room_id: str, enabled: bool) -> Optional[Room]:
        room = self.get_by_id(db, room_id=room_id)
        if not room:
            return None
        return self.update(db, db_obj=room, obj_in={"enabled": enabled})


room_crud = CRUDRoom(Room)
