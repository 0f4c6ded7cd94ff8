"""
Message CRUD.
"""
from typing import Any, Dict, List
from sqlalchemy.orm import Session
from sqlalchemy import desc

from gatechat.model.message import Message
from gatechat.crud.base import CRUDBase


class CRUDMessage(CRUDBase[Message, Dict[str, Any], Dict[str, Any]]):
    def list_recent(self, db: Session, *, room_id: str, limit: int = 200) -> List[Message]:
        """Newest `limit` messages of a room, returned oldest first."""
        items = (
            db.query(self.model)
            .filter(self.model.room_id == room_id)
            .order_by(desc(self.model.id))
            .limit(limit)
            .all()
        )
        items.reverse()
        return items

    def delete_for_room(self, db: Session, *, room_id: str) -> int:
        deleted = (
            db.query(self.model)
            .filter(self.model.room_id == room_id)
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted


message_crud = CRUDMessage(Message)
