from gatechat.crud.room_crud import room_crud
from gatechat.crud.message_crud import message_crud

__all__ = [
    "room_crud",
    "message_crud",
]
