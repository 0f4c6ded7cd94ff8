from gatechat.model.room import Room
from gatechat.model.message import Message

__all__ = ["Room", "Message"]
