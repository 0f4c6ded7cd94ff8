"""
Message model. One chat line or file attachment in a room.
"""
from sqlalchemy import BigInteger, Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from gatechat.core.database import Base

KIND_TEXT = "text"
KIND_FILE = "file"


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    room_id = Column(String, ForeignKey("rooms.room_id", ondelete="CASCADE"), nullable=False, index=True)
    sender = Column(String, nullable=False)
    kind = Column(String, nullable=False, default=KIND_TEXT)  # text | file
    text = Column(Text, nullable=True)
    url = Column(String, nullable=True)
    mime = Column(String, nullable=True)
    name = Column(String, nullable=True)  # original file name
    ts = Column(BigInteger, nullable=False)  # epoch milliseconds

    room = relationship("Room", back_populates="messages")
