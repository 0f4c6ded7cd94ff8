"""
Room model. One password-protected chat room.
"""
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from gatechat.core.database import Base


class Room(Base):
    __tablename__ = "rooms"

    room_id = Column(String, primary_key=True)  # chosen by the creator
    room_pass_hash = Column(String, nullable=False)
    admin_pass_hash = Column(String, nullable=False)
    enabled = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    messages = relationship("Message", back_populates="room", cascade="all, delete-orphan")
