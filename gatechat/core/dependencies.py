"""
FastAPI dependencies.
"""
from fastapi import Depends
from fastapi.requests import HTTPConnection

from gatechat.chat.manager import RoomManager
from gatechat.core.config import settings
from gatechat.service.upload_service import UploadService


def get_room_manager(connection: HTTPConnection) -> RoomManager:
    """The room manager created at startup; works for HTTP and WebSocket routes."""
    return connection.app.state.room_manager


def get_upload_service(manager: RoomManager = Depends(get_room_manager)) -> UploadService:
    return UploadService(manager, max_bytes=settings.UPLOAD_MAX_BYTES)
