"""
Upload service: authorize a file upload against a room, store the blob and
broadcast it to the room.
"""
import logging
from typing import Optional

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from gatechat.chat.manager import RoomManager
from gatechat.core.exceptions import ChatError, Forbidden, InternalError, NotFound, ValidationFailed
from gatechat.utils.text import clamp

logger = logging.getLogger(__name__)

ALLOWED_MEDIA_PREFIXES = ("image/", "video/", "audio/")


def is_allowed_media(content_type: Optional[str]) -> bool:
    return (content_type or "").lower().startswith(ALLOWED_MEDIA_PREFIXES)


class UploadService:
    """Handles the stateless upload path; no open connection is required."""

    def __init__(self, manager: RoomManager, max_bytes: int = 25 * 1024 * 1024):
        self.manager = manager
        self.max_bytes = max_bytes

    async def upload(
        self,
        room_id: Optional[str],
        room_password: Optional[str],
        sender: Optional[str],
        file: Optional[UploadFile],
    ) -> str:
        """Returns the public URL of the stored file."""
        if file is None:
            raise ValidationFailed("No file")
        if not room_id or not room_password:
            raise ValidationFailed("Missing room/password")

        room = await self.manager.store.get_room(room_id)
        if not room:
            raise NotFound("Room")
        if not self.manager.states.remember(room):
            raise Forbidden("Room disabled")
        ok = await run_in_threadpool(self.manager.hasher.verify, room_password, room.room_pass_hash)
        if not ok:
            raise Forbidden("Wrong passkey")

        mime = (file.content_type or "").lower()
        if not is_allowed_media(mime):
            raise ValidationFailed("Only image/video/audio allowed")
        content = await file.read(self.max_bytes + 1)
        if len(content) > self.max_bytes:
            raise ValidationFailed("File too large")

        original = file.filename or "file"
        blobs = self.manager.blobs
        try:
            url = await run_in_threadpool(blobs.save, content, mime, original)
        except Exception as e:
            logger.exception("Blob store failed for %s: %s", original, e)
            raise InternalError("Upload failed")

        if not self.manager.states.is_enabled(room.room_id):
            await self._purge(url)
            raise Forbidden("Room disabled")

        safe_sender = clamp(sender, self.manager.max_name_length, default="User")
        try:
            await self.manager.broadcaster.publish_file(room.room_id, safe_sender, url, mime, original)
        except ChatError:
            await self._purge(url)
            raise
        return url

    async def _purge(self, url: str) -> None:
        try:
            await run_in_threadpool(self.manager.blobs.delete, url)
        except Exception as e:
            logger.warning("Could not purge blob %s: %s", url, e)
