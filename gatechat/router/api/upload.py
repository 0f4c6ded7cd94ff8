"""
Upload router - share an image, video or audio file with a room.
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from gatechat.core.dependencies import get_upload_service
from gatechat.core.exceptions import ChatError, InternalError
from gatechat.schema.room import UploadResponse
from gatechat.service.upload_service import UploadService
import logging

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/upload", response_model=UploadResponse)
async def upload_file(
    roomId: Optional[str] = Form(None),
    roomPassword: Optional[str] = Form(None),
    sender: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    service: UploadService = Depends(get_upload_service),
):
    """
    Upload a file to a room and broadcast it to everyone online there.
    Authenticated by the room passphrase, not by an open connection.
    """
    try:
        url = await service.upload(roomId, roomPassword, sender, file)
    except ChatError:
        raise
    except Exception as e:
        logger.exception("Upload failed: %s", e)
        raise InternalError("Upload failed")
    return UploadResponse(url=url)
