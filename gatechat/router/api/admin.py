"""
Admin router - room creation and lifecycle actions.
"""
from fastapi import APIRouter, Depends

from gatechat.chat.manager import RoomManager
from gatechat.core.dependencies import get_room_manager
from gatechat.schema.room import CreateRoomBody, OkResponse, RoomActionBody
import logging

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/create-room", response_model=OkResponse)
async def create_room(
    body: CreateRoomBody,
    manager: RoomManager = Depends(get_room_manager),
):
    """Create a room with a room passphrase and a separate admin passphrase."""
    await manager.lifecycle.create(body.roomId, body.roomPassword, body.adminPassword)
    return OkResponse()


@router.post("/action", response_model=OkResponse)
async def room_action(
    body: RoomActionBody,
    manager: RoomManager = Depends(get_room_manager),
):
    """Enable, disable or clear a room. Requires the admin passphrase."""
    await manager.lifecycle.apply(body.roomId, body.adminPassword, body.action)
    logger.info(f"Action {body.action} applied to room {body.roomId}")
    return OkResponse()
