"""
Control channel WebSocket: one task per connection feeding frames to the room manager.
"""
import logging

from fastapi import APIRouter, Depends, WebSocket

from gatechat.chat.manager import RoomManager
from gatechat.core.dependencies import get_room_manager

router = APIRouter()
logger = logging.getLogger(__name__)


@router.websocket("/ws")
async def control_channel(
    websocket: WebSocket,
    manager: RoomManager = Depends(get_room_manager),
):
    """Admission, admin control and chat over JSON frames."""
    await websocket.accept()
    conn = manager.connect(websocket)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None and message.get("bytes") is not None:
                raw = message["bytes"].decode("utf-8", errors="replace")
            await manager.handle_frame(conn, raw)
    except Exception as e:
        logger.warning("WebSocket closed: %s", e)
    finally:
        manager.disconnect(conn)
        await conn.finish()
