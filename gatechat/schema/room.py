"""
Room schemas: admin bodies, upload responses and the internal room snapshot.
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class RoomInfo(BaseModel):
    """Snapshot of a stored room, safe to pass between threads."""
    model_config = ConfigDict(from_attributes=True)

    room_id: str
    room_pass_hash: str
    admin_pass_hash: str
    enabled: bool


class CreateRoomBody(BaseModel):
    """Body for POST /api/admin/create-room. Missing fields are reported as 400, not 422."""
    roomId: Optional[str] = None
    roomPassword: Optional[str] = None
    adminPassword: Optional[str] = None


class RoomActionBody(BaseModel):
    """Body for POST /api/admin/action."""
    roomId: Optional[str] = None
    adminPassword: Optional[str] = None
    action: Optional[str] = Field(None, description="enable, disable or clear")


class OkResponse(BaseModel):
    ok: bool = True


class UploadResponse(BaseModel):
    ok: bool = True
    url: str
