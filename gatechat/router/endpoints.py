"""
API Router - all endpoints.
"""
from fastapi import APIRouter
from gatechat.router.api import admin, upload
from gatechat.router import ws

api_router = APIRouter(prefix="/api")

api_router.include_router(
    admin.router,
    prefix="/admin",
    tags=["Admin"],
)

api_router.include_router(
    upload.router,
    tags=["Upload"],
)

ws_router = ws.router
