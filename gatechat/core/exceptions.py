"""
Application exceptions.

Every error carries an HTTP status and a human-readable message. HTTP routes let
FastAPI render them; the WebSocket handler turns them into ``error`` frames.
"""
from fastapi import HTTPException, status


class ChatError(HTTPException):
    """Base for errors surfaced to the originating caller."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        self.message = message
        super().__init__(status_code=self.status_code, detail=message)


class NotFound(ChatError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str = "Room"):
        super().__init__(f"{resource} not found")


class Forbidden(ChatError):
    status_code = status.HTTP_403_FORBIDDEN


class ValidationFailed(ChatError):
    status_code = status.HTTP_400_BAD_REQUEST


class Conflict(ChatError):
    status_code = status.HTTP_409_CONFLICT


class InternalError(ChatError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
