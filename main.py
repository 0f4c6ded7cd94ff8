"""
Gatechat Application Entry Point.
"""
import os
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from gatechat.chat.manager import RoomManager
from gatechat.chat.store import RecordStore
from gatechat.core.config import settings
from gatechat.core.database import SessionLocal, engine
from gatechat.core.exceptions import ChatError
from gatechat.core.security import PassphraseHasher
from gatechat.router.endpoints import api_router, ws_router
from gatechat.storage.blob import build_blob_store
import logging
import uvicorn

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)


def build_room_manager() -> RoomManager:
    """Room manager wired to the configured database, bcrypt and blob store."""
    return RoomManager(
        store=RecordStore(SessionLocal),
        hasher=PassphraseHasher(rounds=settings.BCRYPT_ROUNDS),
        blobs=build_blob_store(settings),
        history_limit=settings.HISTORY_LIMIT,
        max_name_length=settings.MAX_NAME_LENGTH,
        max_text_length=settings.MAX_TEXT_LENGTH,
        outbox_size=settings.OUTBOX_SIZE,
    )


def create_app(room_manager: Optional[RoomManager] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events."""
        logger.info("Starting application...")
        if room_manager is not None:
            app.state.room_manager = room_manager
            yield
            return

        # Check database connection
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database connection OK")

            # Auto-create tables (use Alembic migrations in production)
            if settings.CREATE_TABLES:
                from gatechat.core.database import Base
                from gatechat.model import Room, Message  # noqa: F401
                Base.metadata.create_all(bind=engine)
                logger.info("Database tables created")
        except Exception as e:
            logger.error(f"Database connection failed: {e}")

        app.state.room_manager = build_room_manager()
        yield

        logger.info("Shutting down...")
        engine.dispose()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ChatError)
    async def chat_error_handler(request: Request, exc: ChatError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.debug(f"Rejected request to {request.url.path}: {exc.errors()}")
        return JSONResponse(status_code=400, content={"error": "Invalid request"})

    # Routes
    app.include_router(api_router)
    app.include_router(ws_router)

    # Serve uploaded chat files at /uploads/... when S3 is not configured
    if not settings.use_s3:
        os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
        app.mount(settings.UPLOAD_URL_PREFIX, StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8080)),
        reload=settings.DEBUG
    )
