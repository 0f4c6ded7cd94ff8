import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import gatechat.model  # noqa: F401
from gatechat.chat.manager import RoomManager
from gatechat.chat.store import RecordStore
from gatechat.core.database import Base
from gatechat.core.security import PassphraseHasher
from gatechat.storage.blob import LocalBlobStore
from main import create_app

from helpers import FakeSocket


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def manager(session_factory, upload_dir):
    return RoomManager(
        RecordStore(session_factory),
        PassphraseHasher(rounds=4),
        LocalBlobStore(str(upload_dir), "/uploads"),
        history_limit=50,
    )


@pytest.fixture
def client(manager):
    app = create_app(room_manager=manager)
    with TestClient(app) as c:
        yield c


@pytest.fixture
async def room(manager):
    """Room r1 with passphrase p and admin passphrase a."""
    return await manager.lifecycle.create("r1", "p", "a")


@pytest.fixture
async def open_conn(manager):
    """Factory for live connections backed by FakeSocket."""
    conns = []

    def _open():
        conn = manager.connect(FakeSocket())
        conns.append(conn)
        return conn

    yield _open
    for conn in conns:
        manager.disconnect(conn)
        await conn.finish()
