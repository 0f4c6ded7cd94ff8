"""
Create a room directly in the database, without the HTTP API.

Run from project root: python -m scripts.create_room <room_id> <room_password> <admin_password>
"""
import argparse
import asyncio
import logging
import sys

# Add project root so gatechat imports work
sys.path.insert(0, ".")

import gatechat.model  # noqa: F401
from gatechat.core.database import Base, engine
from gatechat.core.exceptions import ChatError
from main import build_room_manager

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def run_create(room_id: str, room_password: str, admin_password: str) -> int:
    Base.metadata.create_all(bind=engine)
    manager = build_room_manager()
    try:
        await manager.lifecycle.create(room_id, room_password, admin_password)
    except ChatError as e:
        logger.error("Could not create room %r: %s", room_id, e.message)
        return 1
    logger.info("Room %r is ready", room_id)
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("room_id")
    parser.add_argument("room_password")
    parser.add_argument("admin_password")
    args = parser.parse_args()
    sys.exit(asyncio.run(run_create(args.room_id, args.room_password, args.admin_password)))


if __name__ == "__main__":
    main()
