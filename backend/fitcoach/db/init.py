# fitcoach/db/init.py
# Mongo connection utils (motor). Handles are owned by AppContext, not module globals.

from __future__ import annotations
from typing import Tuple

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from fitcoach.core.config import Settings


async def init_db(settings: Settings) -> Tuple[AsyncIOMotorClient, AsyncIOMotorDatabase]:
    # called once at startup; raises if the server isn't reachable yet
    client = AsyncIOMotorClient(settings.MONGO_URI)
    db = client[settings.MONGO_DB]
    await db.command("ping")
    return client, db


async def close_db(client: AsyncIOMotorClient | None) -> None:
    if client is not None:
        client.close()
