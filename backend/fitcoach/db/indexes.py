# fitcoach/db/indexes.py
# collection indexes; awaited once from startup

from motor.motor_asyncio import AsyncIOMotorDatabase

from fitcoach.services.plan_store import PLANS


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    # saved plans: list query is (app_id, owner) sorted by createdAt desc
    await db[PLANS].create_index([("app_id", 1), ("owner", 1), ("createdAt", -1)])
