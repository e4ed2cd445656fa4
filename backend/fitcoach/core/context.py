# fitcoach/core/context.py
# Everything a request needs, built once at startup and kept on app.state.ctx

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

import httpx
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from fitcoach.core.config import Settings
from fitcoach.db.init import close_db
from fitcoach.services.generation import GenerationClient
from fitcoach.services.plan_store import PLANS, PlanStore

if TYPE_CHECKING:
    from fitcoach.core.deps import IdentityProvider


@dataclass
class AppContext:
    settings: Settings
    identity: "IdentityProvider"
    http: httpx.AsyncClient
    mongo: Optional[AsyncIOMotorClient] = None
    db: Optional[AsyncIOMotorDatabase] = None
    generator: Optional[GenerationClient] = None

    def plan_store(self, user_id: str) -> PlanStore:
        col = self.db[PLANS] if self.db is not None else None
        return PlanStore(col, self.settings.APP_ID, user_id, poll_interval=self.settings.PLANS_POLL_INTERVAL_S)

    async def aclose(self) -> None:
        await self.http.aclose()
        await close_db(self.mongo)
