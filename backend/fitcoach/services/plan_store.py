# fitcoach/services/plan_store.py
# Saved plans in Mongo (motor), scoped to (app_id, owner)
# - plan is stored as JSON text; documents that don't parse back are skipped on read
# - subscribe(): change stream when the server supports it, polling otherwise

from __future__ import annotations
import asyncio
import inspect
import json
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import OperationFailure, PyMongoError

from fitcoach.db.models.schemas import PlanMetadata, SavedPlan
from fitcoach.models.plan import GeneratedPlan, validate_plan
from fitcoach.services.errors import StoreUnavailable

log = logging.getLogger(__name__)

PLANS = "plans"

PlansCallback = Callable[[List[SavedPlan]], Union[None, Awaitable[None]]]


def encode_plan(plan: GeneratedPlan) -> str:
    return json.dumps(plan.to_json(), ensure_ascii=False)


def decode_plan(raw: Any) -> Optional[GeneratedPlan]:
    # None for anything that isn't JSON text of a schema-valid plan
    if not isinstance(raw, str):
        return None
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return None
    result = validate_plan(parsed)
    return result.value if result.ok else None


def to_saved_plan(doc: Dict[str, Any]) -> Optional[SavedPlan]:
    plan = decode_plan(doc.get("plan"))
    if plan is None:
        log.error("Failed to parse stored plan, skipping document %s", doc.get("_id"))
        return None
    created = doc.get("createdAt") or datetime.now(timezone.utc)
    return SavedPlan(
        id=str(doc["_id"]),
        name=doc.get("name", ""),
        goal=doc.get("goal", ""),
        level=doc.get("level", ""),
        plan=plan,
        created_at=created,
    )


class Subscription:
    """Handle for a live plans listener. Call unsubscribe() when the view goes away."""

    def __init__(self, task: "asyncio.Task[None]"):
        self._task = task

    @property
    def active(self) -> bool:
        return not self._task.done()

    def unsubscribe(self) -> None:
        if not self._task.done():
            self._task.cancel()

    async def wait_closed(self) -> None:
        try:
            await self._task
        except asyncio.CancelledError:
            pass


class PlanStore:
    """save / list / subscribe / delete for one user's plans."""

    def __init__(
        self,
        collection: Optional[AsyncIOMotorCollection],
        app_id: str,
        user_id: str,
        poll_interval: float = 2.0,
    ):
        if collection is None:
            raise StoreUnavailable("plan store is not initialized")
        self._col = collection
        self.app_id = app_id
        self.user_id = user_id
        self.poll_interval = poll_interval

    @property
    def scope(self) -> Dict[str, str]:
        return {"app_id": self.app_id, "owner": self.user_id}

    def _scoped_id(self, plan_id: str) -> Optional[Dict[str, Any]]:
        if not ObjectId.is_valid(plan_id):
            return None
        return {"_id": ObjectId(plan_id), **self.scope}

    async def save(self, plan: GeneratedPlan, metadata: PlanMetadata) -> str:
        doc = {
            **self.scope,
            **metadata.model_dump(),
            "plan": encode_plan(plan),
            "createdAt": datetime.now(timezone.utc),
        }
        try:
            result = await self._col.insert_one(doc)
        except PyMongoError as e:
            raise StoreUnavailable(f"save failed: {e}") from e
        log.info("plan saved: owner=%s id=%s", self.user_id, result.inserted_id)
        return str(result.inserted_id)

    async def _find_docs(self) -> List[Dict[str, Any]]:
        try:
            cursor = self._col.find(self.scope).sort("createdAt", -1)
            return await cursor.to_list(length=None)
        except PyMongoError as e:
            raise StoreUnavailable(f"list failed: {e}") from e

    async def list(self) -> List[SavedPlan]:
        return _to_plans(await self._find_docs())

    async def get(self, plan_id: str) -> Optional[SavedPlan]:
        query = self._scoped_id(plan_id)
        if query is None:
            return None
        try:
            doc = await self._col.find_one(query)
        except PyMongoError as e:
            raise StoreUnavailable(f"get failed: {e}") from e
        return to_saved_plan(doc) if doc else None

    async def delete(self, plan_id: str) -> bool:
        query = self._scoped_id(plan_id)
        if query is None:
            return False
        try:
            result = await self._col.delete_one(query)
        except PyMongoError as e:
            raise StoreUnavailable(f"delete failed: {e}") from e
        return result.deleted_count > 0

    def subscribe(self, callback: PlansCallback) -> Subscription:
        task = asyncio.create_task(self._listen(callback), name=f"plans:{self.user_id}")
        return Subscription(task)

    def _pipeline(self) -> List[Dict[str, Any]]:
        # deletes carry no fullDocument; they pass and are deduped by fingerprint
        return [{"$match": {"$or": [
            {"fullDocument.app_id": self.app_id, "fullDocument.owner": self.user_id},
            {"operationType": "delete"},
        ]}}]

    async def _deliver(self, callback: PlansCallback, docs: List[Dict[str, Any]]) -> None:
        res = callback(_to_plans(docs))
        if inspect.isawaitable(res):
            await res

    async def _push(self, callback: PlansCallback, last: Optional[List[Any]]) -> List[Any]:
        # deliver only when the snapshot differs from the last one sent
        docs = await self._find_docs()
        current = _fingerprint(docs)
        if current != last:
            await self._deliver(callback, docs)
        return current

    async def _listen(self, callback: PlansCallback) -> None:
        last: Optional[List[Any]] = None
        while True:
            try:
                last = await self._push(callback, last)
                async with self._col.watch(self._pipeline(), full_document="updateLookup") as stream:
                    async for _change in stream:
                        last = await self._push(callback, last)
            except OperationFailure as e:
                # standalone mongod has no change streams
                log.info("change streams unavailable (%s), polling every %.1fs", e, self.poll_interval)
                await self._poll(callback, last)
                return
            except (StoreUnavailable, PyMongoError) as e:
                log.warning("plans listener (owner=%s) lost the store: %s; retrying", self.user_id, e)
                await asyncio.sleep(self.poll_interval)

    async def _poll(self, callback: PlansCallback, last: Optional[List[Any]]) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                last = await self._push(callback, last)
            except StoreUnavailable as e:
                log.warning("plans poll (owner=%s) failed: %s", self.user_id, e)


def _to_plans(docs: List[Dict[str, Any]]) -> List[SavedPlan]:
    plans: List[SavedPlan] = []
    for doc in docs:
        saved = to_saved_plan(doc)
        if saved is not None:
            plans.append(saved)
    return plans


def _fingerprint(docs: List[Dict[str, Any]]) -> List[Any]:
    return [(str(d["_id"]), d.get("plan")) for d in docs]
