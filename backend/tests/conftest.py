"""
Pytest configuration and fixtures

Nothing here talks to MongoDB or a model endpoint: the plans collection and the
generation client are in-memory fakes, and outbound HTTP goes through
httpx.MockTransport.
"""
import asyncio
import copy
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import httpx
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import OperationFailure

from fitcoach.core.config import Settings
from fitcoach.core.context import AppContext
from fitcoach.core.deps import build_identity
from fitcoach.main import create_app
from fitcoach.services.generation import GenerationText


def _matches(doc, query):
    return all(doc.get(k) == v for k, v in query.items())


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction=1):
        self._docs = sorted(self._docs, key=lambda d: d.get(key), reverse=direction < 0)
        return self

    async def to_list(self, length=None):
        return [copy.deepcopy(d) for d in self._docs[:length]]


class FakeChangeStream:
    """Async-iterable context manager fed by the owning FakeCollection."""

    def __init__(self, col):
        self._col = col
        self._queue = asyncio.Queue()

    async def __aenter__(self):
        self._col.streams.append(self._queue)
        return self

    async def __aexit__(self, *exc):
        self._col.streams.remove(self._queue)

    def __aiter__(self):
        return self

    async def __anext__(self):
        return await self._queue.get()


class FakeCollection:
    """Just enough of AsyncIOMotorCollection for PlanStore."""

    def __init__(self, change_streams=False, find_errors=None):
        self.docs = []
        self.indexes = []
        self.change_streams = change_streams
        self.streams = []
        self.pipelines = []
        self.find_calls = 0
        # call number (1-based) -> exception raised by that find()
        self.find_errors = dict(find_errors or {})

    def _emit(self, op, doc):
        for q in self.streams:
            q.put_nowait({"operationType": op, "documentKey": {"_id": doc["_id"]}, "fullDocument": doc})

    async def insert_one(self, doc):
        doc = dict(doc)
        doc.setdefault("_id", ObjectId())
        # keep insertion order distinguishable for the createdAt sort
        doc["createdAt"] = doc.get("createdAt", datetime.now(timezone.utc)) + timedelta(microseconds=len(self.docs))
        self.docs.append(doc)
        self._emit("insert", doc)
        return SimpleNamespace(inserted_id=doc["_id"])

    def find(self, query=None, projection=None):
        self.find_calls += 1
        err = self.find_errors.pop(self.find_calls, None)
        if err is not None:
            raise err
        return FakeCursor([d for d in self.docs if _matches(d, query or {})])

    async def find_one(self, query):
        for d in self.docs:
            if _matches(d, query):
                return copy.deepcopy(d)
        return None

    async def delete_one(self, query):
        for i, d in enumerate(self.docs):
            if _matches(d, query):
                del self.docs[i]
                self._emit("delete", d)
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def create_index(self, keys, **kwargs):
        self.indexes.append(keys)

    def watch(self, pipeline=None, **kwargs):
        if not self.change_streams:
            # same as a standalone mongod
            raise OperationFailure("The $changeStream stage is only supported on replica sets", code=40573)
        self.pipelines.append(pipeline)
        return FakeChangeStream(self)


class FakeDB:
    def __init__(self):
        self.collections = {}

    def __getitem__(self, name):
        return self.collections.setdefault(name, FakeCollection())

    async def command(self, name):
        return {"ok": 1}


class FakeGenerator:
    """Stands in for GenerationClient; returns canned text or raises."""

    model = "fake-model"

    def __init__(self, text=None, exc=None, delay=0.0):
        self.text = text
        self.exc = exc
        self.delay = delay
        self.prompts = []

    async def generate_json(self, prompt, schema, schema_name="generated_plan"):
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        if self.text is None:
            return None
        return GenerationText(text=self.text)


def make_plan(**overrides):
    days = [
        {
            "day": f"Day {i}",
            "focus": "Rest" if i in (3, 7) else "Full Body",
            "routine": [] if i in (3, 7) else [
                {"exercise": "Bodyweight Squats", "sets": "3", "reps": "12", "rest": "60s"},
                {"exercise": "Incline Pushups", "sets": "3", "reps": "10", "rest": "60s"},
            ],
        }
        for i in range(1, 8)
    ]
    plan = {
        "workout_plan": days,
        "diet_plan": [
            {"meal": "Breakfast", "calories": "350 kcal", "items": ["Overnight oats with berries", "Banana"]},
            {"meal": "Lunch", "calories": "500 kcal", "items": ["Lentil curry", "Brown rice"]},
            {"meal": "Dinner", "calories": "450 kcal", "items": ["Tofu stir fry", "Quinoa"]},
        ],
        "ai_tips": {"posture": "Keep your chest up on squats.", "lifestyle": "Sleep 7-9 hours."},
    }
    plan.update(overrides)
    return plan


ANA = {
    "name": "Ana",
    "age": 30,
    "gender": "Female",
    "height_cm": 165,
    "weight_kg": 60,
    "fitness_goal": "Weight Loss",
    "fitness_level": "Beginner",
    "workout_location": "Home",
    "dietary_preference": "Vegan",
    "optional_notes": "",
}


@pytest.fixture
def plan_dict():
    return make_plan()


@pytest.fixture
def plan_input():
    return dict(ANA)


@pytest.fixture
def settings():
    return Settings(
        GOOGLE_API_KEY=None,
        GENERATION_API_KEY=None,
        APP_ID="test-app",
        RETRY_BASE_DELAY_S=0.0,
        PLANS_POLL_INTERVAL_S=0.01,
        TRUST_USER_HEADER=True,
        GENERATION_TIMEOUT_S=5.0,
        _env_file=None,
    )


@pytest.fixture
def fake_db():
    return FakeDB()


@pytest.fixture
def make_ctx(settings, fake_db):
    def _make(generator=None, handler=None, db=fake_db, settings=settings):
        transport = httpx.MockTransport(handler or (lambda request: httpx.Response(404)))
        return AppContext(
            settings=settings,
            identity=build_identity(settings.TRUST_USER_HEADER),
            http=httpx.AsyncClient(transport=transport),
            db=db,
            generator=generator,
        )

    return _make


@pytest.fixture
def make_client(settings, make_ctx):
    def _make(**ctx_kwargs):
        app = create_app(ctx_kwargs.get("settings", settings))
        app.state.ctx = make_ctx(**ctx_kwargs)
        return TestClient(app)

    return _make
