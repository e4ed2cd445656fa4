# fitcoach/main.py
# FastAPI app init + router wiring
# AppContext (settings, mongo, generation client, identity, http client) is built on startup

from __future__ import annotations

import logging
from asyncio import sleep

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fitcoach.api.routes_misc import router as misc_router
from fitcoach.api.routes_plan import router as plan_router
from fitcoach.api.routes_plans import router as plans_router
from fitcoach.core.config import Settings, settings as default_settings
from fitcoach.core.context import AppContext
from fitcoach.core.deps import build_identity
from fitcoach.db.indexes import ensure_indexes
from fitcoach.db.init import init_db
from fitcoach.services.errors import GenerationNotReady
from fitcoach.services.generation import build_generation_client

log = logging.getLogger(__name__)

DB_INIT_ATTEMPTS = 20


async def build_context(settings: Settings) -> AppContext:
    ctx = AppContext(
        settings=settings,
        identity=build_identity(settings.TRUST_USER_HEADER),
        http=httpx.AsyncClient(timeout=30),
    )

    try:
        ctx.generator = build_generation_client(settings)
    except GenerationNotReady as e:
        log.warning("plan generation disabled: %s", e)

    # 1) DB first (up to 20 tries, 1s apart); the app still serves without it
    for i in range(DB_INIT_ATTEMPTS):
        try:
            ctx.mongo, ctx.db = await init_db(settings)
            log.info("db ready")
            break
        except Exception as e:
            log.warning("db init retry %d: %s", i + 1, e)
            await sleep(1.0)
    else:
        log.error("db init failed after retries; saved plans unavailable")
        return ctx

    # 2) indexes
    try:
        await ensure_indexes(ctx.db)
        log.info("indexes ensured")
    except Exception as e:
        log.warning("ensure_indexes failed: %s", e)
    return ctx


def create_app(settings: Settings = default_settings) -> FastAPI:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Fitcoach - API", version="0.1.0")

    # CORS: front end on localhost:3000 + cookies
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def on_startup() -> None:
        if getattr(app.state, "ctx", None) is None:
            app.state.ctx = await build_context(settings)

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        ctx = getattr(app.state, "ctx", None)
        if ctx is not None:
            await ctx.aclose()
            app.state.ctx = None

    @app.get("/")
    async def root():
        return {"status": "ok"}

    @app.get("/health")
    async def health():
        ok = {"status": "ok", "db": "skip", "generation": "skip"}
        ctx = getattr(app.state, "ctx", None)
        if ctx is None:
            return ok
        if ctx.db is not None:
            try:
                await ctx.db.command("ping")
                ok["db"] = "ok"
            except Exception as e:
                ok["db"] = f"error: {e}"
        if ctx.generator is not None:
            ok["generation"] = ctx.generator.model
        return ok

    # prefixes are defined inside each router file
    app.include_router(plan_router)
    app.include_router(plans_router)
    app.include_router(misc_router)
    return app


app = create_app()
