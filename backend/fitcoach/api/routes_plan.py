# fitcoach/api/routes_plan.py
# POST /generate-plan: PlanInput → validated GeneratedPlan (or a typed error)

from __future__ import annotations
import json
import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from fitcoach.core.context import AppContext
from fitcoach.core.deps import get_context
from fitcoach.services.errors import GenerationNotReady, InvalidInput, UpstreamError, UpstreamTimeout
from fitcoach.services.planner import generate_plan, load_input
from fitcoach.services.presentation import FALLBACK_PLAN, FALLBACK_WARNING

log = logging.getLogger(__name__)

router = APIRouter(tags=["plan"])


def _fail(status: int, **body) -> JSONResponse:
    return JSONResponse(status_code=status, content={"success": False, **body})


@router.post("/generate-plan")
async def generate_plan_route(
    request: Request,
    fallback: bool = Query(False, description="return the sample plan instead of an upstream error"),
    ctx: AppContext = Depends(get_context),
):
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _fail(400, error="Invalid request body")
    if not isinstance(payload, dict):
        return _fail(400, error="Invalid request body")

    try:
        data = load_input(payload)
    except InvalidInput as e:
        return _fail(400, error="Invalid plan input", details=e.violations)

    try:
        plan = await generate_plan(data, ctx.generator, timeout_s=ctx.settings.GENERATION_TIMEOUT_S)
    except UpstreamError as e:
        status = 504 if isinstance(e, UpstreamTimeout) else 502
        if fallback:
            log.warning("generation failed (%s), serving fallback plan", e)
            return {"success": True, "plan": FALLBACK_PLAN.to_json(), "warning": FALLBACK_WARNING}
        return _fail(status, error=str(e), details=e.details)
    except GenerationNotReady as e:
        log.error("generation not configured: %s", e)
        if fallback:
            return {"success": True, "plan": FALLBACK_PLAN.to_json(), "warning": FALLBACK_WARNING}
        return _fail(500, message="Failed to generate plan.")
    except Exception:
        log.exception("plan generation crashed")
        return _fail(500, message="Failed to generate plan.")

    return {"success": True, "plan": plan.to_json()}
