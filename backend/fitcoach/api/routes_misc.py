# fitcoach/api/routes_misc.py
# daily quote, image generation (placeholder fallback) and image search proxy

from __future__ import annotations
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from fitcoach.core.context import AppContext
from fitcoach.core.deps import get_context
from fitcoach.db.models.schemas import GenerateImageIn
from fitcoach.services.imagery import ImageSearchFailed, generate_image, placeholder_url, search_image
from fitcoach.services.quotes import daily_quote

log = logging.getLogger(__name__)

router = APIRouter(tags=["extras"])


@router.get("/daily-quote")
async def daily_quote_route():
    try:
        return {"quote": daily_quote()}
    except Exception:
        log.exception("daily-quote failed")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch daily quote."})


@router.post("/generate-image")
async def generate_image_route(request: Request, ctx: AppContext = Depends(get_context)):
    # never an error status: worst case is a placeholder URL
    try:
        payload = GenerateImageIn.model_validate(await request.json())
    except (ValueError, ValidationError):
        payload = GenerateImageIn()
    try:
        url = await generate_image(ctx.http, ctx.settings, payload.prompt, payload.model)
    except Exception:
        log.exception("generate-image crashed")
        url = placeholder_url(ctx.settings, payload.prompt)
    return {"imageUrl": url}


@router.get("/image")
async def image_route(q: Optional[str] = Query(None, description="search keyword"), ctx: AppContext = Depends(get_context)):
    if not q or not q.strip():
        return JSONResponse(status_code=400, content={"error": 'Query parameter "q" is required'})
    try:
        return {"imageUrl": await search_image(ctx.http, ctx.settings, q.strip())}
    except ImageSearchFailed as e:
        log.error("image search failed: %s", e)
        return JSONResponse(status_code=500, content={"error": "Failed to fetch image"})
