# fitcoach/api/routes_plans.py
# saved plans of the current user: save / list / delete / export / speech + live websocket

from __future__ import annotations
import json
import logging
from typing import List

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from fitcoach.core.context import AppContext
from fitcoach.core.deps import get_context, get_plan_store
from fitcoach.db.models.schemas import SavedPlan, SavedPlansOut, SavePlanIn, SavePlanOut
from fitcoach.models.plan import validate_plan
from fitcoach.services.errors import StoreUnavailable
from fitcoach.services.plan_store import PlanStore
from fitcoach.services.presentation import export_document, speech_lines

log = logging.getLogger(__name__)

router = APIRouter(prefix="/plans", tags=["plans"])


def _check_id(plan_id: str) -> None:
    if not ObjectId.is_valid(plan_id):
        raise HTTPException(status_code=400, detail=f"'{plan_id}' is not a valid plan id")


async def _load(store: PlanStore, plan_id: str) -> SavedPlan:
    _check_id(plan_id)
    try:
        saved = await store.get(plan_id)
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    if saved is None:
        raise HTTPException(status_code=404, detail="plan not found")
    return saved


@router.get("", response_model=SavedPlansOut)
async def list_plans(store: PlanStore = Depends(get_plan_store)):
    try:
        plans = await store.list()
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return SavedPlansOut(plans=plans, total=len(plans))


@router.post("", response_model=SavePlanOut)
async def save_plan(payload: SavePlanIn, store: PlanStore = Depends(get_plan_store)):
    checked = validate_plan(payload.plan)
    if not checked.ok:
        raise HTTPException(status_code=400, detail={"error": "plan does not match schema", "details": checked.as_details()})
    try:
        plan_id = await store.save(checked.value, payload.metadata)
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return SavePlanOut(id=plan_id)


@router.delete("/{plan_id}")
async def delete_plan(plan_id: str, store: PlanStore = Depends(get_plan_store)):
    _check_id(plan_id)
    try:
        deleted = await store.delete(plan_id)
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="plan not found")
    return {"ok": True, "id": plan_id}


@router.get("/{plan_id}/export")
async def export_plan(plan_id: str, store: PlanStore = Depends(get_plan_store)):
    filename, body = export_document(await _load(store, plan_id))
    return JSONResponse(
        content=body,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{plan_id}/speech")
async def plan_speech(plan_id: str, store: PlanStore = Depends(get_plan_store)):
    saved = await _load(store, plan_id)
    lines: List[str] = speech_lines(saved.plan)
    return {"id": plan_id, "lines": lines}


@router.websocket("/ws")
async def plans_ws(websocket: WebSocket, ctx: AppContext = Depends(get_context)):
    # one snapshot on connect, another on every change; listener dropped on disconnect
    user_id = ctx.identity.user_id(websocket)
    try:
        store = ctx.plan_store(user_id)
    except StoreUnavailable as e:
        await websocket.close(code=1011, reason=str(e))
        return

    await websocket.accept()

    async def push(plans: List[SavedPlan]) -> None:
        snapshot = SavedPlansOut(plans=plans, total=len(plans))
        await websocket.send_text(json.dumps(snapshot.model_dump(mode="json", by_alias=True)))

    sub = store.subscribe(push)
    try:
        while True:
            await websocket.receive_text()  # client messages are ignored; this just waits for disconnect
    except WebSocketDisconnect:
        log.info("plans websocket closed (owner=%s)", user_id)
    finally:
        sub.unsubscribe()
