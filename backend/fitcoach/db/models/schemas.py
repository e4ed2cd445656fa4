# fitcoach/db/models/schemas.py
# Saved-plan documents and the request/response bodies around them
# stored doc: {app_id, owner, name, goal, level, plan: <json text>, createdAt}

from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from fitcoach.models.plan import GeneratedPlan


class PlanMetadata(BaseModel):
    # denormalized from PlanInput for the saved-plans list
    name: str = Field(..., min_length=1, max_length=100)
    goal: str
    level: str


class SavedPlan(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    goal: str
    level: str
    plan: GeneratedPlan
    created_at: datetime = Field(alias="createdAt")


class SavePlanIn(BaseModel):
    # plan arrives as a raw dict and is re-validated before it is stored
    plan: Dict[str, Any]
    metadata: PlanMetadata


class SavePlanOut(BaseModel):
    ok: bool = True
    id: str


class SavedPlansOut(BaseModel):
    plans: List[SavedPlan]
    total: int


class GenerateImageIn(BaseModel):
    prompt: Optional[str] = None
    model: Optional[str] = None
