# fitcoach/services/planner.py
# PlanInput → prompt → schema-constrained generation → parse → validate → GeneratedPlan
# Either a validated plan comes back or a typed error is raised; nothing in between.

from __future__ import annotations
import asyncio
import json
import logging
import re
from typing import Any, Optional

from fitcoach.models.plan import PLAN_JSON_SCHEMA, GeneratedPlan, PlanInput, is_rest_day, validate_plan, validate_plan_input
from fitcoach.services.errors import (
    GenerationNotReady,
    InvalidInput,
    UpstreamEmpty,
    UpstreamMalformed,
    UpstreamSchemaViolation,
    UpstreamTimeout,
)
from fitcoach.services.generation import GenerationClient

log = logging.getLogger(__name__)

FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")


def load_input(payload: Any) -> PlanInput:
    checked = validate_plan_input(payload)
    if not checked.ok:
        raise InvalidInput(checked.as_details())
    return checked.value


def build_prompt(data: PlanInput) -> str:
    notes = data.optional_notes or "None"
    return f"""
Generate a highly personalized 7-day fitness plan and a 1-day sample diet plan based on the following user details.

User Details:
- Name: {data.name}
- Age: {data.age}
- Gender: {data.gender}
- Height: {data.height_cm:g} cm
- Weight: {data.weight_kg:g} kg
- Fitness Goal: {data.fitness_goal}
- Fitness Level: {data.fitness_level}
- Workout Location: {data.workout_location}
- Dietary Preference: {data.dietary_preference}
- Optional Notes/Limitations: {notes}

Constraints:
1. Workout Plan: Must be a 7-day schedule (exactly 7 entries in workout_plan). Use a structured split appropriate for the goal and level. Include at least one rest day (focus "Rest", empty routine). Ensure exercises suit the Workout Location ({data.workout_location}).
2. Diet Plan: Provide one full day of eating (Breakfast, Snack, Lunch, Dinner, Snack) with estimated calories, respecting Dietary Preference ({data.dietary_preference}) and supporting the Fitness Goal ({data.fitness_goal}).
3. AI Tips: Provide specific tips on Posture and Lifestyle/Motivation.

Output MUST be a single JSON object that strictly follows the provided JSON schema. DO NOT include any text outside the JSON object.
""".strip()


def parse_plan_text(text: str) -> GeneratedPlan:
    """Raw model text → validated plan. Raises UpstreamMalformed / UpstreamSchemaViolation."""
    trimmed = FENCE_RE.sub("", text.strip()).strip()
    try:
        parsed: Any = json.loads(trimmed)
    except json.JSONDecodeError as e:
        log.error("Failed to parse JSON from AI response: %s body=%s", e, trimmed[:500])
        raise UpstreamMalformed(trimmed, reason=str(e)) from e

    result = validate_plan(parsed)
    if not result.ok:
        details = result.as_details()
        log.error("Plan validation failed: %s", details)
        raise UpstreamSchemaViolation(details)
    return result.value


async def generate_plan(
    data: PlanInput,
    client: Optional[GenerationClient],
    timeout_s: Optional[float] = None,
) -> GeneratedPlan:
    if client is None:
        raise GenerationNotReady("generation client is not configured")

    prompt = build_prompt(data)
    try:
        reply = await asyncio.wait_for(client.generate_json(prompt, PLAN_JSON_SCHEMA), timeout=timeout_s)
    except asyncio.TimeoutError as e:
        log.error("Generation timed out after %ss (model=%s)", timeout_s, client.model)
        raise UpstreamTimeout(details={"timeout_s": timeout_s}) from e

    if reply is None or not reply.text.strip():
        log.error("Empty or missing text in AI response (model=%s)", client.model)
        raise UpstreamEmpty()

    plan = parse_plan_text(reply.text)
    if not any(is_rest_day(d) for d in plan.workout_plan):
        log.warning("generated plan has no rest day (name=%s)", data.name)
    log.info(
        "plan generated: days=%d meals=%d goal=%s",
        len(plan.workout_plan), len(plan.diet_plan), data.fitness_goal,
    )
    return plan
