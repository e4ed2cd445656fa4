# fitcoach/services/presentation.py
# Formatting only: speech lines for text-to-speech, the JSON export, and the demo fallback plan

from __future__ import annotations
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple, Union

from fitcoach.db.models.schemas import SavedPlan
from fitcoach.models.plan import GeneratedPlan

FALLBACK_WARNING = "Plan generation failed. Showing a sample plan instead."


def _day(day: int, focus: str, routine: List[Dict[str, str]]) -> Dict[str, Any]:
    return {"day": f"Day {day}", "focus": focus, "routine": routine}


_SQUAT = {"exercise": "Squats", "sets": "3", "reps": "10", "rest": "60s"}
_PUSHUP = {"exercise": "Pushups", "sets": "3", "reps": "15", "rest": "60s"}

FALLBACK_PLAN = GeneratedPlan.model_validate({
    "workout_plan": [
        _day(1, "Full Body", [_SQUAT, _PUSHUP]),
        _day(2, "Rest", []),
        _day(3, "Full Body", [_SQUAT, _PUSHUP]),
        _day(4, "Rest", []),
        _day(5, "Full Body", [_SQUAT, _PUSHUP]),
        _day(6, "Active Recovery", [{"exercise": "Brisk Walk", "sets": "1", "reps": "30 min", "rest": "-"}]),
        _day(7, "Rest", []),
    ],
    "diet_plan": [
        {"meal": "Breakfast", "calories": "400 kcal", "items": ["Oatmeal with fruit", "Protein Shake"]},
    ],
    "ai_tips": {
        "posture": "Keep your back straight during lifts.",
        "lifestyle": "Drink plenty of water.",
    },
})


def speech_lines(plan: GeneratedPlan) -> List[str]:
    """One utterance per exercise, meal and tip, in display order."""
    lines: List[str] = []
    for day in plan.workout_plan:
        if not day.routine:
            lines.append(f"{day.day}: {day.focus}.")
            continue
        for ex in day.routine:
            lines.append(
                f"{day.day}, {day.focus}: {ex.exercise}, {ex.sets} sets of {ex.reps} reps, rest {ex.rest}."
            )
    for meal in plan.diet_plan:
        items = ", ".join(meal.items) if meal.items else "nothing listed"
        lines.append(f"{meal.meal}, about {meal.calories}: {items}.")
    lines.append(f"Posture tip: {plan.ai_tips.posture}")
    lines.append(f"Lifestyle tip: {plan.ai_tips.lifestyle}")
    return lines


def _slug(s: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", s.lower()).strip("-") or "plan"


def export_document(source: Union[SavedPlan, GeneratedPlan]) -> Tuple[str, Dict[str, Any]]:
    # stand-in for a PDF export: (filename, JSON body) for an attachment download
    if isinstance(source, SavedPlan):
        filename = f"{_slug(source.name)}-fitness-plan.json"
        body = {
            "name": source.name,
            "goal": source.goal,
            "level": source.level,
            "createdAt": source.created_at.isoformat(),
            "plan": source.plan.to_json(),
        }
    else:
        filename = "fitness-plan.json"
        body = {"plan": source.to_json()}
    body["exportedAt"] = datetime.now(timezone.utc).isoformat()
    return filename, body
