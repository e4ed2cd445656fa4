# fitcoach/models/plan.py
# Plan schemas + validation
# - PlanInput: what the form sends (closed, bounded, no coercion to defaults)
# - GeneratedPlan: what the model must return (required keys enforced, extras kept)
# - validate_*: pure functions returning ok/violations instead of raising

from __future__ import annotations
import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

Gender = Literal["Male", "Female", "Other"]
FitnessGoal = Literal["Weight Loss", "Muscle Gain", "Endurance", "General Fitness"]
FitnessLevel = Literal["Beginner", "Intermediate", "Advanced"]
WorkoutLocation = Literal["Home", "Gym", "Outdoor"]
DietaryPreference = Literal["Veg", "Non-Veg", "Vegan", "Keto", "None"]

WEEK_DAYS = 7
MAX_NOTES = 500
REST_RE = re.compile(r"\brest\b|\brecovery\b", re.I)


class PlanInput(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, frozen=True)

    name: str = Field(..., min_length=2, max_length=100)
    # numbers must arrive as numbers; "30" is rejected, not coerced
    age: int = Field(..., ge=16, le=100, strict=True)
    gender: Gender
    height_cm: float = Field(..., ge=50, le=250, strict=True)
    weight_kg: float = Field(..., ge=20, le=400, strict=True)
    fitness_goal: FitnessGoal
    fitness_level: FitnessLevel
    workout_location: WorkoutLocation
    dietary_preference: DietaryPreference
    optional_notes: str = Field(default="", max_length=MAX_NOTES)


# AI output. extra="allow" so unknown fields survive a save/load round trip.
class Exercise(BaseModel):
    model_config = ConfigDict(extra="allow")

    exercise: str
    sets: str
    reps: str
    rest: str


class WorkoutDay(BaseModel):
    model_config = ConfigDict(extra="allow")

    day: str
    focus: str
    routine: List[Exercise]


class Meal(BaseModel):
    model_config = ConfigDict(extra="allow")

    meal: str
    calories: str
    items: List[str]


class AITips(BaseModel):
    model_config = ConfigDict(extra="allow")

    posture: str
    lifestyle: str


class GeneratedPlan(BaseModel):
    model_config = ConfigDict(extra="allow")

    workout_plan: List[WorkoutDay] = Field(..., min_length=WEEK_DAYS, max_length=WEEK_DAYS)
    diet_plan: List[Meal]
    ai_tips: AITips

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class Violation(BaseModel):
    path: str
    reason: str


class PlanValidation(BaseModel):
    ok: bool
    violations: List[Violation] = Field(default_factory=list)
    value: Optional[Any] = None  # the constructed model when ok

    def as_details(self) -> List[Dict[str, str]]:
        return [v.model_dump() for v in self.violations]


def _violations(exc: ValidationError) -> List[Violation]:
    out: List[Violation] = []
    for err in exc.errors():
        path = ".".join(str(p) for p in err.get("loc", ())) or "(root)"
        out.append(Violation(path=path, reason=err.get("msg", "invalid")))
    return out


def validate_plan(value: Any) -> PlanValidation:
    """Check a parsed document against the GeneratedPlan schema.

    All-or-nothing: either every required key at every level is present with the
    right type and ``value`` holds the GeneratedPlan, or ``violations`` lists
    each problem (path + reason). Extra keys are never a violation.
    """
    try:
        plan = GeneratedPlan.model_validate(value)
    except ValidationError as e:
        return PlanValidation(ok=False, violations=_violations(e))
    return PlanValidation(ok=True, value=plan)


def validate_plan_input(value: Any) -> PlanValidation:
    try:
        data = PlanInput.model_validate(value)
    except ValidationError as e:
        return PlanValidation(ok=False, violations=_violations(e))
    return PlanValidation(ok=True, value=data)


def _obj(properties: Dict[str, Any], required: List[str]) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": properties,
        "required": required,
        "additionalProperties": True,
    }


_STR = {"type": "string"}

# JSON schema sent with the generation request (response_format json_schema)
PLAN_JSON_SCHEMA: Dict[str, Any] = _obj(
    {
        "workout_plan": {
            "type": "array",
            "minItems": WEEK_DAYS,
            "maxItems": WEEK_DAYS,
            "items": _obj(
                {
                    "day": _STR,
                    "focus": _STR,
                    "routine": {
                        "type": "array",
                        "items": _obj(
                            {"exercise": _STR, "sets": _STR, "reps": _STR, "rest": _STR},
                            ["exercise", "sets", "reps", "rest"],
                        ),
                    },
                },
                ["day", "focus", "routine"],
            ),
        },
        "diet_plan": {
            "type": "array",
            "items": _obj(
                {"meal": _STR, "calories": _STR, "items": {"type": "array", "items": _STR}},
                ["meal", "calories", "items"],
            ),
        },
        "ai_tips": _obj({"posture": _STR, "lifestyle": _STR}, ["posture", "lifestyle"]),
    },
    ["workout_plan", "diet_plan", "ai_tips"],
)


def is_rest_day(day: WorkoutDay) -> bool:
    # content check only; the schema doesn't force a rest day
    return bool(REST_RE.search(f"{day.day} {day.focus}"))
