"""
Speech lines, JSON export and the sample fallback plan.
"""
from datetime import datetime, timezone

from conftest import make_plan
from fitcoach.db.models.schemas import SavedPlan
from fitcoach.models.plan import GeneratedPlan, is_rest_day, validate_plan
from fitcoach.services.presentation import FALLBACK_PLAN, export_document, speech_lines


def test_fallback_plan_is_a_valid_week():
    result = validate_plan(FALLBACK_PLAN.to_json())
    assert result.ok
    assert len(FALLBACK_PLAN.workout_plan) == 7
    assert any(is_rest_day(d) for d in FALLBACK_PLAN.workout_plan)


def test_speech_lines_cover_every_exercise_meal_and_tip():
    plan = GeneratedPlan.model_validate(make_plan())
    lines = speech_lines(plan)

    assert lines[0] == "Day 1, Full Body: Bodyweight Squats, 3 sets of 12 reps, rest 60s."
    assert "Day 7: Rest." in lines
    assert "Breakfast, about 350 kcal: Overnight oats with berries, Banana." in lines
    assert lines[-2:] == ["Posture tip: Keep your chest up on squats.", "Lifestyle tip: Sleep 7-9 hours."]
    # 5 training days x 2 exercises + 2 rest days + 3 meals + 2 tips
    assert len(lines) == 17


def test_export_saved_plan():
    saved = SavedPlan(
        id="abc",
        name="Ana Maria",
        goal="Weight Loss",
        level="Beginner",
        plan=GeneratedPlan.model_validate(make_plan()),
        created_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
    )
    filename, body = export_document(saved)
    assert filename == "ana-maria-fitness-plan.json"
    assert body["createdAt"] == "2024-05-01T00:00:00+00:00"
    assert body["plan"] == make_plan()
    assert "exportedAt" in body


def test_export_bare_plan():
    filename, body = export_document(GeneratedPlan.model_validate(make_plan()))
    assert filename == "fitness-plan.json"
    assert set(body) == {"plan", "exportedAt"}
