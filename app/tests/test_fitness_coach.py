import pytest
import json
from pydantic import ValidationError

from app.api.middleware import fitness_coach
from app.api.middleware.fitness_coach import *
from app.tests.fakes import valid_plan, valid_plan_json, valid_plan_request

def test_normalize_plain_json():
    plan = normalize_plan_response(valid_plan_json())

    assert isinstance(plan, WorkoutPlan)
    assert plan.title == "Two Week Foundation"
    assert plan.difficulty_level == "beginner"
    assert [week.week_number for week in plan.weeks] == [1, 2]
    assert plan.weeks[0].workouts[1].day == "thursday"
    assert plan.weeks[0].workouts[0].exercises[0].form_cues == ["Chest up", "Knees out"]

@pytest.mark.parametrize("fence", ["```json\n", "```\n", "```json"])
def test_normalize_strips_code_fence(fence):
    raw = f"{fence}{valid_plan_json()}\n```"
    assert normalize_plan_response(raw).title == "Two Week Foundation"

def test_normalize_surrounding_whitespace():
    raw = f"\n\n  {valid_plan_json()}  \n"
    assert normalize_plan_response(raw).title == "Two Week Foundation"

def test_strip_code_fence_leaves_unfenced_text():
    assert strip_code_fence("  {\"a\": 1}  ") == "{\"a\": 1}"
    assert strip_code_fence("Here you go ```json {}```") == "Here you go ```json {}```"

def test_missing_braces_fails_before_parsing(monkeypatch):
    def fail_loads(*args, **kwargs):
        raise AssertionError("json.loads should not be called")

    monkeypatch.setattr(fitness_coach.json, "loads", fail_loads)

    for raw in ["Sure! Here is your plan.", f"Plan: {valid_plan_json()}", "[1, 2, 3]"]:
        with pytest.raises(PlanFormatError) as e:
            normalize_plan_response(raw)
        assert str(e.value) == "Invalid JSON format: missing braces"

def test_invalid_json():
    with pytest.raises(PlanFormatError) as e:
        normalize_plan_response('{"title": "Plan",}')
    assert str(e.value).startswith("Invalid JSON:")

def test_unwraps_workout_plan_once():
    wrapped = json.dumps({"workout_plan": valid_plan()})
    assert normalize_plan_response(wrapped).title == "Two Week Foundation"

    double_wrapped = json.dumps({"workout_plan": {"workout_plan": valid_plan()}})
    with pytest.raises(PlanFormatError) as e:
        normalize_plan_response(double_wrapped)
    assert str(e.value) == "Invalid AI response format"

def test_no_unwrap_when_title_present():
    data = {"title": "Outer", "workout_plan": valid_plan()}
    assert unwrap_plan(data) is data

    with pytest.raises(PlanFormatError) as e:
        normalize_plan_response(json.dumps(data))
    assert any(error.startswith("duration_weeks:") for error in e.value.errors)

def test_validation_error_paths():
    plan = valid_plan()
    plan["weeks"][0]["workouts"][0]["day"] = "Monday"
    plan["weeks"][1]["workouts"][0]["exercises"][0]["sets"] = 0
    plan["difficulty_level"] = "expert"

    with pytest.raises(PlanFormatError) as e:
        normalize_plan_response(json.dumps(plan))

    paths = [error.split(":")[0] for error in e.value.errors]
    assert "weeks.0.workouts.0.day" in paths
    assert "weeks.1.workouts.0.exercises.0.sets" in paths
    assert "difficulty_level" in paths

def test_plan_limits():
    plan = valid_plan()
    plan["weeks"].append(dict(plan["weeks"][0], week_number=3))
    with pytest.raises(PlanFormatError):
        validate_workout_plan(plan)

    plan = valid_plan()
    plan["weeks"][0]["workouts"][0]["exercises"] = []
    with pytest.raises(PlanFormatError):
        validate_workout_plan(plan)

    plan = valid_plan()
    plan["duration_weeks"] = 13
    with pytest.raises(PlanFormatError):
        validate_workout_plan(plan)

def test_plan_integers_are_strict():
    plan = valid_plan()
    plan["weeks"][0]["workouts"][0]["exercises"][0]["sets"] = "3"
    plan["duration_weeks"] = True

    with pytest.raises(PlanFormatError) as e:
        normalize_plan_response(json.dumps(plan))

    paths = [error.split(":")[0] for error in e.value.errors]
    assert "weeks.0.workouts.0.exercises.0.sets" in paths
    assert "duration_weeks" in paths

    plan = valid_plan()
    plan["weeks"][0]["workouts"][0]["estimated_calories"] = "350"
    with pytest.raises(PlanFormatError):
        validate_workout_plan(plan)

def test_plan_request_optional_fields_reject_null():
    for field in ["limitations", "experience_years", "preferred_workout_types"]:
        with pytest.raises(ValidationError):
            PlanRequest.model_validate(dict(valid_plan_request, **{field: None}))

    profile = PlanRequest.model_validate({
        key: value for key, value in valid_plan_request.items() if key != "limitations"
    })
    assert profile.limitations is None

def test_plan_request_validation():
    profile = PlanRequest.model_validate(valid_plan_request)
    assert profile.experience_years is None
    assert profile.preferred_workout_types is None

    for field, value in [
        ("available_days", 0),
        ("available_days", 8),
        ("session_duration", 10),
        ("session_duration", 121),
        ("equipment", []),
        ("fitness_level", "elite"),
        ("primary_goal", "flexibility"),
        ("experience_years", 51),
    ]:
        with pytest.raises(ValidationError):
            PlanRequest.model_validate(dict(valid_plan_request, **{field: value}))

def test_workout_plan_prompt():
    profile = PlanRequest.model_validate(dict(
        valid_plan_request,
        experience_years=3,
        preferred_workout_types=["HIIT", "Yoga"],
    ))
    prompt = create_workout_plan_prompt(profile)

    assert "Create a general_fitness focused workout plan" in prompt
    assert "- Available Equipment: dumbbells, bench" in prompt
    assert "- Limitations to consider: lower back" in prompt
    assert "- Experience: 3 years" in prompt
    assert "- Preferred Workout Types: HIIT, Yoga" in prompt
    assert "Use exactly 2 workout days per week" in prompt
    assert '"workouts_per_week": 2,' in prompt
    assert '"difficulty_level": "beginner",' in prompt

def test_workout_plan_prompt_defaults():
    profile = PlanRequest.model_construct(**dict(valid_plan_request, equipment=[], limitations=None))
    prompt = create_workout_plan_prompt(profile)

    assert "- Available Equipment: bodyweight only" in prompt
    assert "- No reported limitations" in prompt
    assert "- Experience: 0 years" in prompt
    assert "Preferred Workout Types" not in prompt

def test_build_plan_messages():
    profile = PlanRequest.model_validate(valid_plan_request)
    system, user = build_plan_messages(profile)

    assert system == {"role": "system", "content": FITNESS_COACH_SYSTEM_PROMPT}
    assert user["role"] == "user"
    assert user["content"] == create_workout_plan_prompt(profile)
