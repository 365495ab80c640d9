import re
import json
import logging
from typing import Annotated, List
from pydantic import BaseModel, Field, StrictInt, ValidationError

from app.api.middleware.misc import *

logger = logging.getLogger(__name__)

class PlanRequest(BaseModel):
    fitness_level: fitness_level_literal
    primary_goal: primary_goal_literal
    available_days: int = available_days_field
    session_duration: int = session_duration_field
    equipment: List[str] = Field(min_length=1)
    #? may be omitted, but an explicit null is rejected
    limitations: List[str] = None
    experience_years: Annotated[int, experience_years_field] = None
    preferred_workout_types: List[str] = None

class PlanExercise(BaseModel):
    name: str = Field(min_length=1)
    category: str | None = None
    sets: StrictInt | None = Field(default=None, ge=1, le=20)
    reps: str | None = None
    rest_seconds: StrictInt | None = None
    notes: str | None = None
    form_cues: List[str] | None = None

class PlanWorkout(BaseModel):
    day: day_name_literal
    workout_type: str | None = None
    duration_minutes: StrictInt | None = Field(default=None, ge=10, le=180)
    estimated_calories: StrictInt | None = None
    description: str | None = None
    exercises: List[PlanExercise] = Field(min_length=1, max_length=10)

class PlanWeek(BaseModel):
    week_number: StrictInt = Field(ge=1)
    focus: str | None = None
    workouts: List[PlanWorkout] = Field(min_length=1)

class WorkoutPlan(BaseModel):
    title: str = Field(min_length=1)
    description: str | None = Field(default=None, min_length=1)
    duration_weeks: StrictInt = Field(ge=1, le=12)
    workouts_per_week: StrictInt = Field(ge=1, le=7)
    difficulty_level: fitness_level_literal
    weeks: List[PlanWeek] = Field(min_length=1, max_length=2)

class PlanFormatError(Exception):
    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = errors or []

FITNESS_COACH_SYSTEM_PROMPT = """You are FitCoach AI, an expert fitness trainer. Generate workout plans quickly and efficiently.

Key Rules:
- Prioritize safety and proper form
- Create progressive, sustainable programs
- Use clear, common exercise names
- Keep responses concise

CRITICAL OUTPUT REQUIREMENTS:
- Return ONLY valid JSON (no markdown, no code blocks, no backticks, no explanations)
- Response must start with { and end with }
- Use exact key names as shown in the schema
- Always include ALL required fields in the EXACT order shown
- All day names MUST be lowercase: "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"
- All difficulty levels MUST be lowercase: "beginner", "intermediate", "advanced"
- String values must use double quotes
- Numbers must be integers (no decimals) for sets, duration_minutes, estimated_calories
- No trailing commas
- Follow the exact schema structure provided"""

PLAN_JSON_STRUCTURE = """{{
  "title": "string (plan name)",
  "description": "string (brief overview)",
  "duration_weeks": 2,
  "workouts_per_week": {available_days},
  "difficulty_level": "{fitness_level}",
  "weeks": [
    {{
      "week_number": 1,
      "focus": "string (week theme)",
      "workouts": [
        {{
          "day": "lowercase day name (monday, tuesday, etc)",
          "workout_type": "string (e.g., Full Body, Upper Body)",
          "duration_minutes": integer,
          "estimated_calories": integer,
          "description": "string (brief workout description)",
          "exercises": [
            {{
              "name": "string (exercise name)",
              "category": "string (muscle group)",
              "sets": integer,
              "reps": "string (e.g., 10-12 or 30 seconds)",
              "rest_seconds": integer,
              "notes": "string (optional modifications)",
              "form_cues": ["string", "string"]
            }}
          ]
        }}
      ]
    }},
    {{
      "week_number": 2,
      "focus": "string (week theme)",
      "workouts": [same structure as week 1]
    }}
  ]
}}"""

def create_workout_plan_prompt(profile: PlanRequest) -> str:
    equipment_list = ", ".join(profile.equipment) if profile.equipment else "bodyweight only"

    if profile.limitations:
        limitations = f"Limitations to consider: {', '.join(profile.limitations)}"
    else:
        limitations = "No reported limitations"

    preferred = ""
    if profile.preferred_workout_types:
        preferred = f"\n- Preferred Workout Types: {', '.join(profile.preferred_workout_types)}"

    structure = PLAN_JSON_STRUCTURE.format(
        available_days=profile.available_days,
        fitness_level=profile.fitness_level,
    )

    return f"""Create a {profile.primary_goal} focused workout plan for this user:

USER PROFILE:
- Fitness Level: {profile.fitness_level}
- Primary Goal: {profile.primary_goal}
- Available Days: {profile.available_days} days per week
- Session Duration: {profile.session_duration} minutes per workout
- Available Equipment: {equipment_list}
- {limitations}
- Experience: {profile.experience_years or 0} years{preferred}

REQUIREMENTS:
1. Create a 2-week starter plan
2. Use exactly {profile.available_days} workout days per week
3. Each workout must be {profile.session_duration} minutes or less
4. Only use available equipment: {equipment_list}
5. Include 4-6 exercises per workout
6. Provide 1-2 clear, brief form cues per exercise
7. Account for {profile.fitness_level} fitness level
8. Keep all descriptions brief and actionable

WORKOUT STRUCTURE:
- Week 1: Foundation building
- Week 2: Intensity increase

MANDATORY JSON STRUCTURE (follow EXACTLY in this ORDER):
{structure}

CONSISTENCY RULES (CRITICAL):
1. Every workout MUST have: day, workout_type, duration_minutes, estimated_calories, description, exercises
2. Every exercise MUST have: name, category, sets, reps, rest_seconds, notes, form_cues
3. form_cues MUST always be an array with 1-2 strings
4. Day names MUST be lowercase (monday, not Monday)
5. Workout distribution: spread across the week evenly
6. Keep JSON structure flat (no nested "workout_plan" wrapper)

OUTPUT FORMAT:
- Start response with {{
- End response with }}
- NO markdown formatting or code block syntax
- NO explanatory text before or after JSON
- Return ONLY the pure JSON object"""

def build_plan_messages(profile: PlanRequest) -> list:
    return [
        {"role": "system", "content": FITNESS_COACH_SYSTEM_PROMPT},
        {"role": "user", "content": create_workout_plan_prompt(profile)},
    ]

def strip_code_fence(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = re.sub(r"^```json\n?", "", cleaned)
        cleaned = re.sub(r"^```\n?", "", cleaned)
        cleaned = re.sub(r"\n?```$", "", cleaned)
        cleaned = cleaned.strip()
    return cleaned

def unwrap_plan(parsed):
    #? models sometimes nest the whole plan under "workout_plan"
    if isinstance(parsed, dict) and parsed.get("workout_plan") and not parsed.get("title"):
        logger.info("Unwrapping workout_plan object")
        return parsed["workout_plan"]
    return parsed

def format_validation_errors(error: ValidationError) -> list:
    return [
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in error.errors()
    ]

def validate_workout_plan(data) -> WorkoutPlan:
    try:
        return WorkoutPlan.model_validate(data)
    except ValidationError as e:
        errors = format_validation_errors(e)
        logger.error("AI response validation failed: %s", errors)
        raise PlanFormatError("Invalid AI response format", errors)

def normalize_plan_response(raw: str) -> WorkoutPlan:
    cleaned = strip_code_fence(raw)

    if not cleaned.startswith("{") or not cleaned.endswith("}"):
        raise PlanFormatError("Invalid JSON format: missing braces")

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise PlanFormatError(f"Invalid JSON: {e.msg}")

    return validate_workout_plan(unwrap_plan(parsed))
