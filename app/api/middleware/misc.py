from datetime import datetime, timezone
from typing import Literal
from pydantic import Field, ValidationError

def datetime_to_timestamp_ms(dt):
    if dt is None: return None
    return int(dt.timestamp() * 1000)

def utc_now():
    return datetime.now(timezone.utc)

fitness_level_literal = Literal["beginner", "intermediate", "advanced"]
primary_goal_literal = Literal["weight_loss", "muscle_building", "strength", "endurance", "general_fitness"]
day_name_literal = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
request_type_literal = Literal["plan_generation", "plan_modification", "exercise_suggestion"]

#? day_of_week column, sunday = 0
day_of_week_map = {
    "sunday": 0,
    "monday": 1,
    "tuesday": 2,
    "wednesday": 3,
    "thursday": 4,
    "friday": 5,
    "saturday": 6,
}

available_days_field = Field(ge=1, le=7)
session_duration_field = Field(ge=15, le=120)
experience_years_field = Field(ge=0, le=50)

CARDIO_WORKOUT_TYPE_ID = 1

class SafeError(Exception):
    """Error with a message safe to show to the client."""
    status_code = 400

    def __init__(self, message, details=None):
        super().__init__(message)
        self.details = details

class InternalError(SafeError):
    status_code = 500

class NotFoundError(SafeError):
    status_code = 404

class QuotaExceededError(SafeError):
    status_code = 429

class UpstreamFormatError(SafeError):
    status_code = 500

class UpstreamUnavailableError(SafeError):
    status_code = 503

def error_message(err):
    #? drop pydantic's "Value error, " prefix from our own messages
    if err["type"] == "value_error" and "error" in err.get("ctx", {}):
        return str(err["ctx"]["error"])
    return err["msg"]

def field_errors(error: ValidationError) -> dict:
    errors = {}
    for err in error.errors():
        key = ".".join(str(part) for part in err["loc"]) or "form"
        errors.setdefault(key, []).append(error_message(err))
    return errors

def validation_issues(error: ValidationError) -> list:
    return [
        {
            "path": ".".join(str(part) for part in err["loc"]),
            "message": error_message(err),
        }
        for err in error.errors()
    ]

def action_result(success, message=None, errors=None, data=None):
    result = {"success": success}
    if message is not None: result["message"] = message
    if errors is not None: result["errors"] = errors
    if data is not None: result["data"] = data
    return result
