from fastapi import APIRouter, Depends, Body
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError, field_validator
from datetime import datetime, timezone
import logging

from app.api.middleware.database import setup_connection
from app.api.routes.auth import verify_session, session_user_id
from app.api.routes.workout.history import fetch_workout, serialize_workout
from app.api.middleware.misc import *

logger = logging.getLogger(__name__)

router = APIRouter()

class WorkoutForm(BaseModel):
    workout_type_id: int = Field(gt=0)
    duration_min: int = Field(ge=1, le=600)
    calories: int | None = Field(default=None, ge=0, le=5000)
    performed_at: datetime
    notes: str | None = Field(default=None, max_length=1000)

    #? html forms send "" for untouched optional inputs
    @field_validator("calories", "notes", mode="before")
    def empty_to_none(cls, v):
        if isinstance(v, str) and v.strip() == "":
            return None
        return v

    @field_validator("performed_at")
    def not_in_future(cls, v):
        if v.tzinfo is None:
            v = v.replace(tzinfo=timezone.utc)
        if v > utc_now():
            raise ValueError("Cannot log future workouts")
        return v

def validate_workout_form(data) -> tuple[WorkoutForm | None, dict]:
    try:
        form = WorkoutForm.model_validate(data)
    except ValidationError as e:
        return None, field_errors(e)

    if form.workout_type_id == CARDIO_WORKOUT_TYPE_ID and not form.calories:
        return None, {"calories": ["Cardio workouts should include calories burned"]}

    return form, {}

def invalid_form_response(errors):
    return JSONResponse(
        status_code=400,
        content=action_result(False, "Please correct the errors below", errors=errors)
    )

async def fetch_workout_type(conn, workout_type_id):
    return await conn.fetchrow(
        """
        select id, name, color
        from workout_types
        where id = $1
        """, workout_type_id
    )

@router.post("")
async def workout_create(body: dict = Body(...), credentials: dict = Depends(verify_session)):
    form, errors = validate_workout_form(body)
    if errors:
        return invalid_form_response(errors)

    conn = None
    try:
        user_id = session_user_id(credentials)
        conn = await setup_connection()

        workout_type = await fetch_workout_type(conn, form.workout_type_id)
        if workout_type is None:
            return JSONResponse(
                status_code=400,
                content=action_result(False, "Invalid workout type selected")
            )

        workout_id = await conn.fetchval(
            """
            insert into workouts
            (user_id, workout_type_id, duration_min, calories, performed_at, notes)
            values
            ($1, $2, $3, $4, $5, $6)
            returning id
            """, user_id, form.workout_type_id, form.duration_min, form.calories, form.performed_at, form.notes
        )
        row = await fetch_workout(conn, user_id, workout_id)

        return action_result(
            True,
            f"{workout_type['name']} workout logged successfully!",
            data=serialize_workout(row)
        )

    except Exception as e:
        logger.exception("Error creating workout")
        return JSONResponse(
            status_code=500,
            content=action_result(False, "Failed to create workout. Please try again.")
        )
    finally:
        if conn: await conn.close()

@router.put("/{workout_id}")
async def workout_update(workout_id: int, body: dict = Body(...), credentials: dict = Depends(verify_session)):
    conn = None
    try:
        user_id = session_user_id(credentials)
        conn = await setup_connection()

        existing = await fetch_workout(conn, user_id, workout_id)
        if existing is None:
            return JSONResponse(
                status_code=404,
                content=action_result(False, "Workout not found or access denied")
            )

        form, errors = validate_workout_form(body)
        if errors:
            return invalid_form_response(errors)

        workout_type = await fetch_workout_type(conn, form.workout_type_id)
        if workout_type is None:
            return JSONResponse(
                status_code=400,
                content=action_result(False, "Invalid workout type selected")
            )

        await conn.execute(
            """
            update workouts
            set
                workout_type_id = $1,
                duration_min = $2,
                calories = $3,
                performed_at = $4,
                notes = $5
            where id = $6
            and user_id = $7
            """, form.workout_type_id, form.duration_min, form.calories, form.performed_at, form.notes, workout_id, user_id
        )
        row = await fetch_workout(conn, user_id, workout_id)

        return action_result(True, "Workout updated successfully!", data=serialize_workout(row))

    except Exception as e:
        logger.exception("Error updating workout")
        return JSONResponse(
            status_code=500,
            content=action_result(False, "Failed to update workout. Please try again.")
        )
    finally:
        if conn: await conn.close()
