from fastapi import APIRouter, Depends
import json
import logging

from app.api.middleware.database import setup_connection
from app.api.routes.auth import verify_session, session_user_id
from app.api.middleware.misc import *

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("")
async def plans_list_ai(credentials: dict = Depends(verify_session)):
    conn = None
    try:
        conn = await setup_connection()

        plan_rows = await conn.fetch(
            """
            select *
            from plans
            where user_id = $1
            and is_active
            and ai_generated
            order by created_at desc
            """, session_user_id(credentials)
        )

        plans = []
        for plan_row in plan_rows:
            day_rows = await fetch_plan_days(conn, plan_row["id"])
            plans.append(serialize_plan(plan_row, day_rows))

        return {
            "success": True,
            "plans": plans
        }

    except SafeError as e:
        raise e
    except Exception as e:
        logger.exception("Error fetching AI plans")
        raise InternalError("Failed to fetch workout plans")
    finally:
        if conn: await conn.close()

async def fetch_plan_days(conn, plan_id):
    return await conn.fetch(
        """
        select *
        from plan_days
        where plan_id = $1
        order by day_of_week, id
        """, plan_id
    )

def decode_json(value):
    #? asyncpg hands jsonb back as text
    if isinstance(value, str):
        return json.loads(value)
    return value

def serialize_plan_day(row):
    return {
        "id": row["id"],
        "day_of_week": row["day_of_week"],
        "workout_type_id": row["workout_type_id"],
        "target_duration": row["target_duration"],
        "target_calories": row["target_calories"],
        "description": row["description"],
        "is_completed": row["is_completed"],
        "ai_exercise_data": decode_json(row["ai_exercise_data"]),
    }

def serialize_plan(row, day_rows):
    return {
        "id": row["id"],
        "title": row["title"],
        "description": row["description"],
        "week_start": datetime_to_timestamp_ms(row["week_start"]),
        "is_active": row["is_active"],
        "ai_generated": row["ai_generated"],
        "ai_model_version": row["ai_model_version"],
        "created_at": datetime_to_timestamp_ms(row["created_at"]),
        "plan_days": [serialize_plan_day(day_row) for day_row in day_rows],
    }
