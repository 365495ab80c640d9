from fastapi import APIRouter, Depends, Query
import logging

from app.api.middleware.database import setup_connection
from app.api.routes.auth import verify_session, session_user_id
from app.api.middleware.misc import *

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_PAGE_SIZE = 50

@router.get("")
async def workouts_list(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    credentials: dict = Depends(verify_session)
):
    conn = None
    try:
        conn = await setup_connection()

        #? one extra row tells us whether another page exists
        rows = await conn.fetch(
            """
            select w.*, wt.name as workout_type_name, wt.color as workout_type_color
            from workouts w
            inner join workout_types wt
            on wt.id = w.workout_type_id
            where w.user_id = $1
            order by w.performed_at desc, w.id desc
            limit $2
            offset $3
            """, session_user_id(credentials), limit + 1, (page - 1) * limit
        )

        return {
            "workouts": [serialize_workout(row) for row in rows[:limit]],
            "page": page,
            "limit": limit,
            "has_more": len(rows) > limit
        }

    except SafeError as e:
        raise e
    except Exception as e:
        logger.exception("Failed to list workouts")
        raise Exception('uncaught error')
    finally:
        if conn: await conn.close()

@router.get("/{workout_id}")
async def workout_get(workout_id: int, credentials: dict = Depends(verify_session)):
    conn = None
    try:
        conn = await setup_connection()

        row = await fetch_workout(conn, session_user_id(credentials), workout_id)
        if row is None:
            raise NotFoundError("Workout not found or access denied")

        return {
            "workout": serialize_workout(row)
        }

    except SafeError as e:
        raise e
    except Exception as e:
        logger.exception("Failed to fetch workout")
        raise Exception('uncaught error')
    finally:
        if conn: await conn.close()

async def fetch_workout(conn, user_id, workout_id):
    return await conn.fetchrow(
        """
        select w.*, wt.name as workout_type_name, wt.color as workout_type_color
        from workouts w
        inner join workout_types wt
        on wt.id = w.workout_type_id
        where w.id = $1
        and w.user_id = $2
        """, workout_id, user_id
    )

def serialize_workout(row):
    return {
        "id": row["id"],
        "workout_type": {
            "id": row["workout_type_id"],
            "name": row["workout_type_name"],
            "color": row["workout_type_color"],
        },
        "duration_min": row["duration_min"],
        "calories": row["calories"],
        "performed_at": datetime_to_timestamp_ms(row["performed_at"]),
        "notes": row["notes"],
        "created_at": datetime_to_timestamp_ms(row["created_at"]),
    }
