from fastapi import APIRouter, Depends
from datetime import date, timedelta
import logging

from app.api.middleware.database import setup_connection
from app.api.routes.auth import verify_session, session_user_id
from app.api.middleware.misc import *

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/stats")
async def dashboard_stats(credentials: dict = Depends(verify_session)):
    conn = None
    try:
        user_id = session_user_id(credentials)
        conn = await setup_connection()

        totals_row = await conn.fetchrow(
            """
            select
                count(*) as workouts,
                coalesce(sum(duration_min), 0) as duration_min,
                coalesce(sum(calories), 0) as calories
            from workouts
            where user_id = $1
            """, user_id
        )

        week_row = await conn.fetchrow(
            """
            select
                count(*) as workouts,
                coalesce(sum(duration_min), 0) as duration_min,
                coalesce(sum(calories), 0) as calories
            from workouts
            where user_id = $1
            and performed_at >= now() - interval '7 days'
            """, user_id
        )

        day_rows = await conn.fetch(
            """
            select distinct (performed_at at time zone 'utc')::date as day
            from workouts
            where user_id = $1
            order by day desc
            """, user_id
        )

        return {
            "totals": serialize_totals(totals_row),
            "last_7_days": serialize_totals(week_row),
            "current_streak": current_streak([row["day"] for row in day_rows], utc_now().date())
        }

    except SafeError as e:
        raise e
    except Exception as e:
        logger.exception("Error fetching dashboard stats")
        raise Exception('uncaught error')
    finally:
        if conn: await conn.close()

def serialize_totals(row):
    return {
        "workouts": row["workouts"],
        "duration_min": int(row["duration_min"]),
        "calories": int(row["calories"]),
    }

def current_streak(workout_days, today: date) -> int:
    """Consecutive workout days ending today, or yesterday when today has none yet."""
    days = set(workout_days)

    day = today if today in days else today - timedelta(days=1)
    streak = 0
    while day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak
