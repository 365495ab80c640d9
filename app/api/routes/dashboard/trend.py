from fastapi import APIRouter, Depends, Query
from datetime import datetime, date, timedelta, timezone
import logging

from app.api.middleware.database import setup_connection
from app.api.routes.auth import verify_session, session_user_id
from app.api.middleware.misc import *

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/trend")
async def dashboard_trend(days: int = Query(30, ge=1, le=365), credentials: dict = Depends(verify_session)):
    conn = None
    try:
        conn = await setup_connection()

        today = utc_now().date()
        rows = await conn.fetch(
            """
            select performed_at, duration_min, calories
            from workouts
            where user_id = $1
            and performed_at >= $2
            """, session_user_id(credentials), trend_start(today, days)
        )

        return {
            "days": days,
            "trend": build_trend(rows, days, today)
        }

    except SafeError as e:
        raise e
    except Exception as e:
        logger.exception("Error building workout trend")
        raise Exception('uncaught error')
    finally:
        if conn: await conn.close()

def trend_start(today: date, days: int) -> datetime:
    first_day = today - timedelta(days=days - 1)
    return datetime.combine(first_day, datetime.min.time(), tzinfo=timezone.utc)

def build_trend(rows, days: int, today: date) -> list:
    buckets = {}
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        buckets[day] = {
            "date": day.isoformat(),
            "workouts": 0,
            "duration_min": 0,
            "calories": 0,
        }

    for row in rows:
        day = row["performed_at"].astimezone(timezone.utc).date()
        if day not in buckets: continue
        buckets[day]["workouts"] += 1
        buckets[day]["duration_min"] += row["duration_min"]
        buckets[day]["calories"] += row["calories"] or 0

    return list(buckets.values())
