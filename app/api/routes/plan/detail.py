from fastapi import APIRouter, Depends
import logging

from app.api.middleware.database import setup_connection
from app.api.routes.auth import verify_session, session_user_id
from app.api.routes.plan.list_all import fetch_plan_days, serialize_plan
from app.api.middleware.misc import *

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/{plan_id}")
async def plan_detail(plan_id: int, credentials: dict = Depends(verify_session)):
    conn = None
    try:
        conn = await setup_connection()

        plan_row = await conn.fetchrow(
            """
            select *
            from plans
            where id = $1
            and user_id = $2
            """, plan_id, session_user_id(credentials)
        )
        if plan_row is None:
            raise NotFoundError("Plan not found")

        plan = serialize_plan(plan_row, await fetch_plan_days(conn, plan_id))

        return {
            "plan": plan,
            "weeks": group_days_by_week(plan["plan_days"])
        }

    except SafeError as e:
        raise e
    except Exception as e:
        logger.exception("Error fetching plan")
        raise Exception('uncaught error')
    finally:
        if conn: await conn.close()

def group_days_by_week(plan_days):
    weeks = {}
    for day in plan_days:
        exercise_data = day["ai_exercise_data"] or {}
        week = exercise_data.get("week") or 1
        weeks.setdefault(week, []).append(day)

    return [
        {"week": week, "days": weeks[week]}
        for week in sorted(weeks)
    ]
