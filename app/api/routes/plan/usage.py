from fastapi import APIRouter, Depends, Query
import logging

from app.api.middleware.database import setup_connection
from app.api.middleware.ai_usage import *
from app.api.routes.auth import verify_session, session_user_id
from app.api.middleware.misc import *

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/api/ai/usage")
async def ai_usage(days: int = Query(30, ge=1, le=365), credentials: dict = Depends(verify_session)):
    conn = None
    try:
        user_id = session_user_id(credentials)
        conn = await setup_connection()

        summary = await get_user_ai_usage(conn, user_id, days)
        quota = await check_user_quota(conn, user_id)

        return {
            "days": days,
            "usage": summary.to_dict(),
            "quota": quota.to_dict(),
            "limits": {
                "daily_requests": DAILY_REQUEST_LIMIT,
                "monthly_cost": MONTHLY_COST_LIMIT,
                "daily_tokens": DAILY_TOKEN_LIMIT,
            }
        }

    except SafeError as e:
        raise e
    except Exception as e:
        logger.exception("Error fetching AI usage")
        raise Exception('uncaught error')
    finally:
        if conn: await conn.close()
