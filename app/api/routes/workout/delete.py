from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
import logging

from app.api.middleware.database import setup_connection
from app.api.routes.auth import verify_session, session_user_id
from app.api.middleware.misc import *

logger = logging.getLogger(__name__)

router = APIRouter()

@router.delete("/{workout_id}")
async def workout_delete(workout_id: int, credentials: dict = Depends(verify_session)):
    conn = None
    try:
        conn = await setup_connection()

        deleted_id = await conn.fetchval(
            """
            delete
            from workouts
            where id = $1
            and user_id = $2
            returning id
            """, workout_id, session_user_id(credentials)
        )

        if deleted_id is None:
            return JSONResponse(
                status_code=404,
                content=action_result(False, "Workout not found or access denied")
            )

        return action_result(True, "Workout deleted successfully")

    except Exception as e:
        logger.exception("Error deleting workout")
        return JSONResponse(
            status_code=500,
            content=action_result(False, "Failed to delete workout. Please try again.")
        )
    finally:
        if conn: await conn.close()
