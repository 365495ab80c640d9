from fastapi import APIRouter
import logging

from app.api.middleware.database import setup_connection
from app.api.middleware.misc import *

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/api/workout-types")
async def workout_types_list():
    try:
        return await get_workout_types()
    except SafeError as e:
        raise e
    except Exception as e:
        logger.exception("Error fetching workout types")
        raise Exception('uncaught error')

async def get_workout_types():
    conn = None
    try:
        conn = await setup_connection()

        rows = await conn.fetch(
            """
            select id, name, color, created_at
            from workout_types
            order by name
            """
        )

        return [
            {
                "id": row["id"],
                "name": row["name"],
                "color": row["color"],
                "created_at": datetime_to_timestamp_ms(row["created_at"]),
            }
            for row in rows
        ]

    finally:
        if conn: await conn.close()
