import asyncio
import json
import logging
from pathlib import Path

from app.api.middleware.database import setup_connection

logger = logging.getLogger(__name__)

LOCAL_DIR = Path(__file__).resolve().parent

#? cardio must be seeded first, id 1 carries the calories rule
with open(LOCAL_DIR / "workout_types.json", "r") as file:
    workout_types_json = json.load(file)

async def create_schema():
    conn = None
    try:
        conn = await setup_connection()
        await conn.execute((LOCAL_DIR / "schema.sql").read_text())
    finally:
        if conn: await conn.close()

async def insert_workout_types():
    conn = None
    try:
        conn = await setup_connection()

        for workout_type in workout_types_json:
            await conn.execute(
                """
                insert into workout_types
                (name, color)
                values
                ($1, $2)
                on conflict (name) do update
                set color = $2
                """, workout_type["name"], workout_type["color"]
            )

    except Exception as e:
        logger.exception("Failed to insert workout types")
        raise e
    finally:
        if conn: await conn.close()

async def main():
    await create_schema()
    await insert_workout_types()

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
