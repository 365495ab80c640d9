import os
import asyncpg
import asyncio
import logging
from dotenv import load_dotenv

load_dotenv(override=True)

logger = logging.getLogger(__name__)

async def setup_connection() -> asyncpg.connection.Connection:
    try:
        return await asyncpg.connect(**{
            "database": os.getenv("DATABASE"),
            "user": os.getenv("DB_USER"),
            "password": os.getenv("DB_PASSWORD"),
            "host": os.getenv("DB_HOST"),
            "port": int(os.getenv("DB_PORT", "5432"))
        })

    except Exception:
        logger.exception("Error connecting to database")
        raise

if __name__ == "__main__":
    async def test_func():
        conn = await setup_connection()
        assert await conn.fetchval("select 1") == 1
        await conn.close()

    asyncio.run(test_func())
