import asyncio
import argparse
import json
from dataclasses import asdict

from app.api.middleware.database import setup_connection
from app.api.middleware.ai_usage import get_ai_analytics

async def print_ai_analytics(days):
    conn = None
    try:
        conn = await setup_connection()
        analytics = await get_ai_analytics(conn, days)
        print(json.dumps(asdict(analytics), indent=2, default=str))
    finally:
        if conn: await conn.close()

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="AI usage across all users")
    parser.add_argument("--days", type=int, default=7)
    args = parser.parse_args()

    asyncio.run(print_ai_analytics(args.days))
