"""Connectivity check: python -m payment_service.dbcheck"""

import asyncio
import sys

from payment_service.database import close_db, ping_db
from payment_service.logger import get_logger

logger = get_logger(__name__)


async def check_connection() -> bool:
    try:
        db_time = await ping_db()
        logger.info(f"Payment Service DB connected, DB time: {db_time}")
        return True
    except Exception as e:
        logger.error(f"DB connection failed: {e}")
        return False
    finally:
        await close_db()


if __name__ == "__main__":
    sys.exit(0 if asyncio.run(check_connection()) else 1)
