#!/usr/bin/env python3
"""
Create (or reset) the OE Manager SQLite database.

Usage: init_db.py [DATABASE_PATH] [--reset]
"""
import asyncio
import logging
import os
import sys
from typing import List

from services.process_graph_service import ProcessGraphService

logger = logging.getLogger(__name__)

OE_TABLES = ("process_steps", "process_step_edges")


async def init_database(db_path: str, reset: bool = False) -> List[str]:
    """Apply the schema and return the OE tables present afterwards"""
    if reset and os.path.exists(db_path):
        os.remove(db_path)
        logger.info(f"Removed existing database {db_path}")

    service = ProcessGraphService(db_path)
    await service.connect()
    try:
        async with service.db.execute(
            "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
        ) as cursor:
            rows = await cursor.fetchall()
    finally:
        await service.close()

    return [row["name"] for row in rows if row["name"] in OE_TABLES]


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    args = [a for a in sys.argv[1:] if a != "--reset"]
    db_path = os.path.abspath(args[0] if args else os.getenv("DATABASE_PATH", "oe_manager.db"))

    tables = asyncio.run(init_database(db_path, reset="--reset" in sys.argv))
    logger.info(f"Database ready at {db_path} with tables: {', '.join(tables)}")
    sys.exit(0 if len(tables) == len(OE_TABLES) else 1)
