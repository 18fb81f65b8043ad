# init_db.py
import argparse
import asyncio
import logging

from clinic.core.logging import configure_logging
from clinic.db.sql import engine, init_db

logger = logging.getLogger("init_db")


async def init_models(drop: bool) -> None:
    await init_db(drop=drop)
    await engine.dispose()
    logger.info("database schema ready", extra={"dropped": drop})


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the clinic tables.")
    parser.add_argument("--drop", action="store_true", help="drop every table first")
    args = parser.parse_args()

    configure_logging()
    asyncio.run(init_models(args.drop))
