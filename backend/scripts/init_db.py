"""Create the contracts and milestones tables."""
import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from revrec.config import get_settings
from revrec.database import init_db
from revrec.logging_config import configure_logging

logger = logging.getLogger("scripts.init_db")


async def main():
    configure_logging(get_settings().log_level)
    await init_db()
    logger.info("Database tables created")


if __name__ == "__main__":
    asyncio.run(main())
