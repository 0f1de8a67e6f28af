"""Add work/billing period columns and extraction metadata to contracts created before they existed."""
import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from revrec.config import get_settings
from revrec.database import engine
from revrec.logging_config import configure_logging

logger = logging.getLogger("scripts.add_work_billing_dates")

COLUMNS = [
    ("work_start_date", "DATE"),
    ("work_end_date", "DATE"),
    ("billing_start_date", "DATE"),
    ("billing_end_date", "DATE"),
    ("payment_terms", "TEXT"),
    ("deliverables", "JSON"),
    ("confidence", "NUMERIC(4,3)"),
    ("reasoning", "TEXT"),
]


async def _column_names(conn: AsyncConnection, table: str) -> set[str]:
    columns = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_columns(table))
    return {c["name"] for c in columns}


async def migrate(target: AsyncEngine = engine) -> None:
    async with target.begin() as conn:
        existing = await _column_names(conn, "contracts")
        for name, column_type in COLUMNS:
            if name not in existing:
                await conn.execute(text(f"ALTER TABLE contracts ADD COLUMN {name} {column_type}"))
                logger.info("Added contracts.%s", name)

        if "sort_order" not in await _column_names(conn, "milestones"):
            await conn.execute(text("ALTER TABLE milestones ADD COLUMN sort_order INTEGER NOT NULL DEFAULT 0"))
            # Rows from before the column existed keep insertion order
            await conn.execute(text("UPDATE milestones SET sort_order = id"))
            logger.info("Added milestones.sort_order")
    logger.info("Migration complete")


if __name__ == "__main__":
    configure_logging(get_settings().log_level)
    asyncio.run(migrate())
