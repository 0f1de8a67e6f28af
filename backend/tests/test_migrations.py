import asyncio

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from scripts.add_work_billing_dates import migrate

LEGACY_SCHEMA = [
    "CREATE TABLE contracts (id INTEGER PRIMARY KEY, filename VARCHAR(255) NOT NULL)",
    "CREATE TABLE milestones (id INTEGER PRIMARY KEY, contract_id INTEGER NOT NULL, "
    "name VARCHAR(500) NOT NULL, value NUMERIC(18, 2) NOT NULL)",
    "INSERT INTO contracts (id, filename) VALUES (1, 'legacy.pdf')",
    "INSERT INTO milestones (id, contract_id, name, value) VALUES (10, 1, 'Design', 100), (11, 1, 'Build', 200)",
]


def run_migration_twice(db_url: str) -> tuple[list[tuple], set[str]]:
    async def scenario():
        engine = create_async_engine(db_url)
        try:
            async with engine.begin() as conn:
                for statement in LEGACY_SCHEMA:
                    await conn.execute(text(statement))
            await migrate(engine)
            # Rows written by the app after the first run are numbered from 0
            async with engine.begin() as conn:
                await conn.execute(text("INSERT INTO contracts (id, filename) VALUES (2, 'new.pdf')"))
                await conn.execute(
                    text(
                        "INSERT INTO milestones (id, contract_id, name, value, sort_order) "
                        "VALUES (57, 2, 'Kickoff', 10, 0), (58, 2, 'Go-live', 20, 1)"
                    )
                )
            await migrate(engine)
            async with engine.connect() as conn:
                result = await conn.execute(text("SELECT name, sort_order FROM milestones ORDER BY contract_id, sort_order"))
                rows = [tuple(row) for row in result]
                columns = {row[1] for row in await conn.execute(text("PRAGMA table_info(contracts)"))}
                return rows, columns
        finally:
            await engine.dispose()

    return asyncio.run(scenario())


def test_migration_backfills_once_and_keeps_new_milestone_order(tmp_path):
    rows, contract_columns = run_migration_twice(f"sqlite+aiosqlite:///{tmp_path / 'legacy.db'}")

    assert rows == [("Design", 10), ("Build", 11), ("Kickoff", 0), ("Go-live", 1)]
    assert {"work_start_date", "billing_end_date", "deliverables", "confidence"} <= contract_columns
