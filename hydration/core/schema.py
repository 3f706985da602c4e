"""SQLite schema management (code-first approach)."""

import logging

from hydration.core import db_client


logger = logging.getLogger(__name__)


# Central list of all collections in the schema
COLLECTIONS = [
    "users",
    "water_tasks",
]


_TABLES: dict[str, str] = {
    "users": """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            openid TEXT NOT NULL,
            nickname TEXT NOT NULL DEFAULT '用户',
            subscribed INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL,
            last_reminded TEXT
        )
    """,
    "water_tasks": """
        CREATE TABLE IF NOT EXISTS water_tasks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            openid TEXT NOT NULL,
            scheduled_time TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending'
                CHECK (status IN ('pending', 'completed', 'missed')),
            water_amount INTEGER NOT NULL CHECK (water_amount > 0),
            completed_at TEXT,
            created_at TEXT NOT NULL,
            CHECK ((status = 'completed') = (completed_at IS NOT NULL))
        )
    """,
}

_INDEXES: list[str] = [
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_users_openid ON users (openid)",
    # At most one task per user per exact slot
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_water_tasks_owner_slot ON water_tasks (openid, scheduled_time)",
    "CREATE INDEX IF NOT EXISTS idx_water_tasks_status_slot ON water_tasks (status, scheduled_time)",
]


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes if they do not exist yet."""
    conn = await db_client.get_connection(db_path=db_path)

    for collection in COLLECTIONS:
        await conn.execute(_TABLES[collection])
        logger.debug("Ensured table", extra={"collection": collection})

    for statement in _INDEXES:
        await conn.execute(statement)

    await conn.commit()
    logger.info("Database schema initialized", extra={"collections": COLLECTIONS})
