"""SQLite schema management (code-first approach)."""

import logging

import aiosqlite

from src.core.db_client import get_db_path


logger = logging.getLogger(__name__)


# Central list of all collections in the schema, in dependency order
COLLECTIONS = [
    "profiles",
    "credentials",
    "rooms",
    "tasks",
    "preferences",
]


_TABLE_DEFINITIONS: dict[str, str] = {
    "profiles": """
        CREATE TABLE IF NOT EXISTS profiles (
            id TEXT PRIMARY KEY,
            created TEXT NOT NULL,
            updated TEXT NOT NULL,
            role TEXT NOT NULL DEFAULT 'housekeeper' CHECK (role IN ('admin', 'housekeeper')),
            full_name TEXT,
            bio TEXT,
            date_of_birth TEXT,
            push_token TEXT
        )
    """,
    "credentials": """
        CREATE TABLE IF NOT EXISTS credentials (
            id TEXT PRIMARY KEY,
            created TEXT NOT NULL,
            updated TEXT NOT NULL,
            email TEXT NOT NULL UNIQUE,
            password_hash TEXT NOT NULL,
            user_id TEXT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE
        )
    """,
    "rooms": """
        CREATE TABLE IF NOT EXISTS rooms (
            id TEXT PRIMARY KEY,
            created TEXT NOT NULL,
            updated TEXT NOT NULL,
            name TEXT NOT NULL,
            description TEXT,
            created_by TEXT NOT NULL
        )
    """,
    "tasks": """
        CREATE TABLE IF NOT EXISTS tasks (
            id TEXT PRIMARY KEY,
            created TEXT NOT NULL,
            updated TEXT NOT NULL,
            title TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            priority TEXT NOT NULL DEFAULT 'medium' CHECK (priority IN ('low', 'medium', 'high')),
            completed INTEGER NOT NULL DEFAULT 0,
            estimated_time TEXT NOT NULL DEFAULT '',
            notes TEXT,
            assigned_to TEXT,
            room_id TEXT REFERENCES rooms(id) ON DELETE SET NULL,
            created_by TEXT NOT NULL
        )
    """,
    "preferences": """
        CREATE TABLE IF NOT EXISTS preferences (
            id TEXT PRIMARY KEY,
            created TEXT NOT NULL,
            updated TEXT NOT NULL,
            key TEXT NOT NULL UNIQUE,
            value TEXT NOT NULL
        )
    """,
}

_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_assigned_to ON tasks (assigned_to)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_room_id ON tasks (room_id)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_created ON tasks (created)",
    "CREATE INDEX IF NOT EXISTS idx_profiles_role ON profiles (role)",
]


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes (idempotent).

    Args:
        db_path: Optional database path. If not provided, uses settings.sqlite_db_path.
    """
    path = get_db_path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Initializing SQLite schema", extra={"db_path": str(path)})

    async with aiosqlite.connect(str(path)) as conn:
        await conn.execute("PRAGMA foreign_keys = ON")
        for collection in COLLECTIONS:
            await conn.execute(_TABLE_DEFINITIONS[collection])
        for index in _INDEXES:
            await conn.execute(index)
        await conn.commit()

    logger.info("SQLite schema ready", extra={"collections": COLLECTIONS})
