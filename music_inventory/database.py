"""
Music Inventory - SQLite Database

Schema, initialization and connection helpers for the embedded SQLite
database.  Uses aiosqlite for async operations within FastAPI and plain
sqlite3 for startup work.

Song categories are stored as a JSON array of category ids on the song row
(``'[3, 1]'``), which keeps the selection order and lets each song write
touch exactly one row.  Foreign keys are switched on for every connection so
that a song can never point at a missing author.
"""

import sqlite3
from contextlib import asynccontextmanager, contextmanager
from pathlib import Path
from typing import Any, Dict

import aiosqlite
from loguru import logger

from music_inventory.config import DB_PATH

# Range of a SQLite INTEGER column (signed 64-bit)
SQLITE_INT_MIN = -(2**63)
SQLITE_INT_MAX = 2**63 - 1

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS authors (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    first_name TEXT NOT NULL,
    family_name TEXT NOT NULL,
    date_of_birth TEXT,
    date_of_death TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS categories (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS songs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    author_id INTEGER NOT NULL REFERENCES authors(id),
    summary TEXT NOT NULL,
    price REAL NOT NULL,
    stock INTEGER NOT NULL,
    image_data BLOB,
    image_content_type TEXT,
    category TEXT DEFAULT '[]',
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_authors_family_name ON authors(family_name COLLATE NOCASE);
CREATE INDEX IF NOT EXISTS idx_categories_name ON categories(name);
CREATE INDEX IF NOT EXISTS idx_songs_title ON songs(title COLLATE NOCASE);
CREATE INDEX IF NOT EXISTS idx_songs_author_id ON songs(author_id);

CREATE TRIGGER IF NOT EXISTS update_authors_timestamp
    AFTER UPDATE ON authors
    FOR EACH ROW
BEGIN
    UPDATE authors SET updated_at = CURRENT_TIMESTAMP WHERE id = OLD.id;
END;

CREATE TRIGGER IF NOT EXISTS update_categories_timestamp
    AFTER UPDATE ON categories
    FOR EACH ROW
BEGIN
    UPDATE categories SET updated_at = CURRENT_TIMESTAMP WHERE id = OLD.id;
END;

CREATE TRIGGER IF NOT EXISTS update_songs_timestamp
    AFTER UPDATE ON songs
    FOR EACH ROW
BEGIN
    UPDATE songs SET updated_at = CURRENT_TIMESTAMP WHERE id = OLD.id;
END;
"""


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------
def init_db(db_path: Path = DB_PATH) -> None:
    """Initialize the SQLite database and create tables."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with get_connection(db_path) as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()
        logger.success(f"✅ Database initialized at {db_path}")
    except Exception as e:
        logger.critical(f"❌ Failed to initialize database: {e}")
        raise


# ---------------------------------------------------------------------------
# Async context manager (for use in FastAPI routes)
# ---------------------------------------------------------------------------
@asynccontextmanager
async def get_async_connection(db_path: Path = DB_PATH):
    """Async context manager for an aiosqlite connection with row factory."""
    db = await aiosqlite.connect(str(db_path))
    db.row_factory = aiosqlite.Row
    try:
        await db.execute("PRAGMA foreign_keys = ON")
        yield db
    finally:
        await db.close()


# ---------------------------------------------------------------------------
# Sync context manager (startup / scripts)
# ---------------------------------------------------------------------------
@contextmanager
def get_connection(db_path: Path = DB_PATH):
    """Synchronous context manager for a sqlite3 connection with row factory."""
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    try:
        conn.execute("PRAGMA foreign_keys = ON")
        yield conn
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Helper: convert sqlite3.Row / aiosqlite.Row to plain dict
# ---------------------------------------------------------------------------
def row_to_dict(row) -> Dict[str, Any]:
    """Convert a database row to a plain dictionary."""
    if row is None:
        return {}
    return dict(row)
