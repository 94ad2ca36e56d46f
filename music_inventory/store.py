"""
Music Inventory - Entity Store

Async CRUD over the three catalog tables.  A single ``CatalogStore`` is
built at application start and handed to every request handler; it only
holds the database path, so concurrent requests share nothing else.

Every public method opens its own connection, which lets handlers issue
independent lookups concurrently with ``asyncio.gather``.  Database errors
are re-raised as ``StorageError``.
"""

import asyncio
import json
import sqlite3
from contextlib import asynccontextmanager
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from loguru import logger

from music_inventory.config import DB_PATH
from music_inventory.database import (
    SQLITE_INT_MAX,
    SQLITE_INT_MIN,
    get_async_connection,
    row_to_dict,
)
from music_inventory.exceptions import StorageError
from music_inventory.models import (
    AUTHOR,
    CATEGORY,
    MODEL_FOR_KIND,
    SONG,
    Author,
    Category,
    Song,
)

_TABLES = {
    AUTHOR: "authors",
    CATEGORY: "categories",
    SONG: "songs",
}

# Natural listing order per kind
_ORDER_BY = {
    AUTHOR: "family_name COLLATE NOCASE ASC, first_name COLLATE NOCASE ASC",
    CATEGORY: "name ASC",
    SONG: "title COLLATE NOCASE ASC",
}

# Writable columns per kind
_COLUMNS = {
    AUTHOR: ("first_name", "family_name", "date_of_birth", "date_of_death"),
    CATEGORY: ("name",),
    SONG: (
        "title",
        "author_id",
        "summary",
        "price",
        "stock",
        "image_data",
        "image_content_type",
        "category",
    ),
}


def parse_id(value: Any) -> Optional[int]:
    """Turn a path/form id into an int, or None if it cannot be one.

    Values outside the SQLite INTEGER range can never match a row.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        pk = value
    else:
        try:
            pk = int(str(value).strip())
        except (TypeError, ValueError):
            return None
    if not SQLITE_INT_MIN <= pk <= SQLITE_INT_MAX:
        return None
    return pk


def _table(kind: str) -> str:
    try:
        return _TABLES[kind]
    except KeyError:
        raise ValueError(f"Unknown record kind: {kind!r}") from None


def _serialize(kind: str, values: Dict[str, Any]) -> Dict[str, Any]:
    """Map model-shaped values onto table columns, dropping unknown keys."""
    data = dict(values)
    if kind == SONG and "category_ids" in data:
        data["category"] = json.dumps([int(i) for i in data.pop("category_ids")])
    for key, value in data.items():
        if isinstance(value, date):
            data[key] = value.isoformat()
    allowed = _COLUMNS[kind]
    return {k: v for k, v in data.items() if k in allowed}


class CatalogStore:
    """Persistence for authors, categories and songs."""

    def __init__(self, db_path: Path = DB_PATH):
        self.db_path = Path(db_path)

    @asynccontextmanager
    async def _connect(self):
        try:
            async with get_async_connection(self.db_path) as db:
                yield db
        except (sqlite3.Error, OverflowError) as e:
            logger.error("❌ Storage failure: {}", e)
            raise StorageError("Storage operation failed", details=str(e)) from e

    def _to_model(self, kind: str, row) -> Any:
        return MODEL_FOR_KIND[kind].from_row(row_to_dict(row))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def find_all(self, kind: str) -> List[Any]:
        """Return every record of *kind* in its natural order."""
        table = _table(kind)
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT * FROM {table} ORDER BY {_ORDER_BY[kind]}, id ASC"
            )
            rows = await cursor.fetchall()
        return [self._to_model(kind, r) for r in rows]

    async def find_by_id(self, kind: str, entity_id: Any) -> Optional[Any]:
        """Return the record with *entity_id*, or None if it does not exist."""
        table = _table(kind)
        pk = parse_id(entity_id)
        if pk is None:
            return None
        async with self._connect() as db:
            cursor = await db.execute(f"SELECT * FROM {table} WHERE id = ?", (pk,))
            row = await cursor.fetchone()
        return self._to_model(kind, row) if row else None

    async def find_by_filter(self, kind: str, **filters: Any) -> List[Any]:
        """Return records whose columns equal the given values."""
        table = _table(kind)
        unknown = set(filters) - set(_COLUMNS[kind]) - {"id"}
        if unknown:
            raise ValueError(f"Cannot filter {kind} on {sorted(unknown)}")

        where = " AND ".join(f"{k} = ?" for k in filters) or "1 = 1"
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT * FROM {table} WHERE {where} ORDER BY {_ORDER_BY[kind]}, id ASC",
                list(filters.values()),
            )
            rows = await cursor.fetchall()
        return [self._to_model(kind, r) for r in rows]

    async def find_one(self, kind: str, **filters: Any) -> Optional[Any]:
        """Return the first record matching *filters*, or None."""
        found = await self.find_by_filter(kind, **filters)
        return found[0] if found else None

    async def find_many(self, kind: str, ids: Iterable[Any]) -> List[Any]:
        """Return the records for *ids*, in the order the ids were given.

        Ids with no matching record are skipped.
        """
        table = _table(kind)
        wanted = [pk for pk in (parse_id(i) for i in ids) if pk is not None]
        if not wanted:
            return []

        placeholders = ", ".join("?" for _ in wanted)
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT * FROM {table} WHERE id IN ({placeholders})", wanted
            )
            rows = await cursor.fetchall()

        by_id = {r["id"]: self._to_model(kind, r) for r in rows}
        return [by_id[pk] for pk in wanted if pk in by_id]

    async def find_songs_by_author(self, author_id: Any) -> List[Song]:
        pk = parse_id(author_id)
        if pk is None:
            return []
        return await self.find_by_filter(SONG, author_id=pk)

    async def find_songs_by_category(self, category_id: Any) -> List[Song]:
        """Return every song whose category list contains *category_id*."""
        pk = parse_id(category_id)
        if pk is None:
            return []
        async with self._connect() as db:
            cursor = await db.execute(
                f"""
                SELECT * FROM songs
                WHERE EXISTS (
                    SELECT 1 FROM json_each(songs.category)
                    WHERE json_each.value = ?
                )
                ORDER BY {_ORDER_BY[SONG]}, id ASC
                """,
                (pk,),
            )
            rows = await cursor.fetchall()
        return [Song.from_row(row_to_dict(r)) for r in rows]

    async def find_dependents(self, kind: str, entity_id: Any) -> List[Song]:
        """Return the songs that reference an author or category."""
        if kind == AUTHOR:
            return await self.find_songs_by_author(entity_id)
        if kind == CATEGORY:
            return await self.find_songs_by_category(entity_id)
        # Nothing references a song
        _table(kind)
        return []

    async def populate_song(self, song: Song) -> Tuple[Optional[Author], List[Category]]:
        """Resolve a song's author and categories into full records."""
        author, categories = await asyncio.gather(
            self.find_by_id(AUTHOR, song.author_id),
            self.find_many(CATEGORY, song.category_ids),
        )
        return author, categories

    async def count(self, kind: str) -> int:
        table = _table(kind)
        async with self._connect() as db:
            cursor = await db.execute(f"SELECT COUNT(*) AS cnt FROM {table}")
            row = await cursor.fetchone()
        return row["cnt"] if row else 0

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    async def insert(self, kind: str, values: Dict[str, Any]) -> Any:
        """Insert a record and return it with its new id."""
        table = _table(kind)
        data = _serialize(kind, values)
        if not data:
            raise ValueError(f"No writable {kind} fields given")

        columns = ", ".join(data)
        placeholders = ", ".join("?" for _ in data)
        async with self._connect() as db:
            cursor = await db.execute(
                f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
                list(data.values()),
            )
            await db.commit()
            new_id = cursor.lastrowid
            cursor = await db.execute(f"SELECT * FROM {table} WHERE id = ?", (new_id,))
            row = await cursor.fetchone()

        logger.success("✅ {} added (id={})", kind.capitalize(), new_id)
        return self._to_model(kind, row)

    async def update(self, kind: str, entity_id: Any, values: Dict[str, Any]) -> bool:
        """Overwrite fields of an existing record. Returns True if a row changed."""
        table = _table(kind)
        pk = parse_id(entity_id)
        data = _serialize(kind, values)
        if pk is None or not data:
            return False

        set_clause = ", ".join(f"{k} = ?" for k in data)
        async with self._connect() as db:
            cursor = await db.execute(
                f"UPDATE {table} SET {set_clause} WHERE id = ?",
                list(data.values()) + [pk],
            )
            await db.commit()
            updated = cursor.rowcount > 0

        if updated:
            logger.info("✏️ {} id={} updated: {}", kind.capitalize(), pk, list(data))
        return updated

    async def remove(self, kind: str, entity_id: Any) -> bool:
        """Delete a record by id. Returns True if a row was deleted."""
        table = _table(kind)
        pk = parse_id(entity_id)
        if pk is None:
            return False

        async with self._connect() as db:
            cursor = await db.execute(f"DELETE FROM {table} WHERE id = ?", (pk,))
            await db.commit()
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info("🗑️ {} id={} deleted", kind.capitalize(), pk)
        else:
            logger.warning("⚠️ {} id={} not found for deletion", kind.capitalize(), pk)
        return deleted
