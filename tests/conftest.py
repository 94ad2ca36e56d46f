"""
Music Inventory - Pytest Configuration & Shared Fixtures

Provides reusable fixtures for:
- A freshly initialized SQLite database per test
- A CatalogStore bound to that database
- A FastAPI TestClient running the full application against it
- Helpers for seeding authors, categories and songs
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from music_inventory.database import init_db
from music_inventory.main import create_app
from music_inventory.models import AUTHOR, CATEGORY, SONG
from music_inventory.store import CatalogStore
from tests.helpers import PNG_BYTES, run

# ---------------------------------------------------------------------------
# Database / store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Provide an initialized, empty database file."""
    path = tmp_path / "inventory.db"
    init_db(path)
    return path


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    d = tmp_path / "uploads"
    d.mkdir()
    return d


@pytest.fixture
def store(db_path: Path) -> CatalogStore:
    return CatalogStore(db_path)


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def make_author(store: CatalogStore):
    """Factory fixture: insert an author and return it."""

    def _factory(first_name: str = "Freddie", family_name: str = "Mercury", **extra):
        values = {"first_name": first_name, "family_name": family_name, **extra}
        return run(store.insert(AUTHOR, values))

    return _factory


@pytest.fixture
def make_category(store: CatalogStore):
    """Factory fixture: insert a category and return it."""

    def _factory(name: str = "Rock"):
        return run(store.insert(CATEGORY, {"name": name}))

    return _factory


@pytest.fixture
def make_song(store: CatalogStore, make_author):
    """Factory fixture: insert a song (creating an author if none given)."""

    def _factory(
        title: str = "Bohemian Rhapsody",
        author_id: Optional[int] = None,
        category_ids: Optional[List[int]] = None,
        **extra: Any,
    ):
        if author_id is None:
            author_id = make_author().id
        values: Dict[str, Any] = {
            "title": title,
            "author_id": author_id,
            "summary": "A six minute suite",
            "price": 1.99,
            "stock": 10,
            "category_ids": category_ids or [],
            "image_data": PNG_BYTES,
            "image_content_type": "image/png",
        }
        values.update(extra)
        return run(store.insert(SONG, values))

    return _factory


# ---------------------------------------------------------------------------
# Application fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def client(db_path: Path, upload_dir: Path):
    """TestClient for the full application, sharing the test database."""
    app = create_app(db_path=db_path, upload_dir=upload_dir)
    with TestClient(app) as c:
        yield c

