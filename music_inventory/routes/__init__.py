"""
Music Inventory - Routes

Handler classes for each record kind.  ``build_routers`` wires them to one
store and renderer; it is called once from ``create_app``.
"""

from pathlib import Path
from typing import List

from fastapi import APIRouter

from music_inventory.rendering import Renderer
from music_inventory.routes.authors import AuthorHandlers
from music_inventory.routes.categories import CategoryHandlers
from music_inventory.routes.index import IndexHandlers
from music_inventory.routes.songs import SongHandlers
from music_inventory.store import CatalogStore


def build_routers(
    store: CatalogStore, renderer: Renderer, upload_dir: Path
) -> List[APIRouter]:
    handlers = [
        IndexHandlers(store, renderer),
        SongHandlers(store, renderer, upload_dir=upload_dir),
        AuthorHandlers(store, renderer),
        CategoryHandlers(store, renderer),
    ]
    return [h.router() for h in handlers]


__all__ = [
    "AuthorHandlers",
    "CategoryHandlers",
    "IndexHandlers",
    "SongHandlers",
    "build_routers",
]
