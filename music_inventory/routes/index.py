"""
Music Inventory - Catalog Home

Dashboard with the number of songs, authors and categories.
"""

import asyncio

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from loguru import logger

from music_inventory.config import CATALOG_PREFIX
from music_inventory.exceptions import StorageError
from music_inventory.models import AUTHOR, CATEGORY, SONG
from music_inventory.routes.base import CatalogHandlers


class IndexHandlers(CatalogHandlers):
    def router(self) -> APIRouter:
        router = APIRouter(tags=["Pages"])
        router.add_api_route("/", self.root, methods=["GET"])
        router.add_api_route(
            CATALOG_PREFIX, self.home, methods=["GET"], response_class=HTMLResponse
        )
        return router

    async def root(self):
        return self.redirect(CATALOG_PREFIX)

    async def home(self, request: Request):
        """Landing page with record counts.

        A storage failure is shown on the page itself rather than replacing
        it with the error page.
        """
        data = None
        error = None
        try:
            song_count, author_count, category_count = await asyncio.gather(
                self.store.count(SONG),
                self.store.count(AUTHOR),
                self.store.count(CATEGORY),
            )
            data = {
                "song_count": song_count,
                "author_count": author_count,
                "category_count": category_count,
            }
        except StorageError as e:
            logger.error("❌ Could not count catalog records: {}", e.details)
            error = e.message

        context = {
            "page_title": "Music Inventory Home",
            "data": data,
            "error": error,
        }
        return self.renderer.render(request, "index.html", context)
