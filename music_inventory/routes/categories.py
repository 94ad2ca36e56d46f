"""
Music Inventory - Category Pages

List, detail, create, update and delete for categories.  A category that
is still used by a song cannot be deleted; the delete page lists those
songs instead.
"""

import asyncio

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from loguru import logger

from music_inventory.config import CATALOG_PREFIX
from music_inventory.exceptions import NotFoundError
from music_inventory.integrity import check_delete, delete_unless_referenced
from music_inventory.models import CATEGORY
from music_inventory.routes.base import CatalogHandlers, read_form
from music_inventory.validation import (
    CategoryForm,
    FieldError,
    validate_category_form,
)

LIST_URL = f"{CATALOG_PREFIX}/categories"


class CategoryHandlers(CatalogHandlers):
    def router(self) -> APIRouter:
        router = APIRouter(prefix=CATALOG_PREFIX, tags=["Categories"])
        # create must be registered before the {category_id} routes
        router.add_api_route(
            "/category/create",
            self.create_get,
            methods=["GET"],
            response_class=HTMLResponse,
        )
        router.add_api_route("/category/create", self.create_post, methods=["POST"])
        router.add_api_route(
            "/category/{category_id}/delete",
            self.delete_get,
            methods=["GET"],
            response_class=HTMLResponse,
        )
        router.add_api_route(
            "/category/{category_id}/delete", self.delete_post, methods=["POST"]
        )
        router.add_api_route(
            "/category/{category_id}/update",
            self.update_get,
            methods=["GET"],
            response_class=HTMLResponse,
        )
        router.add_api_route(
            "/category/{category_id}/update", self.update_post, methods=["POST"]
        )
        router.add_api_route(
            "/category/{category_id}",
            self.detail,
            methods=["GET"],
            response_class=HTMLResponse,
        )
        router.add_api_route(
            "/categories", self.list_page, methods=["GET"], response_class=HTMLResponse
        )
        return router

    def _render_form(self, request: Request, title: str, category, errors=None):
        context = {
            "page_title": title,
            "category": category,
            "errors": errors or [],
        }
        return self.renderer.render(request, "category_form.html", context)

    # ------------------------------------------------------------------
    # List / detail
    # ------------------------------------------------------------------
    async def list_page(self, request: Request):
        categories = await self.store.find_all(CATEGORY)
        context = {"page_title": "Category List", "category_list": categories}
        return self.renderer.render(request, "category_list.html", context)

    async def detail(self, request: Request, category_id: str):
        category, songs = await asyncio.gather(
            self.store.find_by_id(CATEGORY, category_id),
            self.store.find_songs_by_category(category_id),
        )
        if category is None:
            raise NotFoundError(CATEGORY, category_id)
        context = {
            "page_title": "Category Detail",
            "category": category,
            "category_songs": songs,
        }
        return self.renderer.render(request, "category_detail.html", context)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------
    async def create_get(self, request: Request):
        return self._render_form(request, "Create Category", CategoryForm())

    async def create_post(self, request: Request):
        fields, _ = await read_form(request)
        result = validate_category_form(fields)

        if not result.ok:
            return self._render_form(
                request, "Create Category", result.form, result.errors
            )

        existing = await self.store.find_one(CATEGORY, name=result.form.name)
        if existing is not None:
            logger.info(
                "Category '{}' already exists (id={})", existing.name, existing.id
            )
            return self.redirect(existing.url)

        category = await self.store.insert(CATEGORY, {"name": result.form.name})
        return self.redirect(category.url)

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------
    async def update_get(self, request: Request, category_id: str):
        category = await self.store.find_by_id(CATEGORY, category_id)
        if category is None:
            raise NotFoundError(CATEGORY, category_id)
        return self._render_form(
            request, "Update Category", CategoryForm(name=category.name)
        )

    async def update_post(self, request: Request, category_id: str):
        fields, _ = await read_form(request)
        result = validate_category_form(fields)

        category = await self.store.find_by_id(CATEGORY, category_id)
        if category is None:
            raise NotFoundError(CATEGORY, category_id)

        if result.ok:
            clash = await self.store.find_one(CATEGORY, name=result.form.name)
            if clash is not None and clash.id != category.id:
                result.errors.append(
                    FieldError("name", "A category with this name already exists.")
                )

        if not result.ok:
            return self._render_form(
                request, "Update Category", result.form, result.errors
            )

        await self.store.update(CATEGORY, category.id, {"name": result.form.name})
        return self.redirect(category.url)

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------
    def _render_delete(self, request: Request, check):
        context = {
            "page_title": "Delete Category",
            "category": check.target,
            "category_songs": check.dependents,
        }
        return self.renderer.render(request, "category_delete.html", context)

    async def delete_get(self, request: Request, category_id: str):
        check = await check_delete(self.store, CATEGORY, category_id)
        if not check.exists:
            return self.redirect(LIST_URL)
        return self._render_delete(request, check)

    async def delete_post(self, request: Request, category_id: str):
        outcome = await delete_unless_referenced(self.store, CATEGORY, category_id)
        if outcome.blocked:
            return self._render_delete(request, outcome.check)
        return self.redirect(LIST_URL)
