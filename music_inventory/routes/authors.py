"""
Music Inventory - Author Pages

List, detail, create, update and delete for authors.  Authors with songs
cannot be deleted until those songs are removed or reassigned.
"""

import asyncio

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from music_inventory.config import CATALOG_PREFIX
from music_inventory.exceptions import NotFoundError
from music_inventory.integrity import check_delete, delete_unless_referenced
from music_inventory.models import AUTHOR, Author
from music_inventory.routes.base import CatalogHandlers, read_form
from music_inventory.validation import AuthorForm, validate_author_form

LIST_URL = f"{CATALOG_PREFIX}/authors"


def _form_from_author(author: Author) -> AuthorForm:
    return AuthorForm(
        first_name=author.first_name,
        family_name=author.family_name,
        date_of_birth=author.date_of_birth.isoformat() if author.date_of_birth else "",
        date_of_death=author.date_of_death.isoformat() if author.date_of_death else "",
    )


class AuthorHandlers(CatalogHandlers):
    def router(self) -> APIRouter:
        router = APIRouter(prefix=CATALOG_PREFIX, tags=["Authors"])
        # create must be registered before the {author_id} routes
        router.add_api_route(
            "/author/create",
            self.create_get,
            methods=["GET"],
            response_class=HTMLResponse,
        )
        router.add_api_route("/author/create", self.create_post, methods=["POST"])
        router.add_api_route(
            "/author/{author_id}/delete",
            self.delete_get,
            methods=["GET"],
            response_class=HTMLResponse,
        )
        router.add_api_route(
            "/author/{author_id}/delete", self.delete_post, methods=["POST"]
        )
        router.add_api_route(
            "/author/{author_id}/update",
            self.update_get,
            methods=["GET"],
            response_class=HTMLResponse,
        )
        router.add_api_route(
            "/author/{author_id}/update", self.update_post, methods=["POST"]
        )
        router.add_api_route(
            "/author/{author_id}",
            self.detail,
            methods=["GET"],
            response_class=HTMLResponse,
        )
        router.add_api_route(
            "/authors", self.list_page, methods=["GET"], response_class=HTMLResponse
        )
        return router

    def _render_form(self, request: Request, title: str, author, errors=None):
        context = {
            "page_title": title,
            "author": author,
            "errors": errors or [],
        }
        return self.renderer.render(request, "author_form.html", context)

    async def list_page(self, request: Request):
        authors = await self.store.find_all(AUTHOR)
        context = {"page_title": "Author List", "author_list": authors}
        return self.renderer.render(request, "author_list.html", context)

    async def detail(self, request: Request, author_id: str):
        author, songs = await asyncio.gather(
            self.store.find_by_id(AUTHOR, author_id),
            self.store.find_songs_by_author(author_id),
        )
        if author is None:
            raise NotFoundError(AUTHOR, author_id)
        context = {
            "page_title": "Author Detail",
            "author": author,
            "author_songs": songs,
        }
        return self.renderer.render(request, "author_detail.html", context)

    async def create_get(self, request: Request):
        return self._render_form(request, "Create Author", AuthorForm())

    async def create_post(self, request: Request):
        fields, _ = await read_form(request)
        result = validate_author_form(fields)
        if not result.ok:
            return self._render_form(
                request, "Create Author", result.form, result.errors
            )

        author = await self.store.insert(AUTHOR, result.form.to_values())
        return self.redirect(author.url)

    async def update_get(self, request: Request, author_id: str):
        author = await self.store.find_by_id(AUTHOR, author_id)
        if author is None:
            raise NotFoundError(AUTHOR, author_id)
        return self._render_form(request, "Update Author", _form_from_author(author))

    async def update_post(self, request: Request, author_id: str):
        fields, _ = await read_form(request)
        result = validate_author_form(fields)

        author = await self.store.find_by_id(AUTHOR, author_id)
        if author is None:
            raise NotFoundError(AUTHOR, author_id)

        if not result.ok:
            return self._render_form(
                request, "Update Author", result.form, result.errors
            )

        await self.store.update(AUTHOR, author.id, result.form.to_values())
        return self.redirect(author.url)

    def _render_delete(self, request: Request, check):
        context = {
            "page_title": "Delete Author",
            "author": check.target,
            "author_songs": check.dependents,
        }
        return self.renderer.render(request, "author_delete.html", context)

    async def delete_get(self, request: Request, author_id: str):
        check = await check_delete(self.store, AUTHOR, author_id)
        if not check.exists:
            return self.redirect(LIST_URL)
        return self._render_delete(request, check)

    async def delete_post(self, request: Request, author_id: str):
        outcome = await delete_unless_referenced(self.store, AUTHOR, author_id)
        if outcome.blocked:
            return self._render_delete(request, outcome.check)
        return self.redirect(LIST_URL)
