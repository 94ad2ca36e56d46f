"""
Music Inventory - Song Pages

List, detail, create, update and delete for songs, plus the endpoint that
serves a song's stored cover image.

The song form needs every author (dropdown) and every category (checkbox
list).  When a submission fails validation the form is rebuilt from the
submitted values, with the submitted author and categories re-selected.
"""

import asyncio
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, Response

from music_inventory.config import CATALOG_PREFIX, UPLOAD_DIR
from music_inventory.exceptions import NotFoundError
from music_inventory.integrity import delete_unless_referenced
from music_inventory.models import AUTHOR, CATEGORY, SONG, Author, Category, Song
from music_inventory.reconciler import mark_selected
from music_inventory.rendering import Renderer
from music_inventory.routes.base import CatalogHandlers, read_form
from music_inventory.store import CatalogStore
from music_inventory.uploads import (
    StoredUpload,
    UploadRejected,
    discard_upload,
    read_image_payload,
    save_upload,
)
from music_inventory.validation import (
    FieldError,
    SongForm,
    ValidationResult,
    validate_song_form,
)

LIST_URL = f"{CATALOG_PREFIX}/songs"


def _form_from_song(song: Song) -> SongForm:
    return SongForm(
        title=song.title,
        author=str(song.author_id),
        summary=song.summary,
        price=f"{song.price:.2f}",
        stock=str(song.stock),
        category=[str(c) for c in song.category_ids],
    )


def _check_relations(
    form: SongForm, authors: List[Author], categories: List[Category]
) -> List[FieldError]:
    """Errors for an author or categories that are not in the catalog."""
    errors: List[FieldError] = []
    author_ids = {str(a.id) for a in authors}
    category_ids = {str(c.id) for c in categories}

    if form.author and form.author not in author_ids:
        errors.append(FieldError("author", "Author does not exist."))
    unknown = [c for c in form.category if c not in category_ids]
    if unknown:
        errors.append(FieldError("category", "Unknown category selected."))
    return errors


class SongHandlers(CatalogHandlers):
    def __init__(
        self, store: CatalogStore, renderer: Renderer, upload_dir: Path = UPLOAD_DIR
    ):
        super().__init__(store, renderer)
        self.upload_dir = upload_dir

    def router(self) -> APIRouter:
        router = APIRouter(prefix=CATALOG_PREFIX, tags=["Songs"])
        # create must be registered before the {song_id} routes
        router.add_api_route(
            "/song/create",
            self.create_get,
            methods=["GET"],
            response_class=HTMLResponse,
        )
        router.add_api_route("/song/create", self.create_post, methods=["POST"])
        router.add_api_route(
            "/song/{song_id}/delete",
            self.delete_get,
            methods=["GET"],
            response_class=HTMLResponse,
        )
        router.add_api_route(
            "/song/{song_id}/delete", self.delete_post, methods=["POST"]
        )
        router.add_api_route(
            "/song/{song_id}/update",
            self.update_get,
            methods=["GET"],
            response_class=HTMLResponse,
        )
        router.add_api_route(
            "/song/{song_id}/update", self.update_post, methods=["POST"]
        )
        router.add_api_route("/song/{song_id}/image", self.image, methods=["GET"])
        router.add_api_route(
            "/song/{song_id}",
            self.detail,
            methods=["GET"],
            response_class=HTMLResponse,
        )
        router.add_api_route(
            "/songs", self.list_page, methods=["GET"], response_class=HTMLResponse
        )
        return router

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _relation_targets(self):
        authors, categories = await asyncio.gather(
            self.store.find_all(AUTHOR),
            self.store.find_all(CATEGORY),
        )
        return authors, categories

    def _render_form(
        self,
        request: Request,
        title: str,
        form: SongForm,
        authors: List[Author],
        categories: List[Category],
        errors: Optional[List[FieldError]] = None,
        song_id: Optional[int] = None,
    ):
        context = {
            "page_title": title,
            "song": form,
            "song_id": song_id,
            "authors": mark_selected(authors, [form.author]),
            "categories": mark_selected(categories, form.category),
            "errors": errors or [],
        }
        return self.renderer.render(request, "song_form.html", context)

    async def _read_submission(
        self, request: Request, require_image: bool
    ) -> tuple[ValidationResult[SongForm], Optional[StoredUpload]]:
        """Validate the submitted song form and stage its image, if any."""
        fields, files = await read_form(request)
        image_file = files.get("image")
        fields["image"] = image_file.filename if image_file else ""

        upload_error = None
        upload = None
        try:
            upload = await save_upload(image_file, self.upload_dir)
        except UploadRejected as e:
            upload_error = FieldError("image", e.message)

        result = validate_song_form(fields, require_image=require_image)
        if upload_error is not None:
            result.errors.append(upload_error)
        elif require_image and upload is None and result.ok:
            # A file input was sent but it was empty
            result.errors.append(FieldError("image", "Image must not be empty."))
        return result, upload

    # ------------------------------------------------------------------
    # List / detail / image
    # ------------------------------------------------------------------
    async def list_page(self, request: Request):
        songs, authors = await asyncio.gather(
            self.store.find_all(SONG),
            self.store.find_all(AUTHOR),
        )
        authors_by_id = {a.id: a for a in authors}
        entries = [{"song": s, "author": authors_by_id.get(s.author_id)} for s in songs]
        context = {"page_title": "Song List", "song_list": entries}
        return self.renderer.render(request, "song_list.html", context)

    async def detail(self, request: Request, song_id: str):
        song = await self.store.find_by_id(SONG, song_id)
        if song is None:
            raise NotFoundError(SONG, song_id)
        author, categories = await self.store.populate_song(song)
        context = {
            "page_title": song.title,
            "song": song,
            "author": author,
            "categories": categories,
        }
        return self.renderer.render(request, "song_detail.html", context)

    async def image(self, song_id: str):
        song = await self.store.find_by_id(SONG, song_id)
        if song is None or not song.image_data:
            raise NotFoundError(SONG, song_id)
        return Response(
            content=song.image_data,
            media_type=song.image_content_type or "application/octet-stream",
        )

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------
    async def create_get(self, request: Request):
        authors, categories = await self._relation_targets()
        return self._render_form(
            request, "Create Song", SongForm(), authors, categories
        )

    async def create_post(self, request: Request):
        result, upload = await self._read_submission(request, require_image=True)
        try:
            authors, categories = await self._relation_targets()
        except Exception:
            discard_upload(upload)
            raise
        result.errors.extend(_check_relations(result.form, authors, categories))

        if not result.ok:
            discard_upload(upload)
            return self._render_form(
                request,
                "Create Song",
                result.form,
                authors,
                categories,
                errors=result.errors,
            )

        image_data, content_type = await read_image_payload(upload)
        values = result.form.to_values()
        values["image_data"] = image_data
        values["image_content_type"] = content_type
        song = await self.store.insert(SONG, values)
        return self.redirect(song.url)

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------
    async def update_get(self, request: Request, song_id: str):
        song, authors, categories = await asyncio.gather(
            self.store.find_by_id(SONG, song_id),
            self.store.find_all(AUTHOR),
            self.store.find_all(CATEGORY),
        )
        if song is None:
            raise NotFoundError(SONG, song_id)
        return self._render_form(
            request,
            "Update Song",
            _form_from_song(song),
            authors,
            categories,
            song_id=song.id,
        )

    async def update_post(self, request: Request, song_id: str):
        result, upload = await self._read_submission(request, require_image=False)
        try:
            song, authors, categories = await asyncio.gather(
                self.store.find_by_id(SONG, song_id),
                self.store.find_all(AUTHOR),
                self.store.find_all(CATEGORY),
            )
        except Exception:
            discard_upload(upload)
            raise
        if song is None:
            discard_upload(upload)
            raise NotFoundError(SONG, song_id)
        result.errors.extend(_check_relations(result.form, authors, categories))

        if not result.ok:
            discard_upload(upload)
            return self._render_form(
                request,
                "Update Song",
                result.form,
                authors,
                categories,
                errors=result.errors,
                song_id=song.id,
            )

        values = result.form.to_values()
        if upload is not None:
            image_data, content_type = await read_image_payload(upload)
            values["image_data"] = image_data
            values["image_content_type"] = content_type
        await self.store.update(SONG, song.id, values)
        return self.redirect(song.url)

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------
    async def delete_get(self, request: Request, song_id: str):
        song = await self.store.find_by_id(SONG, song_id)
        if song is None:
            return self.redirect(LIST_URL)
        context = {"page_title": "Delete Song", "song": song}
        return self.renderer.render(request, "song_delete.html", context)

    async def delete_post(self, request: Request, song_id: str):
        await delete_unless_referenced(self.store, SONG, song_id)
        return self.redirect(LIST_URL)
