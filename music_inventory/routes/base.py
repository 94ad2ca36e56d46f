"""
Music Inventory - Shared Handler Plumbing

Base class for the per-kind handler classes, plus the helper that turns a
submitted multipart/urlencoded form into the plain mapping the validators
expect.
"""

from typing import Any, Dict, Tuple

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.datastructures import UploadFile

from music_inventory.rendering import Renderer
from music_inventory.store import CatalogStore


async def read_form(request: Request) -> Tuple[Dict[str, Any], Dict[str, UploadFile]]:
    """Split a submitted form into text fields and file uploads.

    A field sent once maps to its string value, a field sent several times
    (checkbox groups) maps to the list of values.
    """
    form = await request.form()
    fields: Dict[str, Any] = {}
    files: Dict[str, UploadFile] = {}
    for key in form.keys():
        values = form.getlist(key)
        uploads = [v for v in values if isinstance(v, UploadFile)]
        if uploads:
            files[key] = uploads[0]
            continue
        fields[key] = values[0] if len(values) == 1 else list(values)
    return fields, files


class CatalogHandlers:
    """Holds the collaborators every handler needs."""

    def __init__(self, store: CatalogStore, renderer: Renderer):
        self.store = store
        self.renderer = renderer

    @staticmethod
    def redirect(url: str) -> RedirectResponse:
        return RedirectResponse(url=url, status_code=302)
