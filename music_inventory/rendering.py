"""
Music Inventory - View Rendering

Thin wrapper around FastAPI's Jinja2 templates so handlers receive a
renderer object instead of reaching into ``request.app.state``.
"""

from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from music_inventory.config import APP_VERSION, TEMPLATES_DIR


class Renderer:
    """Render a named template with a context dict."""

    def __init__(self, templates_dir: Path = TEMPLATES_DIR):
        self.templates = Jinja2Templates(directory=str(templates_dir))

    def render(
        self,
        request: Request,
        name: str,
        context: Optional[Dict[str, Any]] = None,
        status_code: int = 200,
    ) -> HTMLResponse:
        ctx = {"version": APP_VERSION}
        ctx.update(context or {})
        return self.templates.TemplateResponse(
            request, name, ctx, status_code=status_code
        )
