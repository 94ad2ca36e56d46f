"""
Shared test helpers that are plain functions rather than fixtures.
"""

import asyncio
from typing import Any, Dict

# A tiny valid 1x1 PNG
PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n"
    b"\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
    b"\x08\x02\x00\x00\x00\x90wS\xde\x00\x00\x00\x0cIDATx"
    b"\x9cc\xf8\x0f\x00\x00\x01\x01\x00\x05\x18\xd8N\x00"
    b"\x00\x00\x00IEND\xaeB`\x82"
)


def run(coro):
    """Run a coroutine to completion from a synchronous test."""
    return asyncio.run(coro)


def song_form_data(**overrides: Any) -> Dict[str, Any]:
    """Form fields for a valid song submission (without the image)."""
    data: Dict[str, Any] = {
        "title": "Under Pressure",
        "author": "",
        "summary": "Bass line everyone knows",
        "price": "2.50",
        "stock": "3",
    }
    data.update(overrides)
    return data


def image_file(
    name: str = "cover.png", content: bytes = PNG_BYTES, ctype: str = "image/png"
):
    """Multipart ``files`` argument carrying a cover image."""
    return {"image": (name, content, ctype)}
