"""
Music Inventory - Data Models

Pydantic models for the three record kinds.  Songs reference their author
and categories by id only; the store resolves those ids into full records
when a view needs them (see ``CatalogStore.populate_song``).
"""

import json
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from music_inventory.config import CATALOG_PREFIX

# Record kinds, as used in URLs and by the store
AUTHOR = "author"
CATEGORY = "category"
SONG = "song"


def parse_id_list(raw: Any) -> List[int]:
    """Parse a stored list of ids (JSON array text or list) into ints.

    Order is preserved; entries that are not integers are dropped.
    """
    if isinstance(raw, list):
        items = raw
    elif isinstance(raw, str):
        try:
            parsed = json.loads(raw)
            items = parsed if isinstance(parsed, list) else []
        except (json.JSONDecodeError, TypeError):
            items = []
    else:
        items = []

    out: List[int] = []
    for item in items:
        try:
            out.append(int(item))
        except (TypeError, ValueError):
            continue
    return out


class Author(BaseModel):
    id: int
    first_name: str
    family_name: str
    date_of_birth: Optional[date] = None
    date_of_death: Optional[date] = None

    @property
    def name(self) -> str:
        """Full name, family name first."""
        if self.first_name and self.family_name:
            return f"{self.family_name}, {self.first_name}"
        return self.family_name or self.first_name

    @property
    def lifespan(self) -> str:
        birth = self.date_of_birth.isoformat() if self.date_of_birth else ""
        death = self.date_of_death.isoformat() if self.date_of_death else ""
        return f"{birth} - {death}"

    @property
    def url(self) -> str:
        return f"{CATALOG_PREFIX}/author/{self.id}"

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Author":
        return cls(**{k: row.get(k) for k in cls.model_fields})


class Category(BaseModel):
    id: int
    name: str

    @property
    def url(self) -> str:
        return f"{CATALOG_PREFIX}/category/{self.id}"

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Category":
        return cls(id=row["id"], name=row["name"])


class Song(BaseModel):
    id: int
    title: str
    author_id: int
    summary: str
    price: float
    stock: int
    image_data: Optional[bytes] = Field(default=None, repr=False)
    image_content_type: Optional[str] = None
    category_ids: List[int] = Field(default_factory=list)

    @property
    def url(self) -> str:
        return f"{CATALOG_PREFIX}/song/{self.id}"

    @property
    def image_url(self) -> Optional[str]:
        if not self.image_data:
            return None
        return f"{self.url}/image"

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Song":
        return cls(
            id=row["id"],
            title=row["title"],
            author_id=row["author_id"],
            summary=row["summary"],
            price=row["price"],
            stock=row["stock"],
            image_data=row.get("image_data"),
            image_content_type=row.get("image_content_type"),
            category_ids=parse_id_list(row.get("category")),
        )


MODEL_FOR_KIND = {
    AUTHOR: Author,
    CATEGORY: Category,
    SONG: Song,
}
