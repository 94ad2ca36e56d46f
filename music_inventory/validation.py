"""
Music Inventory - Form Validation & Sanitization

Turns raw form fields into normalized form objects plus a list of
field-tagged errors.  Every field is checked independently, so one
submission can report several problems at once; within a field the first
failing rule wins.  Values are always trimmed and HTML-escaped, even when a
rule fails, so the returned form can be redisplayed safely.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Generic, List, Mapping, Optional, TypeVar

from markupsafe import escape

from music_inventory.database import SQLITE_INT_MAX

_ALPHANUMERIC = re.compile(r"^[0-9A-Za-z]+$")
_DECIMAL = re.compile(r"^[0-9]+(\.[0-9]+)?$")

FormT = TypeVar("FormT")


@dataclass
class FieldError:
    """A validation failure attached to one form field."""

    field: str
    message: str


@dataclass
class ValidationResult(Generic[FormT]):
    """Normalized form values and the errors found while producing them."""

    form: FormT
    errors: List[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def errors_for(self, name: str) -> List[str]:
        return [e.message for e in self.errors if e.field == name]


# ---------------------------------------------------------------------------
# Form objects
# ---------------------------------------------------------------------------
@dataclass
class CategoryForm:
    name: str = ""


@dataclass
class AuthorForm:
    first_name: str = ""
    family_name: str = ""
    date_of_birth: str = ""
    date_of_death: str = ""

    def to_values(self) -> dict:
        return {
            "first_name": self.first_name,
            "family_name": self.family_name,
            "date_of_birth": self.date_of_birth or None,
            "date_of_death": self.date_of_death or None,
        }


@dataclass
class SongForm:
    title: str = ""
    author: str = ""
    summary: str = ""
    price: str = ""
    stock: str = ""
    image: str = ""
    category: List[str] = field(default_factory=list)

    def to_values(self) -> dict:
        """Values for the store. Only call on a form that passed validation."""
        return {
            "title": self.title,
            "author_id": int(self.author),
            "summary": self.summary,
            "price": float(self.price),
            "stock": int(self.stock),
            "category_ids": [int(c) for c in self.category],
        }


# ---------------------------------------------------------------------------
# Sanitizers
# ---------------------------------------------------------------------------
def _raw_text(raw: Any) -> str:
    """Coerce a raw form value to a string (first item of a list)."""
    if raw is None:
        return ""
    if isinstance(raw, (list, tuple)):
        return _raw_text(raw[0]) if raw else ""
    return str(raw)


def trim(raw: Any) -> str:
    return _raw_text(raw).strip()


def escape_value(value: str) -> str:
    """HTML-escape a value for safe storage and display."""
    return str(escape(value))


def normalize_selection(raw: Any) -> List[str]:
    """Normalize a multi-select value to a list of strings.

    Absent becomes an empty list, a single value a one-item list, and a list
    is kept as it is.
    """
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        return [str(v) for v in raw]
    return [str(raw)]


def _is_number(value: str) -> bool:
    """Plain non-negative decimal, ASCII digits only."""
    if not _DECIMAL.match(value):
        return False
    return math.isfinite(float(value))


def _is_whole_number(value: str) -> bool:
    return value.isascii() and value.isdigit()


def _parse_date(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _required_text(
    data: Mapping[str, Any],
    name: str,
    message: str,
    errors: List[FieldError],
    alphanumeric_message: Optional[str] = None,
) -> str:
    """trim -> non-empty -> (alphanumeric) -> escape."""
    value = trim(data.get(name))
    if len(value) < 1:
        errors.append(FieldError(name, message))
    elif alphanumeric_message and not _ALPHANUMERIC.match(value):
        errors.append(FieldError(name, alphanumeric_message))
    return escape_value(value)


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------
def validate_category_form(data: Mapping[str, Any]) -> ValidationResult[CategoryForm]:
    errors: List[FieldError] = []
    name = _required_text(
        data,
        "name",
        "Category name required",
        errors,
        alphanumeric_message="Category is non-alphanumeric characters.",
    )
    return ValidationResult(CategoryForm(name=name), errors)


def validate_author_form(data: Mapping[str, Any]) -> ValidationResult[AuthorForm]:
    errors: List[FieldError] = []
    first_name = _required_text(
        data,
        "first_name",
        "First name must be specified.",
        errors,
        alphanumeric_message="First name has non-alphanumeric characters.",
    )
    family_name = _required_text(
        data,
        "family_name",
        "Family name must be specified.",
        errors,
        alphanumeric_message="Family name has non-alphanumeric characters.",
    )

    born_raw = trim(data.get("date_of_birth"))
    died_raw = trim(data.get("date_of_death"))
    born = _parse_date(born_raw) if born_raw else None
    died = _parse_date(died_raw) if died_raw else None
    if born_raw and born is None:
        errors.append(FieldError("date_of_birth", "Invalid date of birth"))
    if died_raw and died is None:
        errors.append(FieldError("date_of_death", "Invalid date of death"))
    if born and died and died < born:
        errors.append(
            FieldError("date_of_death", "Date of death is before date of birth")
        )

    form = AuthorForm(
        first_name=first_name,
        family_name=family_name,
        date_of_birth=born.isoformat() if born else escape_value(born_raw),
        date_of_death=died.isoformat() if died else escape_value(died_raw),
    )
    return ValidationResult(form, errors)


def validate_song_form(
    data: Mapping[str, Any], require_image: bool = True
) -> ValidationResult[SongForm]:
    """Validate a song submission.

    ``data["image"]`` is the stored upload filename, if any.  On update the
    previous image is kept when no new one is sent, so *require_image* is
    False there.
    """
    errors: List[FieldError] = []
    title = _required_text(data, "title", "Title must not be empty.", errors)
    author = _required_text(data, "author", "Author must not be empty.", errors)
    summary = _required_text(data, "summary", "Summary must not be empty.", errors)

    price = _required_text(data, "price", "Price must not be empty.", errors)
    if price and not _is_number(price):
        errors.append(FieldError("price", "Price must be a number."))

    stock = _required_text(data, "stock", "Stock must not be empty.", errors)
    if stock and not _is_whole_number(stock):
        errors.append(FieldError("stock", "Stock must be a whole number."))
    elif stock and int(stock) > SQLITE_INT_MAX:
        errors.append(FieldError("stock", "Stock is too large."))

    image = trim(data.get("image"))
    if require_image and not image:
        errors.append(FieldError("image", "Image must not be empty."))

    category = [escape_value(c) for c in normalize_selection(data.get("category"))]

    form = SongForm(
        title=title,
        author=author,
        summary=summary,
        price=price,
        stock=stock,
        image=escape_value(image),
        category=category,
    )
    return ValidationResult(form, errors)
