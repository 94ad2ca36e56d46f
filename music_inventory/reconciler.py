"""
Music Inventory - Form-State Reconciler

Marks which of the available relation targets (categories for the
checkbox list, authors for the dropdown) are selected when a form is shown.
Records come fresh from the store while selections may come straight from a
submitted form, so matching is done on the string form of the id.
"""

from dataclasses import dataclass
from typing import Any, Generic, Iterable, List, Sequence, TypeVar

T = TypeVar("T")


@dataclass
class Choice(Generic[T]):
    """A relation target plus whether the form has it selected."""

    item: T
    checked: bool = False


def mark_selected(targets: Sequence[T], selected: Iterable[Any]) -> List[Choice[T]]:
    """Return *targets* in their original order, each flagged as selected or not."""
    wanted = {str(s).strip() for s in selected if s is not None}
    return [Choice(item=t, checked=str(getattr(t, "id", t)) in wanted) for t in targets]
