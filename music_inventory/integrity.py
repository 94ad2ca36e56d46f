"""
Music Inventory - Cascading Integrity Checker

An author or category may not be deleted while a song still points at it.
``check_delete`` looks up the record and its dependent songs concurrently;
``delete_unless_referenced`` only removes the record when nothing depends
on it.  A missing record is not an error: deleting it again is a no-op.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, List, Optional

from loguru import logger

from music_inventory.models import Song
from music_inventory.store import CatalogStore


@dataclass
class DeleteCheck:
    """Result of looking up a record and the songs that reference it."""

    kind: str
    target: Optional[Any] = None
    dependents: List[Song] = field(default_factory=list)

    @property
    def exists(self) -> bool:
        return self.target is not None

    @property
    def blocked(self) -> bool:
        return bool(self.dependents)


@dataclass
class DeleteOutcome:
    """What happened when a delete was requested."""

    check: DeleteCheck
    removed: bool = False

    @property
    def blocked(self) -> bool:
        return self.check.blocked


async def check_delete(store: CatalogStore, kind: str, entity_id: Any) -> DeleteCheck:
    """Fetch the record and its dependent songs.

    Both lookups run concurrently; if either fails the error propagates and
    nothing is acted upon.
    """
    target, dependents = await asyncio.gather(
        store.find_by_id(kind, entity_id),
        store.find_dependents(kind, entity_id),
    )
    return DeleteCheck(kind=kind, target=target, dependents=dependents)


async def delete_unless_referenced(
    store: CatalogStore, kind: str, entity_id: Any
) -> DeleteOutcome:
    """Remove the record unless songs still reference it."""
    check = await check_delete(store, kind, entity_id)

    if check.blocked:
        logger.warning(
            "⛔ Refusing to delete {} id={}: referenced by {} song(s)",
            kind,
            entity_id,
            len(check.dependents),
        )
        return DeleteOutcome(check=check, removed=False)

    if not check.exists:
        logger.debug("{} id={} already gone, nothing to delete", kind, entity_id)
        return DeleteOutcome(check=check, removed=False)

    removed = await store.remove(kind, entity_id)
    return DeleteOutcome(check=check, removed=removed)
