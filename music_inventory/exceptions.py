"""
Music Inventory - Exceptions

Errors that escape a request handler.  Validation failures and blocked
deletes are not exceptions: handlers redisplay the form or the delete page
themselves.  Everything here is turned into an error page by the
application-level handlers registered in ``music_inventory.main``.
"""

from typing import Optional


class CatalogError(Exception):
    """Base exception for the catalog application."""

    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details
        super().__init__(self.message)


class NotFoundError(CatalogError):
    """Raised when a requested record does not exist."""

    status_code = 404

    def __init__(self, kind: str, entity_id: object):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind.capitalize()} not found", details=f"id={entity_id}")


class StorageError(CatalogError):
    """Raised when the underlying database operation fails."""

    status_code = 500
