from __future__ import annotations

from typing import List, Optional


class ContentTreeError(Exception):
    """Base class for content tree failures."""


class NotFound(ContentTreeError):
    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"{kind} {entity_id} not found")
        self.kind = kind
        self.entity_id = entity_id


class StoreError(ContentTreeError):
    """The underlying store failed (connection, timeout, bad statement)."""


class ReferentialIntegrityError(StoreError):
    """The store refused a write because dependent rows still reference it."""


class InvalidTreeOperation(ContentTreeError):
    """An authoring request that would break the tree shape."""


class CascadeDeleteError(ContentTreeError):
    """A subtree deletion stopped at ``node_id``.

    ``deleted`` lists the ids removed before the failure, in deletion order.
    The original store exception is chained as ``__cause__``.
    """

    def __init__(self, node_id: str, deleted: Optional[List[str]] = None) -> None:
        super().__init__(f"failed to delete content {node_id}")
        self.node_id = node_id
        self.deleted = list(deleted or [])


class CorruptTreeWarning(UserWarning):
    """A traversal met a dangling or cyclic parent reference."""
