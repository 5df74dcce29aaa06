from __future__ import annotations

import logging
from typing import List

from ..core.errors import CascadeDeleteError, InvalidTreeOperation, StoreError
from ..db.store import ContentStore
from .breadcrumb import DEFAULT_MAX_DEPTH, report_corruption
from .query import get_node


logger = logging.getLogger(__name__)


def delete_subtree(store: ContentStore, content_id: str, max_depth: int = DEFAULT_MAX_DEPTH) -> List[str]:
    """Delete ``content_id`` and all its descendants, children before parents.

    Returns the deleted ids in deletion order. The first failure stops the
    walk and raises ``CascadeDeleteError`` naming the node that could not be
    removed; its ancestors are left in place. Wrap the call in
    ``store.transaction()`` to roll back the partial deletion as well.
    """
    root = get_node(store, content_id)
    deleted: List[str] = []
    _delete(store, root.id, deleted, 0, max_depth)
    logger.info("deleted subtree %s (%d nodes)", content_id, len(deleted))
    return deleted


def _delete(store: ContentStore, content_id: str, deleted: List[str], depth: int, max_depth: int) -> None:
    if depth > max_depth:
        report_corruption(f"subtree below {content_id} exceeds {max_depth} levels")
        raise CascadeDeleteError(content_id, deleted) from InvalidTreeOperation(
            f"subtree deeper than {max_depth} levels"
        )
    try:
        children = store.find_children(content_id)
    except StoreError as exc:
        raise CascadeDeleteError(content_id, deleted) from exc

    for child in children:
        _delete(store, child.id, deleted, depth + 1, max_depth)

    try:
        removed = store.delete_node(content_id)
    except StoreError as exc:
        logger.info("delete of content %s refused after %d deletions", content_id, len(deleted))
        raise CascadeDeleteError(content_id, deleted) from exc
    if not removed:
        logger.debug("content %s was already gone", content_id)
        return
    deleted.append(content_id)
