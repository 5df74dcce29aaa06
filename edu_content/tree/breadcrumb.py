from __future__ import annotations

import logging
import warnings
from typing import List

from ..core.errors import CorruptTreeWarning
from ..db.store import ContentStore
from ..models import ContentNode
from .query import get_node


logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 32


def report_corruption(message: str) -> None:
    logger.warning(message)
    warnings.warn(message, CorruptTreeWarning, stacklevel=3)


def resolve_breadcrumb(store: ContentStore, content_id: str, max_depth: int = DEFAULT_MAX_DEPTH) -> List[ContentNode]:
    """Root-first path ending with ``content_id``.

    A parent that no longer resolves ends the walk with the partial path.
    """
    node = get_node(store, content_id)
    path = [node]
    seen = {node.id}
    while node.parent_id is not None:
        if len(path) > max_depth:
            report_corruption(f"breadcrumb for {content_id} exceeded {max_depth} levels")
            break
        parent = store.find_by_id(node.parent_id)
        if parent is None:
            report_corruption(f"content {node.id} references missing parent {node.parent_id}")
            break
        if parent.id in seen:
            report_corruption(f"parent cycle at content {parent.id}")
            break
        seen.add(parent.id)
        path.insert(0, parent)
        node = parent
    return path
