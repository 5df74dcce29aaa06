from __future__ import annotations

from typing import Dict, List, Optional

from ..core.errors import NotFound
from ..db.store import ContentStore
from ..models import ContentNode, ContentWithCounts


def get_node(store: ContentStore, content_id: str) -> ContentNode:
    node = store.find_by_id(content_id)
    if node is None:
        raise NotFound("content", content_id)
    return node


def get_children(store: ContentStore, parent_id: str) -> List[ContentNode]:
    get_node(store, parent_id)
    return store.find_children(parent_id)


def get_top_level(store: ContentStore, resource_id: str) -> List[ContentNode]:
    return store.find_top_level(resource_id)


def get_sibling_counts(
    store: ContentStore,
    parent_id: Optional[str] = None,
    resource_id: Optional[str] = None,
) -> Dict[str, Dict[str, int]]:
    counts = store.count_children(parent_id=parent_id, resource_id=resource_id)
    return {
        child_id: {"child_count": children, "question_count": questions}
        for child_id, (children, questions) in counts.items()
    }


def get_children_with_counts(
    store: ContentStore,
    parent_id: Optional[str] = None,
    resource_id: Optional[str] = None,
) -> List[ContentWithCounts]:
    if parent_id is not None:
        children = get_children(store, parent_id)
    elif resource_id is not None:
        children = store.find_top_level(resource_id)
    else:
        raise ValueError("parent_id or resource_id is required")
    counts = get_sibling_counts(store, parent_id=parent_id, resource_id=resource_id)
    empty = {"child_count": 0, "question_count": 0}
    return [
        ContentWithCounts(**child.model_dump(), **counts.get(child.id, empty))
        for child in children
    ]
