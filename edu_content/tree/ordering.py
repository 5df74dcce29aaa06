from __future__ import annotations

from typing import Optional

from ..db.store import ContentStore


def next_order(store: ContentStore, parent_id: Optional[str] = None, resource_id: Optional[str] = None) -> int:
    """Order for a node appended under ``parent_id`` (or at the resource top level).

    Advisory only: persist it in the same transaction as the insert.
    """
    if parent_id is not None:
        current = store.max_order(parent_id)
    elif resource_id is not None:
        current = store.max_top_level_order(resource_id)
    else:
        raise ValueError("parent_id or resource_id is required")
    return 1 if current is None else current + 1


def next_question_order(store: ContentStore, content_id: str) -> int:
    current = store.max_question_order(content_id)
    return 1 if current is None else current + 1
