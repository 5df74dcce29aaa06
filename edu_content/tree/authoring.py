from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..core.config_models import AuthoringConfig
from ..core.errors import CascadeDeleteError, InvalidTreeOperation, NotFound
from ..db.store import ContentStore
from ..models import (
    ContentCreate,
    ContentNode,
    ContentUpdate,
    Curriculum,
    Question,
    QuestionCreate,
    QuestionStatus,
    QuestionUpdate,
    Resource,
    ResourceCreate,
    ResourcePage,
    ResourceStatus,
    ResourceType,
    ResourceUpdate,
)
from .breadcrumb import DEFAULT_MAX_DEPTH, report_corruption, resolve_breadcrumb
from .lifecycle import delete_subtree
from .ordering import next_order, next_question_order
from .query import get_node


logger = logging.getLogger(__name__)

# columns that cannot be cleared by an edit
_REQUIRED_CONTENT_FIELDS = ("title", "type", "order")
_REQUIRED_QUESTION_FIELDS = ("question_number", "type", "status", "order", "content")
_REQUIRED_RESOURCE_FIELDS = ("title", "type", "subject", "grade", "curriculum", "year", "status")


def create_resource(store: ContentStore, data: ResourceCreate) -> Resource:
    return store.insert_resource(**data.model_dump(mode="json"))


def get_resource(store: ContentStore, resource_id: str) -> Resource:
    resource = store.find_resource(resource_id)
    if resource is None:
        raise NotFound("resource", resource_id)
    return resource


def list_resources(
    store: ContentStore,
    subject: Optional[str] = None,
    grade: Optional[int] = None,
    curriculum: Optional[Curriculum] = None,
    status: Optional[ResourceStatus] = None,
    resource_type: Optional[ResourceType] = None,
    page: int = 1,
    limit: int = 15,
) -> ResourcePage:
    """One page of resources ordered by title; ``page`` counts from 1."""
    if page < 1 or limit < 1:
        raise ValueError("page and limit must be positive")
    filters = {
        "subject": subject,
        "grade": grade,
        "curriculum": curriculum.value if curriculum else None,
        "status": status.value if status else None,
        "type": resource_type.value if resource_type else None,
    }
    resources = store.list_resources(offset=(page - 1) * limit, limit=limit, **filters)
    total = store.count_resources(**filters)
    return ResourcePage(resources=resources, total=total, pages=math.ceil(total / limit))


def suggest_subjects(store: ContentStore, query: str = "") -> List[str]:
    return store.list_subjects(query.strip())


def update_resource(store: ContentStore, resource_id: str, data: ResourceUpdate) -> Resource:
    fields = data.model_dump(mode="json", exclude_unset=True)
    for key in _REQUIRED_RESOURCE_FIELDS:
        if key in fields and fields[key] is None:
            del fields[key]
    if not fields:
        return get_resource(store, resource_id)
    updated = store.update_resource(resource_id, fields)
    if updated is None:
        raise NotFound("resource", resource_id)
    return updated


def set_resource_status(store: ContentStore, resource_id: str, status: ResourceStatus) -> Resource:
    updated = store.update_resource(resource_id, {"status": status.value})
    if updated is None:
        raise NotFound("resource", resource_id)
    logger.info("resource %s is now %s", resource_id, status.value)
    return updated


def delete_resource(store: ContentStore, resource_id: str, max_depth: int = DEFAULT_MAX_DEPTH) -> List[str]:
    """Delete a resource with all of its content and questions.

    Every top-level subtree goes through ``delete_subtree`` before the
    resource row itself, all in one transaction. Returns the deleted
    content ids.
    """
    deleted: List[str] = []
    with store.transaction():
        get_resource(store, resource_id)
        for node in store.find_top_level(resource_id):
            try:
                deleted.extend(delete_subtree(store, node.id, max_depth))
            except CascadeDeleteError as exc:
                raise CascadeDeleteError(exc.node_id, deleted + exc.deleted) from exc.__cause__
        if not store.delete_resource(resource_id):
            raise NotFound("resource", resource_id)
    logger.info("deleted resource %s (%d content nodes)", resource_id, len(deleted))
    return deleted


def _make_room(items: Sequence[Any], order: int, exclude_id: str, update: Callable[[str, Dict[str, Any]], Any]) -> None:
    """Shift siblings at or after ``order`` down by one when ``order`` is taken."""
    others = [item for item in items if item.id != exclude_id]
    if not any(item.order == order for item in others):
        return
    for item in sorted(others, key=lambda i: (i.order, i.id), reverse=True):
        if item.order >= order:
            update(item.id, {"order": item.order + 1})


def _reposition(items: Sequence[Any], item_id: str, old: int, new: int, update: Callable[[str, Dict[str, Any]], Any]) -> None:
    """Close the gap at ``old`` and open one at ``new`` among the same siblings.

    Moving down pulls siblings in (old, new] up by one; moving up pushes
    siblings in [new, old) down by one. Siblings outside the range keep
    their order.
    """
    for item in items:
        if item.id == item_id:
            continue
        if old < new and old < item.order <= new:
            update(item.id, {"order": item.order - 1})
        elif new < old and new <= item.order < old:
            update(item.id, {"order": item.order + 1})


def _siblings(store: ContentStore, parent_id: Optional[str], resource_id: str) -> List[ContentNode]:
    if parent_id is None:
        return store.find_top_level(resource_id)
    return store.find_children(parent_id)


def _subtree_height(store: ContentStore, content_id: str, max_depth: int = DEFAULT_MAX_DEPTH, depth: int = 0) -> int:
    if depth > max_depth:
        report_corruption(f"subtree below {content_id} exceeds {max_depth} levels")
        raise InvalidTreeOperation(f"subtree deeper than {max_depth} levels")
    children = store.find_children(content_id)
    if not children:
        return 1
    return 1 + max(_subtree_height(store, child.id, max_depth, depth + 1) for child in children)


def _check_parent(store: ContentStore, parent_id: str, resource_id: str, height: int, config: AuthoringConfig) -> List[ContentNode]:
    parent = get_node(store, parent_id)
    if parent.resource_id != resource_id:
        raise InvalidTreeOperation(f"content {parent_id} belongs to another resource")
    path = resolve_breadcrumb(store, parent_id)
    if len(path) + height > config.max_tree_depth:
        raise InvalidTreeOperation(
            f"tree would be deeper than {config.max_tree_depth} levels under {parent_id}"
        )
    if not config.allow_mixed_nodes and store.find_first_question(parent_id) is not None:
        raise InvalidTreeOperation(f"content {parent_id} already holds questions")
    return path


def add_content(
    store: ContentStore,
    resource_id: str,
    data: ContentCreate,
    config: AuthoringConfig | None = None,
) -> ContentNode:
    config = config or AuthoringConfig()
    fields = data.model_dump(mode="json", exclude={"order"})
    with store.transaction():
        get_resource(store, resource_id)
        if data.parent_id is not None:
            _check_parent(store, data.parent_id, resource_id, 1, config)

        if data.order is None:
            order = next_order(store, parent_id=data.parent_id, resource_id=resource_id)
        else:
            order = data.order
            _make_room(_siblings(store, data.parent_id, resource_id), order, "", store.update_node)
        node = store.insert_node(resource_id=resource_id, order=order, **fields)
    logger.info("added %s %s to resource %s", node.type.value, node.id, resource_id)
    return node


def update_content(
    store: ContentStore,
    content_id: str,
    data: ContentUpdate,
    config: AuthoringConfig | None = None,
) -> ContentNode:
    config = config or AuthoringConfig()
    fields = data.model_dump(mode="json", exclude_unset=True)
    for key in _REQUIRED_CONTENT_FIELDS:
        if key in fields and fields[key] is None:
            del fields[key]

    with store.transaction():
        node = get_node(store, content_id)
        new_parent = fields.get("parent_id", node.parent_id)
        moving = new_parent != node.parent_id

        if moving and new_parent is not None:
            if new_parent == node.id:
                raise InvalidTreeOperation("content cannot be its own parent")
            path = _check_parent(store, new_parent, node.resource_id, _subtree_height(store, node.id), config)
            if any(p.id == node.id for p in path):
                raise InvalidTreeOperation(f"content {new_parent} is inside the subtree of {node.id}")

        if moving and "order" not in fields:
            fields["order"] = next_order(store, parent_id=new_parent, resource_id=node.resource_id)
        elif "order" in fields and moving:
            _make_room(_siblings(store, new_parent, node.resource_id), fields["order"], node.id, store.update_node)
        elif "order" in fields and fields["order"] != node.order:
            _reposition(
                _siblings(store, node.parent_id, node.resource_id),
                node.id,
                node.order,
                fields["order"],
                store.update_node,
            )

        if not fields:
            return node
        updated = store.update_node(content_id, fields)
    if updated is None:
        raise NotFound("content", content_id)
    if moving:
        logger.info("moved content %s from %s to %s", content_id, node.parent_id, new_parent)
    return updated


def add_question(
    store: ContentStore,
    content_id: str,
    data: QuestionCreate,
    config: AuthoringConfig | None = None,
) -> Question:
    config = config or AuthoringConfig()
    fields = data.model_dump(mode="json", exclude={"order"})
    with store.transaction():
        content = get_node(store, content_id)
        if not config.allow_mixed_nodes and store.find_children(content_id):
            raise InvalidTreeOperation(f"content {content_id} already has child content")
        if data.order is None:
            order = next_question_order(store, content_id)
        else:
            order = data.order
            _make_room(store.find_questions_by_content(content_id), order, "", store.update_question)
        question = store.insert_question(
            resource_id=content.resource_id,
            content_id=content_id,
            order=order,
            **fields,
        )
    return question


def update_question(store: ContentStore, question_id: str, data: QuestionUpdate) -> Question:
    fields = data.model_dump(mode="json", exclude_unset=True)
    for key in _REQUIRED_QUESTION_FIELDS:
        if key in fields and fields[key] is None:
            del fields[key]

    with store.transaction():
        question = store.find_question(question_id)
        if question is None:
            raise NotFound("question", question_id)
        if "order" in fields and fields["order"] != question.order:
            _reposition(
                store.find_questions_by_content(question.content_id),
                question.id,
                question.order,
                fields["order"],
                store.update_question,
            )
        if not fields:
            return question
        updated = store.update_question(question_id, fields)
    if updated is None:
        raise NotFound("question", question_id)
    return updated


def set_question_status(store: ContentStore, question_id: str, status: QuestionStatus) -> Question:
    updated = store.update_question(question_id, {"status": status.value})
    if updated is None:
        raise NotFound("question", question_id)
    return updated


def delete_question(store: ContentStore, question_id: str) -> None:
    if not store.delete_question(question_id):
        raise NotFound("question", question_id)
    logger.info("deleted question %s", question_id)
