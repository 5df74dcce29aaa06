from __future__ import annotations

from typing import List, Optional

from ..core.errors import NotFound
from ..db.store import ContentStore
from ..models import ContentNode, NavigationTarget, Question
from .breadcrumb import DEFAULT_MAX_DEPTH, report_corruption
from .query import get_node


def _adjacent_sibling(store: ContentStore, node: ContentNode, forward: bool) -> Optional[ContentNode]:
    if node.parent_id is None:
        finder = store.find_top_level_after if forward else store.find_top_level_before
        found = finder(node.resource_id, node.order, node.id, limit=1)
    else:
        finder = store.find_siblings_after if forward else store.find_siblings_before
        found = finder(node.parent_id, node.order, node.id, limit=1)
    return found[0] if found else None


def _parent_of(store: ContentStore, node: ContentNode) -> Optional[ContentNode]:
    parent = store.find_by_id(node.parent_id)
    if parent is None:
        report_corruption(f"content {node.id} references missing parent {node.parent_id}")
    return parent


def next_content(store: ContentStore, node: ContentNode, max_depth: int = DEFAULT_MAX_DEPTH) -> Optional[ContentNode]:
    """Next node in reading order, skipping the subtree below ``node``.

    Takes the following sibling; when ``node`` is the last of its siblings,
    climbs one level and looks for the parent's following sibling, repeating
    until one is found or the resource's top level is exhausted.
    """
    current = node
    for _ in range(max_depth + 1):
        sibling = _adjacent_sibling(store, current, forward=True)
        if sibling is not None:
            return sibling
        if current.parent_id is None:
            return None
        parent = _parent_of(store, current)
        if parent is None:
            return None
        current = parent
    report_corruption(f"next content from {node.id} climbed more than {max_depth} levels")
    return None


def previous_content(store: ContentStore, node: ContentNode) -> Optional[ContentNode]:
    """Previous node in reading order.

    The preceding sibling when there is one, otherwise the parent itself:
    a parent is read before its first child.
    """
    sibling = _adjacent_sibling(store, node, forward=False)
    if sibling is not None:
        return sibling
    if node.parent_id is None:
        return None
    return _parent_of(store, node)


def next_content_id(store: ContentStore, content_id: str, max_depth: int = DEFAULT_MAX_DEPTH) -> Optional[str]:
    found = next_content(store, get_node(store, content_id), max_depth)
    return found.id if found else None


def previous_content_id(store: ContentStore, content_id: str) -> Optional[str]:
    found = previous_content(store, get_node(store, content_id))
    return found.id if found else None


def first_question(store: ContentStore, content_id: str) -> Optional[Question]:
    return store.find_first_question(content_id)


def last_question(store: ContentStore, content_id: str) -> Optional[Question]:
    return store.find_last_question(content_id)


def first_question_id(store: ContentStore, content_id: str) -> Optional[str]:
    found = first_question(store, content_id)
    return found.id if found else None


def last_question_id(store: ContentStore, content_id: str) -> Optional[str]:
    found = last_question(store, content_id)
    return found.id if found else None


def _position(questions: List[Question], question_id: str) -> int:
    for idx, q in enumerate(questions):
        if q.id == question_id:
            return idx
    return -1


def next_question(store: ContentStore, question_id: str, max_depth: int = DEFAULT_MAX_DEPTH) -> Optional[NavigationTarget]:
    question = store.find_question(question_id)
    if question is None:
        raise NotFound("question", question_id)

    questions = store.find_questions_by_content(question.content_id)
    idx = _position(questions, question.id)
    # a question removed meanwhile counts as the last one
    if idx != -1 and idx + 1 < len(questions):
        return NavigationTarget(content_id=question.content_id, question_id=questions[idx + 1].id)

    content = store.find_by_id(question.content_id)
    if content is None:
        report_corruption(f"question {question.id} references missing content {question.content_id}")
        return None
    following = next_content(store, content, max_depth)
    if following is None:
        return None
    return NavigationTarget(content_id=following.id, question_id=first_question_id(store, following.id))


def previous_question(store: ContentStore, question_id: str) -> Optional[NavigationTarget]:
    question = store.find_question(question_id)
    if question is None:
        raise NotFound("question", question_id)

    questions = store.find_questions_by_content(question.content_id)
    idx = _position(questions, question.id)
    if idx > 0:
        return NavigationTarget(content_id=question.content_id, question_id=questions[idx - 1].id)

    content = store.find_by_id(question.content_id)
    if content is None:
        report_corruption(f"question {question.id} references missing content {question.content_id}")
        return None
    preceding = previous_content(store, content)
    if preceding is None:
        return None
    return NavigationTarget(content_id=preceding.id, question_id=last_question_id(store, preceding.id))
