from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, List, Optional

import pytest

from edu_content.core.errors import ReferentialIntegrityError
from edu_content.db import SqlContentStore, create_session_factory, create_sqlite_engine, init_db
from edu_content.models import (
    ContentCreate,
    ContentNode,
    ContentType,
    Curriculum,
    Question,
    QuestionCreate,
    QuestionType,
    ResourceCreate,
    ResourceType,
)
from edu_content.tree import authoring


@pytest.fixture
def engine(tmp_path):
    engine = create_sqlite_engine(str(tmp_path / "content.db"))
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    return SqlContentStore(create_session_factory(engine))


@pytest.fixture
def resource(store):
    return authoring.create_resource(
        store,
        ResourceCreate(
            title="Mathematics Grade 12",
            type=ResourceType.TEXTBOOK,
            subject="Mathematics",
            grade=12,
            curriculum=Curriculum.CAPS,
            year=2024,
            publisher="Siyavula",
        ),
    )


@pytest.fixture
def add_node(store, resource):
    def _add(title, type=ContentType.SECTION, parent=None, order=None):
        return authoring.add_content(
            store,
            resource.id,
            ContentCreate(
                title=title,
                type=type,
                parent_id=parent.id if parent else None,
                order=order,
            ),
        )

    return _add


@pytest.fixture
def add_question(store):
    def _add(content, number, order=None):
        return authoring.add_question(
            store,
            content.id,
            QuestionCreate(question_number=number, type=QuestionType.STRUCTURED, order=order),
        )

    return _add


@pytest.fixture
def textbook(add_node):
    """C1{S1, S2{P1}}, C2 — the reading order is C1 S1 S2 P1 C2."""
    c1 = add_node("Functions", ContentType.CHAPTER)
    s1 = add_node("Inverse functions", ContentType.SECTION, c1)
    s2 = add_node("Exponential functions", ContentType.SECTION, c1)
    p1 = add_node("Page 42", ContentType.PAGE, s2)
    c2 = add_node("Calculus", ContentType.CHAPTER)
    return {"C1": c1, "S1": s1, "S2": s2, "P1": p1, "C2": c2}


class MemoryStore:
    """Dict-backed store double that can hold states a real store refuses."""

    def __init__(self, nodes=(), questions=()):
        self.nodes: Dict[str, ContentNode] = {n.id: n for n in nodes}
        self.questions: Dict[str, Question] = {q.id: q for q in questions}
        self.refuse_delete: set = set()
        self.delete_calls: List[str] = []

    @contextmanager
    def transaction(self):
        yield self

    def find_by_id(self, content_id):
        return self.nodes.get(content_id)

    def _sorted(self, nodes, descending=False):
        return sorted(nodes, key=lambda n: (n.order, n.id), reverse=descending)

    def find_children(self, parent_id):
        return self._sorted(n for n in self.nodes.values() if n.parent_id == parent_id)

    def find_top_level(self, resource_id):
        return self._sorted(
            n for n in self.nodes.values() if n.resource_id == resource_id and n.parent_id is None
        )

    def _slice(self, nodes, order, node_id, forward, limit):
        key = (order, node_id)
        if forward:
            found = [n for n in nodes if (n.order, n.id) > key]
        else:
            found = [n for n in reversed(nodes) if (n.order, n.id) < key]
        return found[:limit] if limit is not None else found

    def find_siblings_after(self, parent_id, order, node_id="", limit=None):
        return self._slice(self.find_children(parent_id), order, node_id, True, limit)

    def find_siblings_before(self, parent_id, order, node_id="", limit=None):
        return self._slice(self.find_children(parent_id), order, node_id, False, limit)

    def find_top_level_after(self, resource_id, order, node_id="", limit=None):
        return self._slice(self.find_top_level(resource_id), order, node_id, True, limit)

    def find_top_level_before(self, resource_id, order, node_id="", limit=None):
        return self._slice(self.find_top_level(resource_id), order, node_id, False, limit)

    def delete_node(self, content_id):
        self.delete_calls.append(content_id)
        if content_id in self.refuse_delete:
            raise ReferentialIntegrityError(f"questions still reference {content_id}")
        return self.nodes.pop(content_id, None) is not None

    def find_question(self, question_id):
        return self.questions.get(question_id)

    def find_questions_by_content(self, content_id):
        return sorted(
            (q for q in self.questions.values() if q.content_id == content_id),
            key=lambda q: (q.order, q.question_number, q.id),
        )

    def find_first_question(self, content_id):
        found = self.find_questions_by_content(content_id)
        return found[0] if found else None

    def find_last_question(self, content_id):
        found = self.find_questions_by_content(content_id)
        return found[-1] if found else None


def memory_node(node_id: str, order: int, parent_id: Optional[str] = None, type=ContentType.SECTION) -> ContentNode:
    return ContentNode(id=node_id, resource_id="r1", type=type, title=node_id, parent_id=parent_id, order=order)


@pytest.fixture
def memory_store():
    return MemoryStore


@pytest.fixture
def make_node():
    return memory_node
