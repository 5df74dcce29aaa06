from __future__ import annotations

import datetime as dt
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, List, Optional, Protocol, Tuple

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, aliased

from ..core.errors import ReferentialIntegrityError, StoreError
from ..models import ContentNode, Question, Resource
from . import models as orm
from .sqlite import session_scope


logger = logging.getLogger(__name__)


class ContentStore(Protocol):
    """Persistence operations the tree engine relies on."""

    def transaction(self): ...

    def find_by_id(self, content_id: str) -> Optional[ContentNode]: ...

    def find_children(self, parent_id: str) -> List[ContentNode]: ...

    def find_top_level(self, resource_id: str) -> List[ContentNode]: ...

    def find_siblings_after(self, parent_id: str, order: int, node_id: str = "", limit: Optional[int] = None) -> List[ContentNode]: ...

    def find_siblings_before(self, parent_id: str, order: int, node_id: str = "", limit: Optional[int] = None) -> List[ContentNode]: ...

    def find_top_level_after(self, resource_id: str, order: int, node_id: str = "", limit: Optional[int] = None) -> List[ContentNode]: ...

    def find_top_level_before(self, resource_id: str, order: int, node_id: str = "", limit: Optional[int] = None) -> List[ContentNode]: ...

    def count_children(self, parent_id: Optional[str] = None, resource_id: Optional[str] = None) -> Dict[str, Tuple[int, int]]: ...

    def delete_node(self, content_id: str) -> bool: ...

    def find_questions_by_content(self, content_id: str) -> List[Question]: ...

    def find_first_question(self, content_id: str) -> Optional[Question]: ...

    def find_last_question(self, content_id: str) -> Optional[Question]: ...

    def max_order(self, parent_id: str) -> Optional[int]: ...

    def max_top_level_order(self, resource_id: str) -> Optional[int]: ...

    def max_question_order(self, content_id: str) -> Optional[int]: ...

    # authoring

    def insert_resource(self, **fields: Any) -> Resource: ...

    def find_resource(self, resource_id: str) -> Optional[Resource]: ...

    def list_resources(self, offset: int = 0, limit: Optional[int] = None, **filters: Any) -> List[Resource]: ...

    def count_resources(self, **filters: Any) -> int: ...

    def list_subjects(self, query: str = "") -> List[str]: ...

    def update_resource(self, resource_id: str, fields: Dict[str, Any]) -> Optional[Resource]: ...

    def delete_resource(self, resource_id: str) -> bool: ...

    def insert_node(self, **fields: Any) -> ContentNode: ...

    def update_node(self, content_id: str, fields: Dict[str, Any]) -> Optional[ContentNode]: ...

    def find_question(self, question_id: str) -> Optional[Question]: ...

    def insert_question(self, **fields: Any) -> Question: ...

    def update_question(self, question_id: str, fields: Dict[str, Any]) -> Optional[Question]: ...

    def delete_question(self, question_id: str) -> bool: ...


class SqlContentStore:
    def __init__(self, session_factory) -> None:
        self._session_factory = session_factory
        self._active: ContextVar[Optional[Session]] = ContextVar(
            f"content_store_session_{id(self)}", default=None
        )

    @contextmanager
    def _session(self) -> Iterator[Session]:
        active = self._active.get()
        try:
            if active is not None:
                yield active
            else:
                with session_scope(self._session_factory) as session:
                    yield session
        except IntegrityError as exc:
            raise ReferentialIntegrityError(str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    @contextmanager
    def transaction(self) -> Iterator["SqlContentStore"]:
        """Run every store call inside the block on one session.

        Commits when the block exits normally and rolls back otherwise.
        Nested blocks join the outer transaction.
        """
        if self._active.get() is not None:
            yield self
            return
        with self._session() as session:
            token = self._active.set(session)
            try:
                yield self
            finally:
                self._active.reset(token)

    # resources

    def insert_resource(self, **fields: Any) -> Resource:
        with self._session() as session:
            row = orm.Resource(**fields)
            session.add(row)
            session.flush()
            logger.info("inserted resource %s", row.id)
            return Resource.model_validate(row)

    def find_resource(self, resource_id: str) -> Optional[Resource]:
        with self._session() as session:
            row = session.get(orm.Resource, resource_id)
            return Resource.model_validate(row) if row else None

    def list_resources(self, offset: int = 0, limit: Optional[int] = None, **filters: Any) -> List[Resource]:
        stmt = (
            select(orm.Resource)
            .where(*_resource_filters(filters))
            .order_by(orm.Resource.title, orm.Resource.id)
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._session() as session:
            return [Resource.model_validate(r) for r in session.scalars(stmt).all()]

    def count_resources(self, **filters: Any) -> int:
        stmt = select(func.count(orm.Resource.id)).where(*_resource_filters(filters))
        with self._session() as session:
            return session.scalar(stmt) or 0

    def list_subjects(self, query: str = "") -> List[str]:
        stmt = select(orm.Resource.subject).distinct().order_by(orm.Resource.subject)
        if query:
            stmt = stmt.where(orm.Resource.subject.icontains(query, autoescape=True))
        with self._session() as session:
            return [s for s in session.scalars(stmt).all() if s]

    def update_resource(self, resource_id: str, fields: Dict[str, Any]) -> Optional[Resource]:
        with self._session() as session:
            row = session.get(orm.Resource, resource_id)
            if row is None:
                return None
            for key, value in fields.items():
                setattr(row, key, value)
            session.flush()
            logger.info("updated resource %s: %s", resource_id, sorted(fields))
            return Resource.model_validate(row)

    def delete_resource(self, resource_id: str) -> bool:
        with self._session() as session:
            result = session.execute(delete(orm.Resource).where(orm.Resource.id == resource_id))
            return result.rowcount > 0

    # content nodes

    def find_by_id(self, content_id: str) -> Optional[ContentNode]:
        with self._session() as session:
            row = session.get(orm.Content, content_id)
            return ContentNode.model_validate(row) if row else None

    def find_children(self, parent_id: str) -> List[ContentNode]:
        return self._nodes(orm.Content.parent_id == parent_id)

    def find_top_level(self, resource_id: str) -> List[ContentNode]:
        return self._nodes(orm.Content.resource_id == resource_id, orm.Content.parent_id.is_(None))

    def find_siblings_after(self, parent_id: str, order: int, node_id: str = "", limit: Optional[int] = None) -> List[ContentNode]:
        return self._nodes(
            orm.Content.parent_id == parent_id,
            _after(order, node_id),
            limit=limit,
        )

    def find_siblings_before(self, parent_id: str, order: int, node_id: str = "", limit: Optional[int] = None) -> List[ContentNode]:
        return self._nodes(
            orm.Content.parent_id == parent_id,
            _before(order, node_id),
            descending=True,
            limit=limit,
        )

    def find_top_level_after(self, resource_id: str, order: int, node_id: str = "", limit: Optional[int] = None) -> List[ContentNode]:
        return self._nodes(
            orm.Content.resource_id == resource_id,
            orm.Content.parent_id.is_(None),
            _after(order, node_id),
            limit=limit,
        )

    def find_top_level_before(self, resource_id: str, order: int, node_id: str = "", limit: Optional[int] = None) -> List[ContentNode]:
        return self._nodes(
            orm.Content.resource_id == resource_id,
            orm.Content.parent_id.is_(None),
            _before(order, node_id),
            descending=True,
            limit=limit,
        )

    def _nodes(self, *criteria, descending: bool = False, limit: Optional[int] = None) -> List[ContentNode]:
        if descending:
            ordering = (orm.Content.order.desc(), orm.Content.id.desc())
        else:
            ordering = (orm.Content.order.asc(), orm.Content.id.asc())
        stmt = select(orm.Content).where(*criteria).order_by(*ordering)
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._session() as session:
            return [ContentNode.model_validate(r) for r in session.scalars(stmt).all()]

    def count_children(self, parent_id: Optional[str] = None, resource_id: Optional[str] = None) -> Dict[str, Tuple[int, int]]:
        if parent_id is not None:
            scope = (orm.Content.parent_id == parent_id,)
        else:
            scope = (orm.Content.resource_id == resource_id, orm.Content.parent_id.is_(None))
        child = aliased(orm.Content)
        children_stmt = (
            select(orm.Content.id, func.count(child.id))
            .outerjoin(child, child.parent_id == orm.Content.id)
            .where(*scope)
            .group_by(orm.Content.id)
        )
        questions_stmt = (
            select(orm.Content.id, func.count(orm.Question.id))
            .outerjoin(orm.Question, orm.Question.content_id == orm.Content.id)
            .where(*scope)
            .group_by(orm.Content.id)
        )
        with self._session() as session:
            child_counts = dict(session.execute(children_stmt).all())
            question_counts = dict(session.execute(questions_stmt).all())
        return {cid: (child_counts.get(cid, 0), question_counts.get(cid, 0)) for cid in child_counts}

    def insert_node(self, **fields: Any) -> ContentNode:
        with self._session() as session:
            row = orm.Content(**fields)
            session.add(row)
            session.flush()
            logger.info("inserted content %s under %s (order %s)", row.id, row.parent_id, row.order)
            return ContentNode.model_validate(row)

    def update_node(self, content_id: str, fields: Dict[str, Any]) -> Optional[ContentNode]:
        with self._session() as session:
            row = session.get(orm.Content, content_id)
            if row is None:
                return None
            for key, value in fields.items():
                setattr(row, key, value)
            row.updated_at = dt.datetime.utcnow()
            session.flush()
            logger.info("updated content %s: %s", content_id, sorted(fields))
            return ContentNode.model_validate(row)

    def delete_node(self, content_id: str) -> bool:
        with self._session() as session:
            result = session.execute(delete(orm.Content).where(orm.Content.id == content_id))
            return result.rowcount > 0

    def max_order(self, parent_id: str) -> Optional[int]:
        return self._max(orm.Content.order, orm.Content.parent_id == parent_id)

    def max_top_level_order(self, resource_id: str) -> Optional[int]:
        return self._max(
            orm.Content.order,
            orm.Content.resource_id == resource_id,
            orm.Content.parent_id.is_(None),
        )

    def max_question_order(self, content_id: str) -> Optional[int]:
        return self._max(orm.Question.order, orm.Question.content_id == content_id)

    def _max(self, column, *criteria) -> Optional[int]:
        with self._session() as session:
            return session.scalar(select(func.max(column)).where(*criteria))

    # questions

    def find_question(self, question_id: str) -> Optional[Question]:
        with self._session() as session:
            row = session.get(orm.Question, question_id)
            return Question.model_validate(row) if row else None

    def find_questions_by_content(self, content_id: str) -> List[Question]:
        return self._questions(content_id)

    def find_first_question(self, content_id: str) -> Optional[Question]:
        found = self._questions(content_id, limit=1)
        return found[0] if found else None

    def find_last_question(self, content_id: str) -> Optional[Question]:
        found = self._questions(content_id, descending=True, limit=1)
        return found[0] if found else None

    def _questions(self, content_id: str, descending: bool = False, limit: Optional[int] = None) -> List[Question]:
        columns = (orm.Question.order, orm.Question.question_number, orm.Question.id)
        ordering = [c.desc() if descending else c.asc() for c in columns]
        stmt = select(orm.Question).where(orm.Question.content_id == content_id).order_by(*ordering)
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._session() as session:
            return [Question.model_validate(r) for r in session.scalars(stmt).all()]

    def insert_question(self, **fields: Any) -> Question:
        with self._session() as session:
            row = orm.Question(**fields)
            session.add(row)
            session.flush()
            logger.info("inserted question %s in content %s (order %s)", row.id, row.content_id, row.order)
            return Question.model_validate(row)

    def update_question(self, question_id: str, fields: Dict[str, Any]) -> Optional[Question]:
        with self._session() as session:
            row = session.get(orm.Question, question_id)
            if row is None:
                return None
            for key, value in fields.items():
                setattr(row, key, value)
            row.updated_at = dt.datetime.utcnow()
            session.flush()
            logger.info("updated question %s: %s", question_id, sorted(fields))
            return Question.model_validate(row)

    def delete_question(self, question_id: str) -> bool:
        with self._session() as session:
            result = session.execute(delete(orm.Question).where(orm.Question.id == question_id))
            return result.rowcount > 0


def _resource_filters(filters: Dict[str, Any]) -> List[Any]:
    criteria = []
    for key, value in filters.items():
        if value is None:
            continue
        if key == "subject":
            criteria.append(func.lower(orm.Resource.subject) == value.lower())
        else:
            criteria.append(getattr(orm.Resource, key) == value)
    return criteria


def _after(order: int, node_id: str):
    return or_(
        orm.Content.order > order,
        and_(orm.Content.order == order, orm.Content.id > node_id),
    )


def _before(order: int, node_id: str):
    return or_(
        orm.Content.order < order,
        and_(orm.Content.order == order, orm.Content.id < node_id),
    )
