import pytest
from sqlalchemy import text

from edu_content.core.errors import NotFound, ReferentialIntegrityError, StoreError
from edu_content.tree import (
    first_question_id,
    get_children,
    get_sibling_counts,
    last_question_id,
    next_content,
    next_content_id,
    previous_content,
    resolve_breadcrumb,
)


def _drop(engine, *tables):
    with engine.begin() as conn:
        for table in tables:
            conn.execute(text(f"DROP TABLE {table}"))


def test_question_lookups_raise_instead_of_returning_none(engine, store, textbook):
    _drop(engine, "questions")
    page = textbook["P1"].id
    with pytest.raises(StoreError):
        first_question_id(store, page)
    with pytest.raises(StoreError):
        last_question_id(store, page)
    with pytest.raises(StoreError):
        get_sibling_counts(store, parent_id=textbook["S2"].id)


def test_content_lookups_raise_store_error_not_not_found(engine, store):
    _drop(engine, "questions", "contents")
    for call in (
        lambda: next_content_id(store, "any"),
        lambda: get_children(store, "any"),
        lambda: resolve_breadcrumb(store, "any"),
    ):
        with pytest.raises(StoreError) as info:
            call()
        assert not isinstance(info.value, NotFound)


def test_sibling_failure_mid_navigation_propagates(memory_store, make_node):
    class TimingOutStore(memory_store):
        def find_siblings_after(self, *args, **kwargs):
            raise StoreError("statement timeout")

        def find_top_level_before(self, *args, **kwargs):
            raise StoreError("statement timeout")

    store = TimingOutStore([make_node("c1", 1), make_node("s1", 1, parent_id="c1")])
    with pytest.raises(StoreError):
        next_content(store, store.find_by_id("s1"))
    with pytest.raises(StoreError):
        previous_content(store, store.find_by_id("c1"))


def test_foreign_key_failure_is_integrity_error(store):
    with pytest.raises(ReferentialIntegrityError):
        store.insert_node(resource_id="missing", type="CHAPTER", title="Orphan", order=1)
