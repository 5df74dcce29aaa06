import pytest

from edu_content.core.errors import CascadeDeleteError, NotFound, ReferentialIntegrityError
from edu_content.db import SqlContentStore
from edu_content.tree import delete_subtree, get_children


def _reachable(store, node_id):
    ids = [node_id]
    for child in get_children(store, node_id):
        ids.extend(_reachable(store, child.id))
    return ids


def test_delete_subtree_removes_every_descendant(store, textbook):
    c1 = textbook["C1"]
    before = _reachable(store, c1.id)
    assert len(before) == 4

    delete_subtree(store, c1.id)

    for node_id in before:
        assert store.find_by_id(node_id) is None
    assert store.find_by_id(textbook["C2"].id) is not None


def test_delete_subtree_is_post_order(store, textbook):
    deleted = delete_subtree(store, textbook["C1"].id)
    assert deleted[-1] == textbook["C1"].id
    assert deleted.index(textbook["P1"].id) < deleted.index(textbook["S2"].id)
    assert set(deleted) == {n.id for key, n in textbook.items() if key != "C2"}


def test_delete_subtree_removes_owned_questions(store, textbook, add_question):
    q = add_question(textbook["P1"], "1.1")
    delete_subtree(store, textbook["S2"].id)
    assert store.find_question(q.id) is None


def test_delete_unknown_node(store):
    with pytest.raises(NotFound):
        delete_subtree(store, "missing")


def test_store_refuses_to_orphan_children(store, textbook):
    with pytest.raises(ReferentialIntegrityError):
        store.delete_node(textbook["C1"].id)
    assert store.find_by_id(textbook["C1"].id) is not None


def test_failure_keeps_ancestors_and_names_failed_node(memory_store, make_node):
    nodes = [
        make_node("c1", 1),
        make_node("s1", 1, parent_id="c1"),
        make_node("s2", 2, parent_id="c1"),
        make_node("p1", 1, parent_id="s2"),
        make_node("p2", 2, parent_id="s2"),
    ]
    store = memory_store(nodes)
    store.refuse_delete.add("p2")

    with pytest.raises(CascadeDeleteError) as info:
        delete_subtree(store, "c1")

    err = info.value
    assert err.node_id == "p2"
    assert err.deleted == ["s1", "p1"]
    assert isinstance(err.__cause__, ReferentialIntegrityError)
    # nothing above the failing node was attempted
    assert store.delete_calls == ["s1", "p1", "p2"]
    assert set(store.nodes) == {"c1", "s2", "p2"}


class RefusingStore(SqlContentStore):
    def __init__(self, session_factory, refuse):
        super().__init__(session_factory)
        self.refuse = refuse

    def delete_node(self, content_id):
        if content_id == self.refuse:
            raise ReferentialIntegrityError(f"{content_id} is locked")
        return super().delete_node(content_id)


def test_transaction_rolls_back_partial_cascade(store, textbook):
    refusing = RefusingStore(store._session_factory, textbook["S2"].id)
    with pytest.raises(CascadeDeleteError) as info:
        with refusing.transaction():
            delete_subtree(refusing, textbook["C1"].id)

    assert info.value.node_id == textbook["S2"].id
    assert textbook["P1"].id in info.value.deleted
    for node in textbook.values():
        assert store.find_by_id(node.id) is not None
