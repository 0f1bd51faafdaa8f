"""Tests for NodeStore and the node model."""

from datetime import date

import pytest

from nodeweave.exceptions import DuplicateIdError, InvalidNodeError, NotFoundError
from nodeweave.graph.GraphNode import NodeClass, NodeKind


class TestNodeKind:
    def test_classes(self):
        assert NodeKind.TASK.node_class == NodeClass.A
        assert NodeKind.NOTE.node_class == NodeClass.A
        for kind in (NodeKind.PROJECT, NodeKind.GOAL, NodeKind.AREA, NodeKind.RESOURCE):
            assert kind.node_class == NodeClass.B

    def test_parse_aliases(self):
        assert NodeKind.parse("todo") is NodeKind.TASK
        assert NodeKind.parse("Area_Of_Responsibility") is NodeKind.AREA
        assert NodeKind.parse(" Goal ") is NodeKind.GOAL

    def test_parse_unknown(self):
        assert NodeKind.parse("banana") is None
        assert NodeKind.parse("") is None
        assert NodeKind.parse(None) is None


class TestCreate:
    def test_create_and_get(self, store):
        node = store.create("notes/idea.md", NodeKind.NOTE, "Idea", description="Body")

        assert store.get("notes/idea.md") is node
        assert node.node_class == NodeClass.A
        assert node.link_count() == 0
        assert len(store) == 1

    def test_kind_from_string(self, store):
        assert store.create("x", "project", "X").kind is NodeKind.PROJECT

    def test_due_date_from_string(self, store):
        node = store.create("t", NodeKind.TASK, "T", due_date="2024-05-01")
        assert node.due_date == date(2024, 5, 1)

    def test_duplicate_id(self, store):
        store.create("a", NodeKind.NOTE, "A")

        with pytest.raises(DuplicateIdError):
            store.create("a", NodeKind.NOTE, "Another")

    def test_duplicate_id_is_value_error(self, store):
        store.create("a", NodeKind.NOTE, "A")

        with pytest.raises(ValueError):
            store.create("a", NodeKind.NOTE, "Another")

    @pytest.mark.parametrize("title", ["", "   ", None])
    def test_empty_title(self, store, title):
        with pytest.raises(InvalidNodeError):
            store.create("a", NodeKind.NOTE, title)
        assert "a" not in store

    @pytest.mark.parametrize("title", ["a\n---", "line one\nline two", "a\rb", "trailing\n"])
    def test_multiline_title(self, store, title):
        with pytest.raises(InvalidNodeError):
            store.create("a", NodeKind.NOTE, title)
        assert "a" not in store

    def test_empty_id(self, store):
        with pytest.raises(InvalidNodeError):
            store.create("", NodeKind.NOTE, "A")

    def test_unknown_kind(self, store):
        with pytest.raises(InvalidNodeError):
            store.create("a", "banana", "A")

    def test_initial_links_skip_self(self, store):
        node = store.create("a", NodeKind.NOTE, "A", links=["b", "a", "c"])

        assert list(node.iter_links()) == ["b", "c"]


class TestUpdate:
    def test_merges_fields(self, store):
        store.create("t", NodeKind.TASK, "Old", description="keep")

        node = store.update("t", title="New", completed=True)

        assert node.title == "New"
        assert node.completed is True
        assert node.description == "keep"

    def test_missing_node(self, store):
        with pytest.raises(NotFoundError):
            store.update("nope", title="X")

    def test_missing_node_is_key_error(self, store):
        with pytest.raises(KeyError):
            store.update("nope", title="X")

    @pytest.mark.parametrize("field", ["links", "_links", "id", "origin", "colour"])
    def test_rejects_non_editable_fields(self, store, field):
        store.create("a", NodeKind.NOTE, "A")

        with pytest.raises(InvalidNodeError):
            store.update("a", **{field: "x"})

    def test_invalid_value_changes_nothing(self, store):
        store.create("t", NodeKind.TASK, "Old")

        with pytest.raises(InvalidNodeError):
            store.update("t", title="New", due_date="not a date")

        assert store.get("t").title == "Old"

    def test_change_kind(self, store):
        store.create("a", NodeKind.NOTE, "A")

        assert store.update("a", kind="goal").node_class == NodeClass.B

    def test_update_rejects_multiline_title(self, store):
        store.create("a", NodeKind.NOTE, "A")

        with pytest.raises(InvalidNodeError):
            store.update("a", title="A\n---\nlinks: []")

        assert store.get("a").title == "A"

    def test_leaving_task_clears_task_fields(self, store):
        store.create("t", NodeKind.TASK, "T", actionable=True, due_date="2024-05-01", completed=True)

        node = store.update("t", kind="note")

        assert node.due_date is None
        assert node.completed is False
        assert node.actionable is False

        node = store.update("t", kind="task")

        assert node.due_date is None
        assert node.completed is False
        assert node.actionable is True

    def test_non_task_ignores_task_fields(self, store):
        store.create("g", NodeKind.GOAL, "G")

        node = store.update("g", due_date="2024-05-01", completed=True, actionable=True)

        assert node.due_date is None
        assert node.completed is False
        assert node.actionable is False

    def test_becoming_task_keeps_explicit_actionable(self, store):
        store.create("a", NodeKind.NOTE, "A")

        node = store.update("a", kind="task", actionable=False, due_date="2024-05-01")

        assert node.actionable is False
        assert node.due_date == date(2024, 5, 1)

    def test_clear_due_date(self, store):
        store.create("t", NodeKind.TASK, "T", due_date=date(2024, 1, 1))

        assert store.update("t", due_date=None).due_date is None


class TestDeleteAndViews:
    def test_delete_returns_node(self, store):
        store.create("a", NodeKind.NOTE, "A")

        removed = store.delete("a")

        assert removed.id == "a"
        assert "a" not in store

    def test_delete_missing(self, store):
        with pytest.raises(NotFoundError, match="not found"):
            store.delete("a")

    def test_find_by_id(self, store):
        assert store.find_by_id("a") is None

    def test_all_in_insertion_order(self, store):
        for node_id in ("c", "a", "b"):
            store.create(node_id, NodeKind.NOTE, node_id.upper())

        assert [n.id for n in store.all()] == ["c", "a", "b"]
        assert store.ids() == ["c", "a", "b"]

    def test_copy_nodes_is_independent(self, store):
        store.create("a", NodeKind.NOTE, "A")
        copied = store.copy_nodes()

        store.update("a", title="Changed")
        store.get("a")._add_link("b")

        assert copied["a"].title == "A"
        assert copied["a"].link_count() == 0

    def test_replace_all_does_not_alias(self, store):
        store.create("a", NodeKind.NOTE, "A")
        copied = store.copy_nodes()

        store.replace_all(copied)
        store.update("a", title="Changed")

        assert copied["a"].title == "A"
