"""Tests for KnowledgeGraph mutations: link symmetry, cascades, bulk operations."""

import random
from pathlib import Path

import pytest

from nodeweave.exceptions import (
    DuplicateIdError,
    InvalidNodeError,
    LinkRejected,
    NotFoundError,
)
from nodeweave.graph.builder import KnowledgeGraph, suggest_relative_path
from nodeweave.graph.GraphNode import NodeClass, NodeKind
from nodeweave.graph.relations import RejectReason
from tests.core.graph_test_helpers import assert_symmetric, link_state, links_of, sample_graph


class TestConnect:
    def test_links_both_ends(self, graph):
        check = graph.connect("t1", "p1")

        assert check.ok
        assert links_of(graph, "t1") == ["p1"]
        assert links_of(graph, "p1") == ["t1"]
        assert graph.dirty

    def test_rejected_changes_nothing(self, graph):
        before = link_state(graph)

        check = graph.connect("t1", "t2")

        assert check.reason is RejectReason.SAME_KIND_A
        assert link_state(graph) == before
        assert not graph.dirty
        assert graph.history.position == 0

    def test_permissive_policy_links_tasks(self, permissive_graph):
        assert permissive_graph.connect("t1", "t2").ok
        assert_symmetric(permissive_graph)

    def test_require_connect_raises(self, graph):
        with pytest.raises(LinkRejected) as exc_info:
            graph.require_connect("t1", "t1")

        assert exc_info.value.reason == "self"
        assert exc_info.value.source_id == "t1"

    def test_neighbors(self, graph):
        graph.connect("p1", "t1")
        graph.connect("p1", "n1")

        assert [n.id for n in graph.neighbors("p1")] == ["n1", "t1"]


class TestConnectMany:
    def test_mixed_result(self, graph):
        result = graph.connect_many(["t1", "t2", "n1", "zz", "p1"], "t2")

        assert result.ok
        assert result.connected == ["n1", "p1"]
        assert [(b.source_id, b.check.reason) for b in result.blocked] == [
            ("t1", RejectReason.SAME_KIND_A),
            ("t2", RejectReason.SELF),
            ("zz", RejectReason.MISSING),
        ]
        assert_symmetric(graph)

    def test_each_pair_sees_earlier_pairs(self, graph):
        result = graph.connect_many(["t1", "n1", "t1"], "p1")

        assert result.connected == ["t1", "n1"]
        assert result.blocked[0].check.reason is RejectReason.DUPLICATE
        assert_symmetric(graph)

    def test_one_undo_step(self, graph):
        before = link_state(graph)

        graph.connect_many(["t1", "t2", "n1"], "p1")
        assert graph.history.position == 1

        graph.undo()
        assert link_state(graph) == before

    def test_nothing_connected_records_nothing(self, graph):
        result = graph.connect_many(["t1", "t1"], "t1")

        assert not result.ok
        assert graph.history.position == 0
        assert not graph.dirty


class TestDisconnect:
    def test_unlinks_both_ends(self, graph):
        graph.connect("t1", "p1")

        assert graph.disconnect("p1", "t1") is True
        assert links_of(graph, "t1") == []
        assert links_of(graph, "p1") == []

    def test_not_linked_is_noop(self, graph):
        assert graph.disconnect("t1", "p1") is False
        assert graph.history.position == 0
        assert not graph.dirty

    def test_missing_is_noop(self, graph):
        assert graph.disconnect("t1", "zz") is False

    def test_one_sided_link_removed(self, inconsistent_graph):
        assert inconsistent_graph.disconnect("projects/p.md", "tasks/a.md") is True
        assert "projects/p.md" not in links_of(inconsistent_graph, "tasks/a.md")


class TestDelete:
    def test_cascade_removes_incoming_links(self, graph):
        graph.connect("p1", "t1")
        graph.connect("p1", "n1")

        removed = graph.delete_node("p1")

        assert removed.id == "p1"
        assert graph.find_by_id("p1") is None
        assert links_of(graph, "t1") == []
        assert links_of(graph, "n1") == []
        assert_symmetric(graph)

    def test_cascade_catches_one_sided_links(self, inconsistent_graph):
        inconsistent_graph.delete_node("notes/n.md")

        assert links_of(inconsistent_graph, "tasks/a.md") == ["projects/p.md"]

    def test_missing_node(self, graph):
        with pytest.raises(NotFoundError):
            graph.delete_node("zz")
        assert graph.history.position == 0

    def test_bulk_delete_validates_first(self, graph):
        with pytest.raises(NotFoundError):
            graph.delete_nodes(["t1", "zz"])

        assert graph.find_by_id("t1") is not None

    def test_bulk_delete_single_undo(self, graph):
        graph.connect("p1", "t1")
        graph.delete_nodes(["t1", "n1", "t1"])

        assert graph.node_count() == 3
        assert graph.history.position == 2

        graph.undo()
        assert graph.node_count() == 5
        assert links_of(graph, "t1") == ["p1"]


class TestCreateAndUpdate:
    def test_create_task_defaults(self):
        graph = KnowledgeGraph()

        node = graph.create_node("task", "Do it")

        assert node.kind is NodeKind.TASK
        assert node.actionable is True
        assert node.origin is None
        assert node.id.startswith("task-")
        assert graph.dirty

    def test_create_duplicate(self, graph):
        with pytest.raises(DuplicateIdError):
            graph.create_node("note", "Again", node_id="n1")
        assert graph.history.position == 0

    def test_create_unknown_kind(self, graph):
        with pytest.raises(InvalidNodeError):
            graph.create_node("banana", "X")

    def test_create_with_connect_to(self, graph):
        node = graph.create_node("note", "Linked", node_id="n2", connect_to="p1")

        assert links_of(graph, "n2") == ["p1"]
        assert "n2" in links_of(graph, "p1")

        graph.undo()
        assert graph.find_by_id(node.id) is None
        assert links_of(graph, "p1") == []

    def test_create_connect_to_refused_still_creates(self, graph):
        graph.create_node("task", "Another", node_id="t3", connect_to="t1")

        assert graph.find_by_id("t3") is not None
        assert links_of(graph, "t3") == []

    def test_create_connect_to_missing(self, graph):
        with pytest.raises(NotFoundError):
            graph.create_node("note", "X", connect_to="zz")
        assert graph.node_count() == 5

    def test_create_in_rooted_graph_uses_paths(self, tmp_path):
        graph = KnowledgeGraph(root=tmp_path)

        first = graph.create_node("task", "Write the Report!")
        second = graph.create_node("task", "Write the report")

        assert first.id == "tasks/write-the-report.md"
        assert second.id == "tasks/write-the-report-2.md"
        assert first.origin.path == tmp_path / "tasks/write-the-report.md"

    def test_create_skips_existing_files(self, tmp_path):
        (tmp_path / "notes").mkdir()
        (tmp_path / "notes" / "idea.md").write_text("x")
        graph = KnowledgeGraph(root=tmp_path)

        assert graph.create_node("note", "Idea").id == "notes/idea-2.md"

    def test_update(self, graph):
        node = graph.update_node("t1", title="Renamed", due_date="2024-02-03")

        assert node.title == "Renamed"
        assert node.due_date.isoformat() == "2024-02-03"
        assert graph.history.last().operation == "update_node"

    def test_kind_change_drops_task_fields(self, graph):
        graph.update_node("t1", due_date="2024-02-03", completed=True)

        note = graph.update_node("t1", kind="note")

        assert note.due_date is None
        assert note.completed is False
        assert note.actionable is False
        assert graph.update_node("t1", kind="task").due_date is None

        graph.undo()
        graph.undo()
        task = graph.get("t1")
        assert task.kind is NodeKind.TASK
        assert task.due_date.isoformat() == "2024-02-03"
        assert task.completed is True

    def test_update_links_refused(self, graph):
        with pytest.raises(InvalidNodeError):
            graph.update_node("t1", links=["p1"])
        assert graph.history.position == 0
        assert not graph.dirty

    def test_update_missing(self, graph):
        with pytest.raises(NotFoundError):
            graph.update_node("zz", title="X")


class TestQueries:
    def test_list_by_class(self, graph):
        assert [n.id for n in graph.list_by_class(NodeClass.A)] == ["t1", "t2", "n1"]
        assert [n.id for n in graph.list_by_class("B")] == ["p1", "g1"]

    def test_search(self, graph):
        assert [n.id for n in graph.search("TASK")] == ["t1", "t2"]
        assert [n.id for n in graph.search("", node_class="B")] == ["p1", "g1"]
        assert [n.id for n in graph.search("", kinds=[NodeKind.GOAL])] == ["g1"]

    def test_nodes_by_kind(self, graph):
        assert [n.id for n in graph.nodes_by_kind(NodeKind.NOTE)] == ["n1"]

    def test_status(self, graph):
        graph.connect("t1", "p1")

        status = graph.status()

        assert status["node_count"] == 5
        assert status["dirty"] is True
        assert status["can_undo"] is True
        assert status["last_operation"] == "connect"


class TestRepair:
    def test_repair_makes_graph_consistent(self, inconsistent_graph):
        report = inconsistent_graph.repair_links()

        assert len(report.asymmetric) == 1
        assert len(report.broken) == 1
        assert inconsistent_graph.audit().is_clean
        assert links_of(inconsistent_graph, "projects/p.md") == ["tasks/a.md"]
        assert links_of(inconsistent_graph, "notes/n.md") == ["tasks/a.md"]

    def test_repair_is_undoable(self, inconsistent_graph):
        before = link_state(inconsistent_graph)

        inconsistent_graph.repair_links()
        inconsistent_graph.undo()

        assert link_state(inconsistent_graph) == before

    def test_clean_graph_records_nothing(self, graph):
        assert graph.repair_links().is_clean
        assert graph.history.position == 0


def test_suggest_relative_path():
    assert suggest_relative_path(NodeKind.PROJECT, "Q3 Launch: v2") == "projects/q3-launch-v2.md"
    assert suggest_relative_path(NodeKind.NOTE, "???") == "notes/untitled.md"
    assert suggest_relative_path(NodeKind.GOAL, "x", {"task": "t"}) == "misc/x.md"
    assert Path(suggest_relative_path(NodeKind.TASK, "회의 준비")).name == "회의-준비.md"


class TestRandomSequences:
    """Mixed link mutations and undos keep every link two-sided."""

    def _grow(self, graph, rng):
        for i in range(rng.randint(3, 8)):
            kind = rng.choice(["task", "note", "project", "goal", "area", "resource"])
            graph.create_node(kind, f"Extra {i}", node_id=f"x{i}")

    def _step(self, graph, rng):
        ids = [node.id for node in graph.all_nodes()]
        action = rng.choice(["connect", "connect_many", "disconnect", "delete", "undo"])
        if action == "connect" and ids:
            graph.connect(rng.choice(ids), rng.choice(ids))
        elif action == "connect_many" and ids:
            sources = rng.sample(ids, rng.randint(1, len(ids)))
            graph.connect_many(sources, rng.choice(ids))
        elif action == "disconnect" and ids:
            graph.disconnect(rng.choice(ids), rng.choice(ids))
        elif action == "delete" and len(ids) > 2:
            graph.delete_nodes(rng.sample(ids, rng.randint(1, 2)))
        elif action == "undo" and graph.history.can_undo():
            graph.undo()

    @pytest.mark.parametrize("forbid_same_kind_a", [True, False])
    @pytest.mark.parametrize("seed", range(8))
    def test_links_stay_symmetric(self, seed, forbid_same_kind_a):
        rng = random.Random(seed)
        graph = sample_graph(forbid_same_kind_a=forbid_same_kind_a)
        self._grow(graph, rng)

        for _ in range(200):
            self._step(graph, rng)

            assert_symmetric(graph)
            assert graph.audit().is_clean
            for node in graph.all_nodes():
                assert not node.has_link(node.id)

    @pytest.mark.parametrize("seed", range(4))
    def test_undo_all_returns_to_start(self, seed):
        rng = random.Random(seed)
        graph = sample_graph(forbid_same_kind_a=False)
        start = link_state(graph)

        for _ in range(40):
            self._step(graph, rng)
        while graph.history.can_undo():
            graph.undo()
            assert_symmetric(graph)

        assert link_state(graph) == start
