"""Tests for the dict-returning service operations."""

from __future__ import annotations

import asyncio

import pytest

from nodeweave import service
from nodeweave.persistence import FileStore, load_graph
from tests.core.graph_test_helpers import sample_graph


@pytest.fixture
def graph():
    return sample_graph()


class TestReads:
    def test_get_node(self, graph):
        graph.connect("t1", "p1")

        result = service.get_node(graph, "t1")

        assert result["id"] == "t1"
        assert result["neighbors"] == [{"id": "p1", "title": "Q3 launch", "kind": "project"}]
        assert result["eligible_targets"] == ["n1", "g1"]

    def test_get_missing_node(self, graph):
        result = service.get_node(graph, "zz")

        assert result == {"success": False, "error": "Node 'zz' not found"}

    def test_query_filters(self, graph):
        assert service.query_nodes(graph, node_class="a")["count"] == 3
        assert service.query_nodes(graph, kinds=["todo"])["count"] == 2
        assert service.query_nodes(graph, term="q3")["nodes"][0]["id"] == "p1"

    def test_query_bad_filters(self, graph):
        assert service.query_nodes(graph, node_class="C")["success"] is False
        assert "banana" in service.query_nodes(graph, kinds=["banana"])["error"]


class TestMutations:
    def test_create_and_update(self, graph):
        created = service.create_node(graph, "note", "Fresh", node_id="n2", connect_to="p1")
        updated = service.update_node(graph, "n2", description="Body")

        assert created["success"] and updated["success"]
        assert created["node"]["links"] == ["p1"]
        assert updated["node"]["description"] == "Body"

    def test_create_errors_become_dicts(self, graph):
        assert service.create_node(graph, "note", "")["success"] is False
        assert service.create_node(graph, "banana", "X")["success"] is False
        assert "already exists" in service.create_node(graph, "note", "X", node_id="n1")["error"]

    def test_update_errors_become_dicts(self, graph):
        assert "not found" in service.update_node(graph, "zz", title="X")["error"]
        assert service.update_node(graph, "t1", links=["p1"])["success"] is False

    def test_connect_reports_blocked(self, graph):
        result = service.connect(graph, ["t1", "t2"], "t2")

        assert result["success"] is False
        assert result["connected"] == []
        assert [b["reason"] for b in result["blocked"]] == ["sameKindA", "self"]
        assert "cannot be linked to itself" in result["error"]

    def test_connect_partial_success(self, graph):
        result = service.connect(graph, ["t1", "zz"], "p1")

        assert result["success"] is True
        assert result["connected"] == ["t1"]
        assert result["blocked"][0]["reason"] == "missing"
        assert "error" not in result

    def test_disconnect(self, graph):
        graph.connect("t1", "p1")

        assert service.disconnect(graph, "t1", "p1")["changed"] is True
        assert service.disconnect(graph, "t1", "p1")["changed"] is False

    def test_delete_without_files(self, graph):
        result = service.delete_nodes(graph, ["g1"])

        assert result == {"success": True, "deleted": ["g1"], "errors": []}

    def test_delete_missing(self, graph):
        result = service.delete_nodes(graph, ["zz"])

        assert result["success"] is False
        assert "not found" in result["error"]

    def test_undo_and_history(self, graph):
        assert service.undo(graph) == {"success": False, "error": "Nothing to undo"}

        graph.connect("t1", "p1")
        assert [e["operation"] for e in service.get_history(graph)["entries"]] == ["connect"]

        result = service.undo(graph)
        assert result["success"] is True
        assert result["restored"]["target_id"] == "t1"
        assert service.get_history(graph)["entries"] == []

    def test_audit_fix(self, graph):
        graph.get("t1")._add_link("gone")

        report = service.audit(graph)
        fixed = service.audit(graph, fix=True)

        assert report["clean"] is False and report["repaired"] is False
        assert fixed["repaired"] is True
        assert service.audit(graph)["clean"] is True


class TestSave:
    def test_save_noop_when_clean(self, workspace):
        store = FileStore(workspace)
        graph = asyncio.run(load_graph(store))

        assert service.save(graph, store)["message"] == "No changes"

    def test_save_and_delete_files(self, workspace):
        store = FileStore(workspace)
        graph = asyncio.run(load_graph(store))

        deleted = service.delete_nodes(graph, ["notes/outline.md"], store)
        saved = service.save(graph, store)

        assert deleted["success"] is True
        assert not (workspace / "notes" / "outline.md").exists()
        assert saved["success"] is True
        assert saved["message"] == "Saved 3 files"
        assert "notes/outline.md" not in (workspace / "projects" / "q3.md").read_text()
