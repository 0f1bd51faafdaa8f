"""Pytest fixtures for core tests."""

import pytest


@pytest.fixture
def graph():
    """Sample graph (t1, t2, n1, p1, g1) with the default link policy."""
    from tests.core.graph_test_helpers import sample_graph

    return sample_graph()


@pytest.fixture
def permissive_graph():
    """Sample graph with task-task and note-note links allowed."""
    from tests.core.graph_test_helpers import sample_graph

    return sample_graph(forbid_same_kind_a=False)


@pytest.fixture
def store():
    """Fresh NodeStore instance."""
    from nodeweave.graph.store import NodeStore

    return NodeStore()


@pytest.fixture
def inconsistent_graph():
    """Graph loaded from files with one one-sided and one broken link.

    - tasks/a.md links projects/p.md, which does not link back
    - notes/n.md links notes/gone.md, which does not exist
    - tasks/a.md <-> notes/n.md is consistent
    """
    from tests.core.graph_test_helpers import build_graph, make_text

    return build_graph(
        {
            "tasks/a.md": make_text("A", "task", ["projects/p.md", "notes/n.md"]),
            "projects/p.md": make_text("P", "project", []),
            "notes/n.md": make_text("N", "note", ["tasks/a.md", "notes/gone.md"]),
        }
    )
