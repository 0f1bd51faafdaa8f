"""Shared fixtures: on-disk workspaces."""

from __future__ import annotations

import os

import pytest

from tests.core.graph_test_helpers import write_node


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    """Keep NODEWEAVE_* variables from the host out of every test."""
    for name in list(os.environ):
        if name.startswith("NODEWEAVE_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def workspace(tmp_path):
    """A storage root with a config file and four consistent node files.

    tasks/report.md <-> projects/q3.md <-> notes/outline.md, plus an
    unlinked goals/ship.md.
    """
    from nodeweave.config import write_default_config

    write_default_config(tmp_path)
    write_node(
        tmp_path,
        "tasks/report.md",
        '---\ntitle: Write report\ntype: task\nlinks: ["projects/q3.md"]\n'
        "dueDate: 2024-05-01\ncompleted: false\n---\n\nDraft first.",
    )
    write_node(
        tmp_path,
        "projects/q3.md",
        '---\ntitle: Q3\ntype: project\nlinks: ["notes/outline.md", "tasks/report.md"]\n---\n\n',
    )
    write_node(
        tmp_path,
        "notes/outline.md",
        '---\ntitle: Outline\ntype: note\nlinks: ["projects/q3.md"]\n---\n\nHeadings.',
    )
    write_node(tmp_path, "goals/ship.md", "---\ntitle: Ship\ntype: goal\nlinks: []\n---\n\n")
    return tmp_path
