"""GraphNode - Unified node representation for the knowledge graph.

This module provides the core data structures:
- NodeKind: Enum of knowledge item types
- NodeClass: The two top-level groupings (A = actionable, B = structure)
- Origin: Storage location backing a persisted node
- GraphNode: A node with typed content and an undirected link set
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any, Iterator


class NodeClass(Enum):
    """Top-level groupings of node kinds."""

    A = "A"
    B = "B"


class NodeKind(Enum):
    """Types of knowledge items."""

    TASK = "task"
    NOTE = "note"
    PROJECT = "project"
    GOAL = "goal"
    AREA = "area"
    RESOURCE = "resource"

    @property
    def node_class(self) -> NodeClass:
        """Derived class: A for task/note, B for everything else."""
        if self in (NodeKind.TASK, NodeKind.NOTE):
            return NodeClass.A
        return NodeClass.B

    @classmethod
    def parse(cls, value: str | None) -> NodeKind | None:
        """Resolve a header ``type`` value, accepting known aliases.

        Returns None for missing or unrecognised values.
        """
        if not value:
            return None
        key = value.strip().lower()
        key = KIND_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            return None


KIND_ALIASES = {
    "todo": "task",
    "area_of_responsibility": "area",
}


@dataclass(frozen=True)
class Origin:
    """Storage location of a persisted node.

    ``relative_path`` doubles as the externally visible node id.
    """

    path: Path  # Absolute
    relative_path: str

    def __str__(self) -> str:
        return self.relative_path


@dataclass
class GraphNode:
    """A node in the knowledge graph.

    The node's class is always derived from its kind and never stored.
    Links are only mutated through ``KnowledgeGraph``; the helpers here
    touch one side of an edge and are not meant for callers.

    Attributes:
        id: Unique, immutable identifier.
        kind: The type of knowledge item.
        title: Non-empty display string.
        description: Free-form body text.
        origin: Backing file, for nodes loaded from or saved to storage.
    """

    id: str
    kind: NodeKind
    title: str
    description: str = ""
    origin: Origin | None = None

    # Task-only attributes
    actionable: bool = False
    due_date: date | None = None
    completed: bool = False

    # Internal storage (prefixed)
    _links: set[str] = field(default_factory=set)
    _extra_headers: list[str] = field(default_factory=list, repr=False)

    @property
    def node_class(self) -> NodeClass:
        """Return the derived class (A or B)."""
        return self.kind.node_class

    @property
    def is_task(self) -> bool:
        return self.kind == NodeKind.TASK

    # Link access
    def iter_links(self) -> Iterator[str]:
        """Iterate neighbor ids in sorted order."""
        yield from sorted(self._links)

    def link_count(self) -> int:
        """Return number of neighbors."""
        return len(self._links)

    def has_link(self, node_id: str) -> bool:
        """Check if node_id is a neighbor."""
        return node_id in self._links

    @property
    def links(self) -> frozenset[str]:
        """Read-only view of the neighbor ids."""
        return frozenset(self._links)

    def _add_link(self, node_id: str) -> None:
        self._links.add(node_id)

    def _discard_link(self, node_id: str) -> None:
        self._links.discard(node_id)

    # Content access
    def get_field(self, key: str, default: Any = None) -> Any:
        """Get an editable field by name."""
        if key not in EDITABLE_FIELDS:
            return default
        return getattr(self, key, default)

    def content(self) -> dict[str, Any]:
        """Return the editable fields as a dict."""
        return {key: getattr(self, key) for key in EDITABLE_FIELDS}


# Fields that NodeStore.update() may change. Identity, origin and links are excluded.
EDITABLE_FIELDS = ("kind", "title", "description", "actionable", "due_date", "completed")
