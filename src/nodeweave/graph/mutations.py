"""Snapshot history for KnowledgeGraph undo.

Every mutation records a full, independent copy of the node store
immediately before it changes anything. Undo swaps the live store
content for the most recent snapshot.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import uuid4

from nodeweave.exceptions import NoHistoryError

if TYPE_CHECKING:
    from nodeweave.graph.GraphNode import GraphNode
    from nodeweave.graph.store import NodeStore

DEFAULT_MAX_ENTRIES = 50


@dataclass
class Snapshot:
    """Deep copy of the store taken before one mutation.

    Attributes:
        operation: Name of the mutation about to run (e.g. "connect").
        target_id: Primary node the mutation concerns.
        nodes: Independent copy of every node at capture time.
        id: Unique snapshot ID (UUID4 hex).
        timestamp: When the snapshot was taken.
    """

    operation: str
    target_id: str
    nodes: dict[str, GraphNode] = field(repr=False)
    id: str = field(default_factory=lambda: uuid4().hex)
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        """Human-readable representation."""
        return f"[{self.id[:8]}] {self.operation}({self.target_id})"


class History:
    """Bounded snapshot stack driving undo.

    ``position`` counts the snapshots that can still be undone. Recording
    drops any snapshots above it, appends, and evicts the oldest entry
    once more than ``max_entries`` are held.

    Example:
        >>> history = History(max_entries=50)
        >>> history.record(store, "connect", "a.md")
        >>> history.undo(store)  # store is back to the recorded state
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._snapshots: list[Snapshot] = []
        self._position = 0
        self._evicted: Snapshot | None = None

    @property
    def position(self) -> int:
        return self._position

    def __len__(self) -> int:
        """Return the number of retained snapshots."""
        return len(self._snapshots)

    def can_undo(self) -> bool:
        return self._position > 0

    def record(self, store: NodeStore, operation: str, target_id: str = "") -> Snapshot:
        """Capture the store before a mutation.

        Args:
            store: The live store, about to be mutated.
            operation: Name of the mutation.
            target_id: Primary node the mutation concerns.

        Returns:
            The new Snapshot.
        """
        snapshot = Snapshot(operation=operation, target_id=target_id, nodes=store.copy_nodes())
        del self._snapshots[self._position :]
        self._snapshots.append(snapshot)
        self._position = len(self._snapshots)

        self._evicted = None
        if len(self._snapshots) > self.max_entries:
            self._evicted = self._snapshots.pop(0)
            self._position -= 1
        return snapshot

    def undo(self, store: NodeStore) -> Snapshot:
        """Restore the store to the most recent snapshot.

        Raises:
            NoHistoryError: If there is nothing to undo.
        """
        if self._position <= 0:
            raise NoHistoryError("Nothing to undo")
        self._position -= 1
        snapshot = self._snapshots[self._position]
        store.replace_all(snapshot.nodes)
        return snapshot

    def discard(self, snapshot: Snapshot) -> None:
        """Drop a just-recorded snapshot whose mutation did not happen.

        The entry evicted by that recording, if any, is put back.
        """
        if self._position and self._snapshots[self._position - 1] is snapshot:
            self._snapshots.pop(self._position - 1)
            self._position -= 1
            if self._evicted is not None:
                self._snapshots.insert(0, self._evicted)
                self._position += 1
        self._evicted = None

    def iter_entries(self) -> Iterator[Snapshot]:
        """Iterate undoable snapshots, oldest first."""
        yield from self._snapshots[: self._position]

    def last(self) -> Snapshot | None:
        """Return the snapshot the next undo would restore, or None."""
        return self._snapshots[self._position - 1] if self._position else None

    def clear(self) -> None:
        self._snapshots.clear()
        self._position = 0
        self._evicted = None
