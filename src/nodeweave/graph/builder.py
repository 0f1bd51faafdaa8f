"""Graph Builder - KnowledgeGraph and its construction from decoded files.

KnowledgeGraph is the explicit context object for one editing session.
It owns the node store, the undo history, the dirty flag and the active
link policy, and it is the only place links are changed, so link
symmetry holds after every public method returns.
"""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path, PurePosixPath
from typing import Any, Iterable, Iterator
from uuid import uuid4

from nodeweave.exceptions import InvalidNodeError, LinkRejected
from nodeweave.graph.audit import AuditReport, audit_graph
from nodeweave.graph.GraphNode import GraphNode, NodeClass, NodeKind, Origin
from nodeweave.graph.mutations import DEFAULT_MAX_ENTRIES, History, Snapshot
from nodeweave.graph.relations import (
    LinkCheck,
    LinkPolicy,
    eligible_targets,
    validate_link,
)
from nodeweave.graph.serialize import DecodedRecord, encode_node
from nodeweave.graph.store import NodeStore

logger = logging.getLogger(__name__)

DEFAULT_KIND_DIRECTORIES = {
    "task": "tasks",
    "note": "notes",
    "project": "projects",
    "goal": "goals",
    "area": "areas",
    "resource": "resources",
}

# Directory names that decide the kind of a file whose header has none
_PATH_KIND_HINTS = (
    ("tasks", NodeKind.TASK),
    ("notes", NodeKind.NOTE),
    ("projects", NodeKind.PROJECT),
)

_SLUG_STRIP = re.compile(r"[^\w\s]")
_SLUG_SPACE = re.compile(r"\s+")


def infer_kind_from_path(relative_path: str) -> NodeKind | None:
    """Guess a kind from the directories of a relative path."""
    parts = [p.lower() for p in PurePosixPath(relative_path.replace("\\", "/")).parts[:-1]]
    for directory, kind in _PATH_KIND_HINTS:
        if directory in parts:
            return kind
    return None


def suggest_relative_path(
    kind: NodeKind,
    title: str,
    directories: dict[str, str] | None = None,
    extension: str = ".md",
) -> str:
    """Build ``<kind dir>/<slug><extension>`` for a new node.

    The slug keeps word characters and whitespace, turns whitespace runs
    into single dashes and lower-cases the result.
    """
    directories = directories or DEFAULT_KIND_DIRECTORIES
    slug = _SLUG_SPACE.sub("-", _SLUG_STRIP.sub("", title).strip()).lower() or "untitled"
    directory = directories.get(kind.value, "misc")
    return f"{directory}/{slug}{extension}"


@dataclass(frozen=True)
class BlockedLink:
    """A source that could not be linked in a bulk connect."""

    source_id: str
    check: LinkCheck


@dataclass
class ConnectManyResult:
    """Outcome of connect_many: which sources linked and which were blocked."""

    connected: list[str] = field(default_factory=list)
    blocked: list[BlockedLink] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return bool(self.connected)


@dataclass(frozen=True)
class ExportedFile:
    """Encoded text of one node, ready to write."""

    node_id: str
    path: Path
    text: str


@dataclass
class KnowledgeGraph:
    """Container and mutation API for one knowledge graph.

    Attributes:
        policy: Active link rules.
        root: Storage root. When set, new nodes get file-path ids and origins.
        max_history: Snapshot bound for undo.
        preserve_unknown_fields: Re-emit unknown header lines on export.
        kind_directories: Directory per kind for new files.
        extension: File extension for new files.
    """

    policy: LinkPolicy = field(default_factory=LinkPolicy)
    root: Path | None = None
    max_history: int = DEFAULT_MAX_ENTRIES
    preserve_unknown_fields: bool = False
    kind_directories: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_KIND_DIRECTORIES)
    )
    extension: str = ".md"

    # Internal storage (prefixed) - excluded from constructor
    _store: NodeStore = field(default_factory=NodeStore, init=False, repr=False)
    _history: History = field(init=False, repr=False)
    dirty: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        self._history = History(max_entries=self.max_history)

    @classmethod
    def from_config(cls, config: dict[str, Any], root: Path | None = None) -> KnowledgeGraph:
        """Create an empty graph using configuration values."""
        storage = config.get("storage", {})
        return cls(
            policy=LinkPolicy.from_config(config),
            root=root,
            max_history=int(config.get("history", {}).get("max_entries", DEFAULT_MAX_ENTRIES)),
            preserve_unknown_fields=bool(
                config.get("codec", {}).get("preserve_unknown_fields", False)
            ),
            kind_directories=dict(storage.get("kind_directories", DEFAULT_KIND_DIRECTORIES)),
            extension=storage.get("extension", ".md"),
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Read API
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def store(self) -> NodeStore:
        return self._store

    @property
    def history(self) -> History:
        return self._history

    def find_by_id(self, node_id: str) -> GraphNode | None:
        """Find node by ID, or None."""
        return self._store.find_by_id(node_id)

    def get(self, node_id: str) -> GraphNode:
        """Return a node by ID.

        Raises:
            NotFoundError: If node_id is absent.
        """
        return self._store.get(node_id)

    def all_nodes(self) -> Iterator[GraphNode]:
        yield from self._store.all()

    def node_count(self) -> int:
        return len(self._store)

    def nodes_by_kind(self, kind: NodeKind) -> Iterator[GraphNode]:
        for node in self._store.all():
            if node.kind == kind:
                yield node

    def list_by_class(self, node_class: NodeClass | str) -> list[GraphNode]:
        """Return every node of class A or B."""
        node_class = NodeClass(node_class) if isinstance(node_class, str) else node_class
        return [node for node in self._store.all() if node.node_class == node_class]

    def search(
        self,
        term: str,
        node_class: NodeClass | str | None = None,
        kinds: Iterable[NodeKind] | None = None,
    ) -> list[GraphNode]:
        """Case-insensitive title search, optionally filtered by class or kinds.

        An empty term matches every node.
        """
        needle = term.strip().lower()
        if isinstance(node_class, str):
            node_class = NodeClass(node_class)
        allowed = set(kinds) if kinds is not None else None
        results = []
        for node in self._store.all():
            if needle and needle not in node.title.lower():
                continue
            if node_class is not None and node.node_class != node_class:
                continue
            if allowed is not None and node.kind not in allowed:
                continue
            results.append(node)
        return results

    def neighbors(self, node_id: str) -> list[GraphNode]:
        """Return the live nodes linked to node_id, skipping broken links."""
        node = self.get(node_id)
        return [n for n in map(self._store.find_by_id, node.iter_links()) if n is not None]

    def eligible_targets(self, node_id: str) -> list[GraphNode]:
        """Return every node node_id could be linked to under the active policy."""
        return eligible_targets(node_id, self._store, self.policy)

    def check_link(self, source_id: str, target_id: str) -> LinkCheck:
        return validate_link(source_id, target_id, self._store, self.policy)

    def audit(self) -> AuditReport:
        """Report broken and asymmetric links without changing anything."""
        return audit_graph(self._store)

    def export_all(self) -> list[ExportedFile]:
        """Encode every node that has a backing file.

        Returns:
            One ExportedFile per persisted node, sorted by id.
        """
        exported = []
        for node in sorted(self._store.all(), key=lambda n: n.id):
            if node.origin is None:
                continue
            text = encode_node(node, preserve_unknown=self.preserve_unknown_fields)
            exported.append(ExportedFile(node_id=node.id, path=node.origin.path, text=text))
        return exported

    def status(self) -> dict[str, Any]:
        last = self._history.last()
        return {
            "node_count": self.node_count(),
            "dirty": self.dirty,
            "can_undo": self._history.can_undo(),
            "history_size": self._history.position,
            "last_operation": last.operation if last else None,
            "same_kind_a_forbidden": self.policy.forbid_same_kind_a,
        }

    # ─────────────────────────────────────────────────────────────────────────
    # Mutation Infrastructure
    # ─────────────────────────────────────────────────────────────────────────

    @contextmanager
    def _mutation(self, operation: str, target_id: str) -> Iterator[Snapshot]:
        """Record a snapshot, run the mutation, mark dirty.

        A mutation that raises leaves no snapshot behind.
        """
        snapshot = self._history.record(self._store, operation, target_id)
        try:
            yield snapshot
        except Exception:
            self._history.discard(snapshot)
            raise
        self.dirty = True
        logger.debug("%s(%s)", operation, target_id)

    def _link(self, source_id: str, target_id: str) -> None:
        self._store.get(source_id)._add_link(target_id)
        self._store.get(target_id)._add_link(source_id)

    def _unlink(self, source_id: str, target_id: str) -> None:
        self._store.get(source_id)._discard_link(target_id)
        self._store.get(target_id)._discard_link(source_id)

    def _new_id(self, kind: NodeKind, title: str) -> str:
        if self.root is None:
            node_id = f"{kind.value}-{uuid4().hex[:6]}"
            while node_id in self._store:
                node_id = f"{kind.value}-{uuid4().hex[:6]}"
            return node_id

        base = suggest_relative_path(kind, title, self.kind_directories, self.extension)
        suffix = self.extension if self.extension and base.endswith(self.extension) else ""
        stem = base[: len(base) - len(suffix)]
        node_id, counter = base, 2
        while node_id in self._store or (self.root / node_id).exists():
            node_id = f"{stem}-{counter}{suffix}"
            counter += 1
        return node_id

    def undo(self) -> Snapshot:
        """Restore the graph to the state before the most recent mutation.

        Only in-memory state is restored; files deleted on disk stay
        deleted until the next save writes them again.

        Returns:
            The snapshot that was restored.

        Raises:
            NoHistoryError: If there is nothing to undo.
        """
        snapshot = self._history.undo(self._store)
        self.dirty = True
        logger.debug("undo -> before %s", snapshot)
        return snapshot

    def mark_clean(self) -> None:
        """Record that the in-memory graph matches storage."""
        self.dirty = False

    # ─────────────────────────────────────────────────────────────────────────
    # Node Mutation API
    # ─────────────────────────────────────────────────────────────────────────

    def create_node(
        self,
        kind: NodeKind | str,
        title: str,
        *,
        node_id: str | None = None,
        description: str = "",
        actionable: bool | None = None,
        due_date: date | str | None = None,
        completed: bool = False,
        connect_to: str | None = None,
    ) -> GraphNode:
        """Add a new node with no links.

        Args:
            kind: NodeKind or its string value.
            title: Non-empty title.
            node_id: Explicit id; generated when omitted (a relative file
                path when the graph has a storage root).
            description: Body text.
            actionable: Defaults to True for tasks, False otherwise.
            due_date: Task due date.
            completed: Task completion flag.
            connect_to: Existing node to link the new node to, in the same
                undo step. Skipped with a warning if the link rules refuse it.

        Returns:
            The created node.

        Raises:
            DuplicateIdError: If node_id is already used.
            InvalidNodeError: If title or kind is invalid.
            NotFoundError: If connect_to does not exist.
        """
        if not isinstance(kind, NodeKind):
            parsed = NodeKind.parse(kind)
            if parsed is None:
                raise InvalidNodeError(f"Unknown node kind: {kind!r}")
            kind = parsed
        if connect_to is not None:
            self._store.get(connect_to)

        if node_id is None:
            node_id = self._new_id(kind, title)
        origin = None
        if self.root is not None and node_id:
            origin = Origin(path=self.root / node_id, relative_path=node_id)
        if actionable is None:
            actionable = kind == NodeKind.TASK

        with self._mutation("create_node", node_id or ""):
            node = self._store.create(
                node_id or "",
                kind,
                title,
                description=description,
                origin=origin,
                actionable=actionable,
                due_date=due_date,
                completed=completed,
            )

        if connect_to is not None:
            check = self.check_link(node.id, connect_to)
            if check.ok:
                self._link(node.id, connect_to)
            else:
                logger.warning(
                    "Created %s but did not link it to %s: %s", node.id, connect_to, check.message
                )
        return node

    def update_node(self, node_id: str, /, **fields: Any) -> GraphNode:
        """Edit node fields (title, description, kind, task attributes).

        Links cannot be changed here; use connect/disconnect.

        Raises:
            NotFoundError: If node_id is absent.
            InvalidNodeError: For read-only or invalid fields.
        """
        self._store.get(node_id)
        with self._mutation("update_node", node_id):
            node = self._store.update(node_id, **fields)
        return node

    def delete_node(self, node_id: str) -> GraphNode:
        """Delete a node, first removing it from every neighbor's links.

        Returns:
            The removed node (its origin tells callers which file to delete).

        Raises:
            NotFoundError: If node_id is absent.
        """
        return self.delete_nodes([node_id])[0]

    def delete_nodes(self, node_ids: Iterable[str]) -> list[GraphNode]:
        """Delete several nodes as one undo step.

        Raises:
            NotFoundError: If any id is absent; nothing is deleted then.
        """
        ids = list(dict.fromkeys(node_ids))
        for node_id in ids:
            self._store.get(node_id)
        if not ids:
            return []

        removed: list[GraphNode] = []
        with self._mutation("delete_node", ",".join(ids)):
            for node_id in ids:
                # Also catches one-sided links left by malformed files
                for other in self._store.all():
                    if other.has_link(node_id):
                        other._discard_link(node_id)
                removed.append(self._store.delete(node_id))
        return removed

    # ─────────────────────────────────────────────────────────────────────────
    # Link Mutation API
    # ─────────────────────────────────────────────────────────────────────────

    def connect(self, source_id: str, target_id: str) -> LinkCheck:
        """Link two nodes in both directions.

        Returns:
            The LinkCheck; when ``ok`` is False nothing changed.
        """
        check = self.check_link(source_id, target_id)
        if not check.ok:
            logger.debug("connect(%s, %s) rejected: %s", source_id, target_id, check.reason)
            return check
        with self._mutation("connect", source_id):
            self._link(source_id, target_id)
        return check

    def require_connect(self, source_id: str, target_id: str) -> None:
        """Like connect, but raise on rejection.

        Raises:
            LinkRejected: If the link rules refuse the link.
        """
        check = self.connect(source_id, target_id)
        if not check.ok:
            raise LinkRejected(source_id, target_id, check.reason.value, check.message or "")

    def connect_many(self, source_ids: Iterable[str], target_id: str) -> ConnectManyResult:
        """Link several sources to one target as a single undo step.

        Each pair is validated against the graph as it stands when that
        pair is reached; refused pairs are reported and left untouched.
        """
        result = ConnectManyResult()
        snapshot: Snapshot | None = None
        for source_id in source_ids:
            check = self.check_link(source_id, target_id)
            if not check.ok:
                result.blocked.append(BlockedLink(source_id, check))
                continue
            if snapshot is None:
                snapshot = self._history.record(self._store, "connect_many", target_id)
            self._link(source_id, target_id)
            result.connected.append(source_id)

        if result.connected:
            self.dirty = True
            logger.debug("connect_many(%s): %d linked", target_id, len(result.connected))
        return result

    def disconnect(self, source_id: str, target_id: str) -> bool:
        """Remove the link between two nodes.

        Returns:
            True if a link was removed, False if they were not linked
            (or either node is missing); nothing is recorded then.
        """
        source = self._store.find_by_id(source_id)
        target = self._store.find_by_id(target_id)
        if source is None or target is None:
            return False
        if not source.has_link(target_id) and not target.has_link(source_id):
            return False
        with self._mutation("disconnect", source_id):
            self._unlink(source_id, target_id)
        return True

    def repair_links(self) -> AuditReport:
        """Make asymmetric links symmetric and drop broken ones.

        Returns:
            The audit report describing what was repaired.
        """
        report = self.audit()
        if report.is_clean:
            return report
        with self._mutation("repair_links", ""):
            for link in report.asymmetric:
                self._store.get(link.target_id)._add_link(link.source_id)
            for broken in report.broken:
                self._store.get(broken.source_id)._discard_link(broken.missing_id)
        logger.info(
            "Repaired %d asymmetric and %d broken links",
            len(report.asymmetric),
            len(report.broken),
        )
        return report


class GraphBuilder:
    """Builds a KnowledgeGraph from decoded node files.

    Example:
        >>> builder = GraphBuilder(root=Path("/notes"))
        >>> builder.add_record("tasks/a.md", decode(text))
        >>> graph = builder.build()
    """

    def __init__(self, config: dict[str, Any] | None = None, root: Path | None = None) -> None:
        self.config = config or {}
        self.root = root
        self._records: list[tuple[str, DecodedRecord, Path | None]] = []

    def add_record(
        self, relative_path: str, record: DecodedRecord, path: Path | None = None
    ) -> None:
        """Queue one decoded file. Its id is ``relative_path``."""
        if path is None and self.root is not None:
            path = self.root / relative_path
        self._records.append((relative_path, record, path))

    def build(self) -> KnowledgeGraph:
        """Create the graph.

        Links are taken from the files as written, so broken or one-sided
        links survive loading and show up in ``KnowledgeGraph.audit()``.
        The result starts clean with an empty history.
        """
        graph = KnowledgeGraph.from_config(self.config, root=self.root)
        store = graph.store

        for relative_path, record, path in self._records:
            kind = (
                NodeKind.parse(record.kind)
                or infer_kind_from_path(relative_path)
                or NodeKind.NOTE
            )
            title = record.title or PurePosixPath(relative_path).stem
            origin = Origin(path=path, relative_path=relative_path) if path else None
            if record.kind and NodeKind.parse(record.kind) is None:
                logger.warning("%s: unknown type %r, using %s", relative_path, record.kind, kind.value)
            if relative_path in store:
                logger.warning("%s: duplicate id, keeping the first file", relative_path)
                continue
            node = store.create(
                relative_path,
                kind,
                title,
                description=record.body,
                origin=origin,
                actionable=kind == NodeKind.TASK,
                due_date=record.due_date,
                completed=record.completed,
                links=record.links,
            )
            node._extra_headers = list(record.unknown_fields)

        return graph


__all__ = [
    "BlockedLink",
    "ConnectManyResult",
    "ExportedFile",
    "GraphBuilder",
    "KnowledgeGraph",
    "infer_kind_from_path",
    "suggest_relative_path",
]
