"""NodeStore - Authoritative id -> node mapping.

The store owns node identity. It validates node fields but knows
nothing about link symmetry: links are only changed through
``KnowledgeGraph``, which keeps both ends of every edge in step.
"""

from __future__ import annotations

import copy
from datetime import date
from typing import Any, Iterable, Iterator

from nodeweave.exceptions import DuplicateIdError, InvalidNodeError, NotFoundError
from nodeweave.graph.GraphNode import EDITABLE_FIELDS, GraphNode, NodeKind, Origin


def _coerce_kind(kind: NodeKind | str) -> NodeKind:
    if isinstance(kind, NodeKind):
        return kind
    parsed = NodeKind.parse(kind)
    if parsed is None:
        raise InvalidNodeError(f"Unknown node kind: {kind!r}")
    return parsed


def _coerce_date(value: date | str | None) -> date | None:
    if value is None or isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise InvalidNodeError(f"Invalid due date: {value!r}") from e


def _drop_task_fields(node: GraphNode) -> None:
    if node.kind is not NodeKind.TASK:
        node.due_date = None
        node.completed = False
        node.actionable = False


def _check_title(title: Any) -> str:
    if not isinstance(title, str) or not title.strip():
        raise InvalidNodeError("Title must be a non-empty string")
    if "\n" in title or "\r" in title:
        raise InvalidNodeError("Title must be a single line")
    return title.strip()


class NodeStore:
    """Mapping of node id to GraphNode.

    Example:
        >>> store = NodeStore()
        >>> node = store.create("notes/idea.md", NodeKind.NOTE, "Idea")
        >>> store.get("notes/idea.md").title
        'Idea'
    """

    def __init__(self) -> None:
        self._index: dict[str, GraphNode] = {}

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._index

    def __len__(self) -> int:
        return len(self._index)

    def create(
        self,
        node_id: str,
        kind: NodeKind | str,
        title: str,
        *,
        description: str = "",
        origin: Origin | None = None,
        actionable: bool = False,
        due_date: date | str | None = None,
        completed: bool = False,
        links: Iterable[str] | None = None,
    ) -> GraphNode:
        """Create and register a new node.

        Args:
            node_id: Unique identifier.
            kind: NodeKind or its string value.
            title: Non-empty display title.
            description: Body text.
            origin: Backing file, if any.
            actionable: Task flag.
            due_date: Task due date (date or ISO string).
            completed: Task completion flag.
            links: Initial neighbor ids. Only the graph loader passes
                these; the caller is responsible for symmetry.

        Returns:
            The new GraphNode.

        Raises:
            DuplicateIdError: If node_id is already registered.
            InvalidNodeError: If the title is empty or spans lines, or the
                kind is unknown.
        """
        if not node_id:
            raise InvalidNodeError("Node id must be non-empty")
        if node_id in self._index:
            raise DuplicateIdError(node_id)

        node = GraphNode(
            id=node_id,
            kind=_coerce_kind(kind),
            title=_check_title(title),
            description=description or "",
            origin=origin,
            actionable=actionable,
            due_date=_coerce_date(due_date),
            completed=completed,
        )
        for link in links or ():
            if link != node_id:
                node._add_link(link)
        _drop_task_fields(node)
        self._index[node_id] = node
        return node

    def update(self, node_id: str, /, **fields: Any) -> GraphNode:
        """Merge editable fields into an existing node.

        A node that is not a task ends up with no due date and with
        actionable and completed cleared. A node that becomes a task is
        actionable unless the call says otherwise.

        Args:
            node_id: The node to update.
            **fields: Any of kind, title, description, actionable,
                due_date, completed.

        Returns:
            The updated node.

        Raises:
            NotFoundError: If node_id is absent.
            InvalidNodeError: For links, id, origin or unknown fields,
                or invalid values.
        """
        node = self.get(node_id)

        rejected = sorted(set(fields) - set(EDITABLE_FIELDS))
        if rejected:
            raise InvalidNodeError(f"Fields cannot be updated directly: {', '.join(rejected)}")

        # Validate everything before touching the node
        values = dict(fields)
        if "kind" in values:
            values["kind"] = _coerce_kind(values["kind"])
        if "title" in values:
            values["title"] = _check_title(values["title"])
        if "due_date" in values:
            values["due_date"] = _coerce_date(values["due_date"])
        if "description" in values:
            values["description"] = values["description"] or ""
        for flag in ("actionable", "completed"):
            if flag in values:
                values[flag] = bool(values[flag])

        becomes_task = values.get("kind") is NodeKind.TASK and node.kind is not NodeKind.TASK
        for key, value in values.items():
            setattr(node, key, value)
        if becomes_task and "actionable" not in values:
            node.actionable = True
        _drop_task_fields(node)
        return node

    def delete(self, node_id: str) -> GraphNode:
        """Remove a node record and return it.

        Incoming links must already have been removed by the caller.

        Raises:
            NotFoundError: If node_id is absent.
        """
        try:
            return self._index.pop(node_id)
        except KeyError:
            raise NotFoundError(node_id) from None

    def get(self, node_id: str) -> GraphNode:
        """Return a node by id.

        Raises:
            NotFoundError: If node_id is absent.
        """
        node = self._index.get(node_id)
        if node is None:
            raise NotFoundError(node_id)
        return node

    def find_by_id(self, node_id: str) -> GraphNode | None:
        """Return a node by id, or None."""
        return self._index.get(node_id)

    def all(self) -> Iterator[GraphNode]:
        """Iterate all nodes in insertion order."""
        yield from self._index.values()

    def ids(self) -> list[str]:
        return list(self._index)

    def copy_nodes(self) -> dict[str, GraphNode]:
        """Return a deep, independent copy of every node."""
        return copy.deepcopy(self._index)

    def replace_all(self, nodes: dict[str, GraphNode]) -> None:
        """Replace the whole content with a deep copy of ``nodes``."""
        self._index = copy.deepcopy(nodes)
