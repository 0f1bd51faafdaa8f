"""Relations - Link rules between knowledge items.

Links are undirected. This module decides whether a new link may be
added; it never mutates anything:
- RejectReason: Why a link was refused
- LinkPolicy: Deployment-level switches for the rules
- LinkCheck: Outcome of a single validation
- validate_link: The decision function
- eligible_targets: Every node a given node could be linked to
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from nodeweave.graph.GraphNode import NodeClass

if TYPE_CHECKING:
    from nodeweave.graph.GraphNode import GraphNode
    from nodeweave.graph.store import NodeStore


class RejectReason(Enum):
    """Reasons a link can be refused, in the order they are checked."""

    SELF = "self"
    MISSING = "missing"
    DUPLICATE = "duplicate"
    SAME_KIND_A = "sameKindA"


REASON_MESSAGES = {
    RejectReason.SELF: "A node cannot be linked to itself.",
    RejectReason.MISSING: "The node to link could not be found.",
    RejectReason.DUPLICATE: "These nodes are already linked.",
    RejectReason.SAME_KIND_A: "Task-to-task and note-to-note links are not allowed.",
}


@dataclass(frozen=True)
class LinkPolicy:
    """Switches for the link rules.

    Attributes:
        forbid_same_kind_a: Refuse links between two class-A nodes of
            the same kind (task-task, note-note).
    """

    forbid_same_kind_a: bool = True

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> LinkPolicy:
        links = config.get("links", {})
        return cls(forbid_same_kind_a=bool(links.get("forbid_same_kind_a", True)))


@dataclass(frozen=True)
class LinkCheck:
    """Result of validating one candidate link."""

    ok: bool
    reason: RejectReason | None = None

    @property
    def message(self) -> str | None:
        """User-facing text for the reason, if rejected."""
        return REASON_MESSAGES[self.reason] if self.reason else None

    def to_dict(self) -> dict[str, Any]:
        return {"ok": self.ok, "reason": self.reason.value if self.reason else None}


ACCEPT = LinkCheck(ok=True)


def _same_kind_a(source: GraphNode, target: GraphNode) -> bool:
    return (
        source.node_class == NodeClass.A
        and target.node_class == NodeClass.A
        and source.kind == target.kind
    )


def validate_link(
    source_id: str,
    target_id: str,
    store: NodeStore,
    policy: LinkPolicy | None = None,
) -> LinkCheck:
    """Decide whether a link from source to target may be added.

    Checks run in order and the first failure wins: self, missing,
    duplicate, then (when the policy enables it) sameKindA.

    Args:
        source_id: One end of the candidate link.
        target_id: The other end.
        store: The nodes to check against.
        policy: Active link policy. Defaults to ``LinkPolicy()``.

    Returns:
        A LinkCheck; ``ok`` is False with a reason when rejected.
    """
    policy = policy or LinkPolicy()

    if source_id == target_id:
        return LinkCheck(ok=False, reason=RejectReason.SELF)

    source = store.find_by_id(source_id)
    target = store.find_by_id(target_id)
    if source is None or target is None:
        return LinkCheck(ok=False, reason=RejectReason.MISSING)

    if source.has_link(target_id):
        return LinkCheck(ok=False, reason=RejectReason.DUPLICATE)

    if policy.forbid_same_kind_a and _same_kind_a(source, target):
        return LinkCheck(ok=False, reason=RejectReason.SAME_KIND_A)

    return ACCEPT


def eligible_targets(
    node_id: str,
    store: NodeStore,
    policy: LinkPolicy | None = None,
) -> list[GraphNode]:
    """Return every node that ``node_id`` could be linked to right now."""
    if node_id not in store:
        return []
    return [
        candidate
        for candidate in store.all()
        if validate_link(node_id, candidate.id, store, policy).ok
    ]
