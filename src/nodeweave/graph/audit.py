"""Link consistency audit.

A read-only scan over every node's link set that reports:
- BrokenLink: a link to an id that is not in the store
- AsymmetricLink: a link whose other end does not link back

Loaded files can carry either problem; live mutations never create them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from nodeweave.graph.store import NodeStore


@dataclass(frozen=True)
class BrokenLink:
    """A link to a node that does not exist.

    Attributes:
        source_id: Node holding the link.
        missing_id: Linked id with no node behind it.
    """

    source_id: str
    missing_id: str

    def __str__(self) -> str:
        return f"{self.source_id} --> {self.missing_id} (missing)"


@dataclass(frozen=True)
class AsymmetricLink:
    """A one-sided link: source links to target but not back."""

    source_id: str
    target_id: str

    def __str__(self) -> str:
        return f"{self.source_id} --> {self.target_id} (no link back)"


@dataclass
class AuditReport:
    """Findings of one audit run."""

    asymmetric: list[AsymmetricLink] = field(default_factory=list)
    broken: list[BrokenLink] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not self.asymmetric and not self.broken

    def to_dict(self) -> dict[str, Any]:
        return {
            "asymmetric": [{"from": a.source_id, "to": a.target_id} for a in self.asymmetric],
            "broken": [{"from": b.source_id, "missing_to": b.missing_id} for b in self.broken],
        }


def audit_graph(store: NodeStore) -> AuditReport:
    """Scan every link once and report broken and asymmetric ones.

    Args:
        store: The nodes to audit. Not modified.

    Returns:
        An AuditReport, ordered by source node then linked id.
    """
    report = AuditReport()
    for node in store.all():
        for other_id in node.iter_links():
            other = store.find_by_id(other_id)
            if other is None:
                report.broken.append(BrokenLink(node.id, other_id))
            elif not other.has_link(node.id):
                report.asymmetric.append(AsymmetricLink(node.id, other_id))
    return report
