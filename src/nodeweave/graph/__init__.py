"""Graph module - Core graph data structures.

Exports:
- NodeKind / NodeClass: Item types and their A/B grouping
- Origin: Backing file of a persisted node
- GraphNode: Unified node representation
- NodeStore: id -> node mapping
- LinkPolicy / LinkCheck / RejectReason: Link rules
- History / Snapshot: Undo stack
- AuditReport / BrokenLink / AsymmetricLink: Consistency audit

Note: KnowledgeGraph is in nodeweave.graph.builder
"""

from nodeweave.graph.audit import AsymmetricLink, AuditReport, BrokenLink, audit_graph
from nodeweave.graph.GraphNode import GraphNode, NodeClass, NodeKind, Origin
from nodeweave.graph.mutations import History, Snapshot
from nodeweave.graph.relations import LinkCheck, LinkPolicy, RejectReason, validate_link
from nodeweave.graph.store import NodeStore

__all__ = [
    "NodeKind",
    "NodeClass",
    "Origin",
    "GraphNode",
    "NodeStore",
    "LinkCheck",
    "LinkPolicy",
    "RejectReason",
    "validate_link",
    "History",
    "Snapshot",
    "AuditReport",
    "BrokenLink",
    "AsymmetricLink",
    "audit_graph",
]
