"""
nodeweave - Linked knowledge items stored as plain text files

Tasks, notes, projects, goals, areas and resources form an undirected
graph. Every item lives in its own file with a small header block, and
links are kept symmetric in memory with full-snapshot undo.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("nodeweave")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"  # Not installed
__license__ = "MIT"

from nodeweave.exceptions import (
    DuplicateIdError,
    InvalidNodeError,
    LinkRejected,
    NodeweaveError,
    NoHistoryError,
    NotFoundError,
    PersistenceError,
)
from nodeweave.graph.builder import GraphBuilder, KnowledgeGraph
from nodeweave.graph.GraphNode import GraphNode, NodeClass, NodeKind

__all__ = [
    "__version__",
    "DuplicateIdError",
    "GraphBuilder",
    "GraphNode",
    "InvalidNodeError",
    "KnowledgeGraph",
    "LinkRejected",
    "NodeClass",
    "NodeKind",
    "NodeweaveError",
    "NoHistoryError",
    "NotFoundError",
    "PersistenceError",
]
