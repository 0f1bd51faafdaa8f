"""Exception types raised by nodeweave.

Lookup and validation errors also subclass the builtin exception that
plain dict/argument handling would raise, so ``except KeyError`` and
``except ValueError`` keep working for callers.
"""

from __future__ import annotations


class NodeweaveError(Exception):
    """Base class for all nodeweave errors."""


class NotFoundError(NodeweaveError, KeyError):
    """A node id is not present in the store."""

    def __init__(self, node_id: str) -> None:
        super().__init__(node_id)
        self.node_id = node_id

    def __str__(self) -> str:
        return f"Node '{self.node_id}' not found"


class DuplicateIdError(NodeweaveError, ValueError):
    """A node with the same id already exists."""

    def __init__(self, node_id: str) -> None:
        super().__init__(f"Node '{node_id}' already exists")
        self.node_id = node_id


class InvalidNodeError(NodeweaveError, ValueError):
    """Node fields fail validation (empty title, unknown kind, read-only field)."""


class LinkRejected(NodeweaveError, ValueError):
    """A link was refused by the link rules."""

    def __init__(self, source_id: str, target_id: str, reason: str, message: str) -> None:
        super().__init__(message)
        self.source_id = source_id
        self.target_id = target_id
        self.reason = reason


class NoHistoryError(NodeweaveError):
    """Undo was requested with nothing left to undo."""


class PersistenceError(NodeweaveError):
    """A storage operation failed for one path."""

    def __init__(self, path: str, cause: BaseException) -> None:
        super().__init__(f"{path}: {cause}")
        self.path = path
        self.cause = cause
