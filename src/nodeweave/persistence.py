"""Persistence layer - node files on disk.

``FileStore`` is the storage collaborator: scan, read, write, create and
delete, each an awaitable request that runs blocking file I/O in a worker
thread. The graph itself is never touched while a request is pending;
callers mutate the graph only between awaits.

Public API
----------
- ``FileStore`` - file operations under one root directory
- ``load_graph`` - scan a root and build a KnowledgeGraph
- ``save_all`` - write every persisted node, clearing ``dirty`` on full success
- ``delete_node_files`` - remove the files behind deleted nodes
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Iterable

from nodeweave.exceptions import PersistenceError
from nodeweave.graph.builder import GraphBuilder, KnowledgeGraph, infer_kind_from_path
from nodeweave.graph.GraphNode import GraphNode, NodeKind
from nodeweave.graph.serialize import decode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScannedFile:
    """One node file found by a scan.

    Attributes:
        id: Node id (same as relative_path).
        path: Absolute path.
        relative_path: Path relative to the root, with forward slashes.
        meta: Header summary: class, kind, raw_type, title, links.
    """

    id: str
    path: Path
    relative_path: str
    meta: dict[str, Any] = field(default_factory=dict)


@dataclass
class SaveResult:
    """Outcome of save_all."""

    success: bool
    files_written: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "files_written": list(self.files_written),
            "errors": list(self.errors),
        }


def _header_meta(relative_path: str, text: str | None) -> dict[str, Any]:
    record = decode(text) if text is not None else None
    raw_type = record.kind if record else None
    kind = NodeKind.parse(raw_type) or infer_kind_from_path(relative_path)
    return {
        "class": kind.node_class.value if kind else None,
        "kind": kind.value if kind else None,
        "raw_type": raw_type,
        "title": (record.title if record else None) or PurePosixPath(relative_path).stem,
        "links": list(record.links) if record else [],
    }


class FileStore:
    """Node files under one root directory.

    Example:
        >>> store = FileStore(Path("~/notes").expanduser())
        >>> files = asyncio.run(store.scan())
    """

    def __init__(self, root: Path, extension: str = ".md") -> None:
        self.root = Path(root)
        self.extension = extension.lower()

    def list_paths(self) -> list[tuple[str, Path]]:
        """Return (relative_path, absolute_path) for every node file, sorted.

        Unreadable directories are skipped.
        """
        found: list[tuple[str, Path]] = []
        for dirpath, _dirnames, filenames in os.walk(self.root):
            for name in filenames:
                if not name.lower().endswith(self.extension):
                    continue
                full = Path(dirpath) / name
                if not full.is_file():
                    continue
                found.append((full.relative_to(self.root).as_posix(), full))
        found.sort(key=lambda item: item[0])
        return found

    async def scan(self) -> list[ScannedFile]:
        """List node files with their header metadata, sorted by relative path."""
        paths = await asyncio.to_thread(self.list_paths)
        texts = await asyncio.gather(
            *(self.read(path) for _rel, path in paths), return_exceptions=True
        )
        scanned = []
        for (relative_path, path), text in zip(paths, texts):
            if isinstance(text, BaseException):
                logger.warning("Could not read %s: %s", relative_path, text)
                text = None
            scanned.append(
                ScannedFile(
                    id=relative_path,
                    path=path,
                    relative_path=relative_path,
                    meta=_header_meta(relative_path, text),
                )
            )
        return scanned

    async def read(self, path: Path) -> str:
        """Return a file's text.

        Raises:
            PersistenceError: If the file cannot be read.
        """
        try:
            return await asyncio.to_thread(Path(path).read_text, encoding="utf-8")
        except OSError as e:
            raise PersistenceError(str(path), e) from e

    async def write(self, path: Path, text: str) -> None:
        """Write a file, creating parent directories.

        Raises:
            PersistenceError: If the file cannot be written.
        """

        def _write() -> None:
            target = Path(path)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            raise PersistenceError(str(path), e) from e

    async def create(self, relative_path: str, text: str) -> Path:
        """Create a new file under the root.

        Returns:
            The absolute path written.

        Raises:
            PersistenceError: If the file exists or cannot be written.
        """
        full_path = self.root / relative_path
        if await asyncio.to_thread(full_path.exists):
            raise PersistenceError(str(full_path), FileExistsError("file already exists"))
        await self.write(full_path, text)
        return full_path

    async def delete(self, path: Path) -> None:
        """Delete a file.

        Raises:
            PersistenceError: If the file cannot be removed.
        """
        try:
            await asyncio.to_thread(Path(path).unlink)
        except OSError as e:
            raise PersistenceError(str(path), e) from e


async def load_graph(file_store: FileStore, config: dict[str, Any] | None = None) -> KnowledgeGraph:
    """Scan file_store.root and build a clean KnowledgeGraph.

    Files that cannot be read are skipped with a warning.
    """
    paths = await asyncio.to_thread(file_store.list_paths)
    texts = await asyncio.gather(
        *(file_store.read(path) for _rel, path in paths), return_exceptions=True
    )

    builder = GraphBuilder(config=config, root=file_store.root)
    for (relative_path, path), text in zip(paths, texts):
        if isinstance(text, BaseException):
            logger.warning("Skipping %s: %s", relative_path, text)
            continue
        builder.add_record(relative_path, decode(text), path)

    graph = builder.build()
    logger.info("Loaded %d nodes from %s", graph.node_count(), file_store.root)
    return graph


async def save_all(graph: KnowledgeGraph, file_store: FileStore) -> SaveResult:
    """Write every persisted node concurrently.

    Writes are independent: a failure does not roll back files already
    written. ``graph.dirty`` is cleared only when every write succeeded.
    """
    exported = graph.export_all()
    outcomes = await asyncio.gather(
        *(file_store.write(item.path, item.text) for item in exported), return_exceptions=True
    )

    result = SaveResult(success=True)
    for item, outcome in zip(exported, outcomes):
        if isinstance(outcome, PersistenceError):
            logger.warning("Save failed: %s", outcome)
            result.errors.append(str(outcome))
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            result.files_written.append(item.node_id)

    result.success = not result.errors
    if result.success:
        graph.mark_clean()
        logger.info("Saved %d files", len(result.files_written))
    return result


async def delete_node_files(nodes: Iterable[GraphNode], file_store: FileStore) -> list[str]:
    """Delete the backing files of removed nodes.

    Undo does not bring these files back; the next save rewrites any
    node restored in memory.

    Returns:
        Error messages for files that could not be deleted.
    """
    targets = [node.origin.path for node in nodes if node.origin is not None]
    outcomes = await asyncio.gather(
        *(file_store.delete(path) for path in targets), return_exceptions=True
    )
    errors = []
    for outcome in outcomes:
        if isinstance(outcome, PersistenceError):
            logger.warning("Delete failed: %s", outcome)
            errors.append(str(outcome))
        elif isinstance(outcome, BaseException):
            raise outcome
    return errors
