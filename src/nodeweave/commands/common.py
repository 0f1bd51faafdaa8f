"""
nodeweave.commands.common - Loading and saving shared by CLI commands.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from nodeweave.config import get_config, get_storage_root
from nodeweave.graph.builder import KnowledgeGraph
from nodeweave.persistence import FileStore, load_graph
from nodeweave.service import save

logger = logging.getLogger(__name__)


def open_workspace(args: argparse.Namespace) -> tuple[KnowledgeGraph, FileStore]:
    """Load config and the graph stored under the configured root."""
    config = get_config(getattr(args, "config", None))
    root = get_storage_root(config, getattr(args, "root", None))
    if not root.is_dir():
        raise FileNotFoundError(f"Storage root does not exist: {root}")
    file_store = FileStore(root, extension=config["storage"]["extension"])
    graph = asyncio.run(load_graph(file_store, config))
    return graph, file_store


def save_workspace(graph: KnowledgeGraph, file_store: FileStore) -> int:
    """Save pending changes and report failures. Returns an exit code."""
    result = save(graph, file_store)
    for error in result["errors"]:
        print(f"Error: {error}", file=sys.stderr)
    logger.info(result["message"])
    return 0 if result["success"] else 1


def emit(result: dict[str, Any], args: argparse.Namespace, text: str) -> None:
    """Print JSON when --json was given, else the text summary."""
    if getattr(args, "json", False):
        print(json.dumps(result, indent=2, default=str))
    elif text:
        print(text)


def report_failure(result: dict[str, Any]) -> int:
    print(f"Error: {result.get('error', 'unknown error')}", file=sys.stderr)
    return 1
