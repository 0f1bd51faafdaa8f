"""
nodeweave.commands.links - Link and unlink nodes.

- `nodeweave connect SOURCE [SOURCE...] --to TARGET`
- `nodeweave disconnect SOURCE TARGET`
"""

from __future__ import annotations

import argparse
import sys

from nodeweave import service
from nodeweave.commands.common import emit, open_workspace, report_failure, save_workspace


def run_connect(args: argparse.Namespace) -> int:
    """Run the connect command."""
    graph, store = open_workspace(args)
    result = service.connect(graph, args.sources, args.target)
    for blocked in result["blocked"]:
        print(f"Skipped {blocked['source_id']}: {blocked['message']}", file=sys.stderr)
    if not result["success"]:
        return report_failure(result)
    emit(result, args, f"Linked {len(result['connected'])} node(s) to {args.target}")
    return save_workspace(graph, store)


def run_disconnect(args: argparse.Namespace) -> int:
    """Run the disconnect command."""
    graph, store = open_workspace(args)
    result = service.disconnect(graph, args.source, args.target)
    emit(result, args, result["message"])
    if not result["changed"]:
        return 0
    return save_workspace(graph, store)
