"""
nodeweave.commands.audit - Check link consistency across all nodes.

Reports links to missing nodes and links with no link back. With --fix
the one-sided links are completed, the broken ones removed, and the
result saved.
"""

from __future__ import annotations

import argparse

from nodeweave import service
from nodeweave.commands.common import emit, open_workspace, save_workspace


def _summary(result: dict) -> str:
    if result["clean"]:
        return "All links are consistent."
    lines = []
    if result["asymmetric"]:
        lines.append(f"One-sided links ({len(result['asymmetric'])}):")
        lines.extend(f"  {a['from']} -> {a['to']} (no link back)" for a in result["asymmetric"])
    if result["broken"]:
        lines.append(f"Broken links ({len(result['broken'])}):")
        lines.extend(f"  {b['from']} -> {b['missing_to']} (missing)" for b in result["broken"])
    if result["repaired"]:
        lines.append("Repaired.")
    return "\n".join(lines)


def run(args: argparse.Namespace) -> int:
    """Run the audit command.

    Returns 0 when the graph is clean or was repaired and saved, 1 otherwise.
    """
    graph, store = open_workspace(args)
    result = service.audit(graph, fix=args.fix)
    emit(result, args, _summary(result))
    if result["repaired"]:
        return save_workspace(graph, store)
    return 0 if result["clean"] else 1
