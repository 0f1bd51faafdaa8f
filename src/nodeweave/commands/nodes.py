"""
nodeweave.commands.nodes - List, search, show, create, edit and delete nodes.

- `nodeweave list [--class A|B] [--kind KIND]`
- `nodeweave search TERM`
- `nodeweave show ID`
- `nodeweave new KIND TITLE [--description TEXT] [--due DATE] [--link ID]`
- `nodeweave edit ID [--title] [--description] [--kind] [--due] [--complete|--incomplete]`
- `nodeweave delete ID...`
"""

from __future__ import annotations

import argparse
import sys
from typing import Any

from nodeweave import service
from nodeweave.commands.common import emit, open_workspace, report_failure, save_workspace


def _format_row(node: dict[str, Any]) -> str:
    marker = ""
    if node["kind"] == "task":
        marker = "[x] " if node.get("completed") else "[ ] "
    links = f"  ({len(node['links'])} links)" if node["links"] else ""
    return f"{node['class']}  {node['kind']:<8} {marker}{node['title']}  <{node['id']}>{links}"


def run_list(args: argparse.Namespace) -> int:
    """Run the list and search commands."""
    graph, _store = open_workspace(args)
    kinds = [args.kind] if getattr(args, "kind", None) else None
    result = service.query_nodes(
        graph,
        term=getattr(args, "term", "") or "",
        node_class=getattr(args, "node_class", None),
        kinds=kinds,
    )
    if not result["success"]:
        return report_failure(result)
    emit(result, args, "\n".join(_format_row(n) for n in result["nodes"]))
    return 0


def run_show(args: argparse.Namespace) -> int:
    """Run the show command."""
    graph, _store = open_workspace(args)
    result = service.get_node(graph, args.node_id)
    if result.get("success") is False:
        return report_failure(result)

    lines = [f"{result['title']}  <{result['id']}>", f"kind: {result['kind']} (class {result['class']})"]
    if result["kind"] == "task":
        lines.append(f"due: {result.get('due_date') or '-'}  completed: {result['completed']}")
    for neighbor in result["neighbors"]:
        lines.append(f"  - {neighbor['title']} <{neighbor['id']}>")
    if result["description"]:
        lines.extend(["", result["description"]])
    emit(result, args, "\n".join(lines))
    return 0


def run_new(args: argparse.Namespace) -> int:
    """Run the new command."""
    graph, store = open_workspace(args)
    fields: dict[str, Any] = {"description": args.description or ""}
    if args.due:
        fields["due_date"] = args.due
    if args.link:
        fields["connect_to"] = args.link
    result = service.create_node(graph, args.kind, args.title, **fields)
    if not result["success"]:
        return report_failure(result)
    emit(result, args, result["message"])
    return save_workspace(graph, store)


def run_edit(args: argparse.Namespace) -> int:
    """Run the edit command."""
    graph, store = open_workspace(args)
    fields: dict[str, Any] = {}
    if args.title is not None:
        fields["title"] = args.title
    if args.description is not None:
        fields["description"] = args.description
    if args.kind is not None:
        fields["kind"] = args.kind
    if args.due is not None:
        fields["due_date"] = args.due or None
    if args.completed is not None:
        fields["completed"] = args.completed
    if not fields:
        print("Nothing to change.")
        return 0
    result = service.update_node(graph, args.node_id, **fields)
    if not result["success"]:
        return report_failure(result)
    emit(result, args, result["message"])
    return save_workspace(graph, store)


def run_delete(args: argparse.Namespace) -> int:
    """Run the delete command. Files are removed; undo cannot bring them back."""
    graph, store = open_workspace(args)
    result = service.delete_nodes(graph, args.node_ids, store)
    if "error" in result:
        return report_failure(result)
    emit(result, args, f"Deleted {len(result['deleted'])} node(s)")
    if result["errors"]:
        for error in result["errors"]:
            print(f"Error: {error}", file=sys.stderr)
    code = save_workspace(graph, store)
    return 1 if result["errors"] else code
