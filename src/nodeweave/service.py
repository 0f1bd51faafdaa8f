"""nodeweave.service - Request/response operations over a KnowledgeGraph.

Every function takes the graph (and file store where needed) explicitly,
validates its parameters, delegates to KnowledgeGraph, and returns a
JSON-compatible dict. Failures come back as
``{"success": False, "error": ...}`` rather than exceptions, so the CLI
and the REST server share one translation of errors into messages.
"""

from __future__ import annotations

import asyncio
from typing import Any

from nodeweave.exceptions import NodeweaveError, NoHistoryError
from nodeweave.graph.builder import KnowledgeGraph
from nodeweave.graph.GraphNode import NodeClass, NodeKind
from nodeweave.graph.mutations import Snapshot
from nodeweave.graph.serialize import serialize_node
from nodeweave.persistence import FileStore, delete_node_files, save_all


def _serialize_snapshot(snapshot: Snapshot) -> dict[str, Any]:
    return {
        "id": snapshot.id,
        "operation": snapshot.operation,
        "target_id": snapshot.target_id,
        "timestamp": snapshot.timestamp.isoformat(),
    }


def get_status(graph: KnowledgeGraph) -> dict[str, Any]:
    """Graph status: node count, dirty flag, undo availability."""
    return graph.status()


def get_node(graph: KnowledgeGraph, node_id: str) -> dict[str, Any]:
    """Full node details plus its neighbors' titles."""
    node = graph.find_by_id(node_id)
    if node is None:
        return {"success": False, "error": f"Node '{node_id}' not found"}
    result = serialize_node(node)
    result["neighbors"] = [
        {"id": n.id, "title": n.title, "kind": n.kind.value} for n in graph.neighbors(node_id)
    ]
    result["eligible_targets"] = [n.id for n in graph.eligible_targets(node_id)]
    return result


def query_nodes(
    graph: KnowledgeGraph,
    term: str = "",
    node_class: str | None = None,
    kinds: list[str] | None = None,
) -> dict[str, Any]:
    """Search titles, filtered by class (A/B) and kinds."""
    try:
        cls = NodeClass(node_class.upper()) if node_class else None
        kind_filter = None
        if kinds:
            kind_filter = []
            for value in kinds:
                kind = NodeKind.parse(value)
                if kind is None:
                    return {"success": False, "error": f"Unknown kind: {value}"}
                kind_filter.append(kind)
    except ValueError:
        return {"success": False, "error": f"Unknown class: {node_class}"}

    nodes = graph.search(term, node_class=cls, kinds=kind_filter)
    return {"success": True, "count": len(nodes), "nodes": [serialize_node(n) for n in nodes]}


def create_node(graph: KnowledgeGraph, kind: str, title: str, /, **fields: Any) -> dict[str, Any]:
    """Create a node; ``connect_to`` links it in the same undo step."""
    try:
        node = graph.create_node(kind, title, **fields)
    except (NodeweaveError, ValueError, KeyError) as e:
        return {"success": False, "error": str(e)}
    return {"success": True, "node": serialize_node(node), "message": f"Created {node.id}"}


def update_node(graph: KnowledgeGraph, node_id: str, /, **fields: Any) -> dict[str, Any]:
    try:
        node = graph.update_node(node_id, **fields)
    except (NodeweaveError, ValueError, KeyError) as e:
        return {"success": False, "error": str(e)}
    return {"success": True, "node": serialize_node(node), "message": f"Updated {node_id}"}


def connect(graph: KnowledgeGraph, source_ids: list[str], target_id: str) -> dict[str, Any]:
    """Link one or more sources to target_id.

    Succeeds when at least one source was linked; ``blocked`` lists the
    refused sources with reason codes and messages.
    """
    result = graph.connect_many(source_ids, target_id)
    response: dict[str, Any] = {
        "success": result.ok,
        "connected": list(result.connected),
        "blocked": [
            {"source_id": b.source_id, "reason": b.check.reason.value, "message": b.check.message}
            for b in result.blocked
            if b.check.reason is not None
        ],
    }
    if not result.ok:
        messages = sorted({b["message"] for b in response["blocked"]})
        response["error"] = " ".join(messages) or "Nothing to link"
    return response


def disconnect(graph: KnowledgeGraph, source_id: str, target_id: str) -> dict[str, Any]:
    removed = graph.disconnect(source_id, target_id)
    message = f"Unlinked {source_id} and {target_id}" if removed else "Nodes were not linked"
    return {"success": True, "changed": removed, "message": message}


def delete_nodes(
    graph: KnowledgeGraph, node_ids: list[str], file_store: FileStore | None = None
) -> dict[str, Any]:
    """Delete nodes and, when a file store is given, their files.

    File deletion cannot be undone.
    """
    try:
        removed = graph.delete_nodes(node_ids)
    except (NodeweaveError, KeyError) as e:
        return {"success": False, "error": str(e)}

    errors: list[str] = []
    if file_store is not None:
        errors = asyncio.run(delete_node_files(removed, file_store))
    return {
        "success": not errors,
        "deleted": [n.id for n in removed],
        "errors": errors,
    }


def undo(graph: KnowledgeGraph) -> dict[str, Any]:
    try:
        snapshot = graph.undo()
    except NoHistoryError:
        return {"success": False, "error": "Nothing to undo"}
    return {
        "success": True,
        "restored": _serialize_snapshot(snapshot),
        "message": f"Undid {snapshot.operation}",
    }


def get_history(graph: KnowledgeGraph) -> dict[str, Any]:
    return {"entries": [_serialize_snapshot(s) for s in graph.history.iter_entries()]}


def audit(graph: KnowledgeGraph, fix: bool = False) -> dict[str, Any]:
    """Report broken and asymmetric links; repair them when ``fix`` is set."""
    report = graph.repair_links() if fix else graph.audit()
    result = report.to_dict()
    result["clean"] = report.is_clean
    result["repaired"] = fix and not report.is_clean
    return result


def save(graph: KnowledgeGraph, file_store: FileStore) -> dict[str, Any]:
    """Write all persisted nodes. Does nothing when the graph is clean."""
    if not graph.dirty:
        return {"success": True, "files_written": [], "errors": [], "message": "No changes"}
    result = asyncio.run(save_all(graph, file_store)).to_dict()
    result["message"] = (
        f"Saved {len(result['files_written'])} files"
        if result["success"]
        else f"{len(result['errors'])} files could not be saved"
    )
    return result
