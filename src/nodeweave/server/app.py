"""nodeweave.server.app - Flask app factory and REST API routes.

This is a THIN REST wrapper: all logic delegates to ``nodeweave.service``.
No graph logic is duplicated here.

State pattern:
    _state = {"graph": graph, "file_store": file_store}
"""

from __future__ import annotations

import logging
from typing import Any

from flask import Flask, jsonify, request
from flask_cors import CORS

from nodeweave import service
from nodeweave.graph.builder import KnowledgeGraph
from nodeweave.persistence import FileStore

logger = logging.getLogger(__name__)


def _status_code(result: dict[str, Any], failure: int = 400) -> int:
    return 200 if result.get("success", True) else failure


def create_app(graph: KnowledgeGraph, file_store: FileStore | None = None) -> Flask:
    """Create the Flask application with REST API routes.

    Args:
        graph: The live KnowledgeGraph.
        file_store: Storage for save and delete; without it the graph is
            in-memory only and /api/save returns 409.

    Returns:
        Configured Flask application.
    """
    app = Flask(__name__)
    CORS(app)

    _state: dict[str, Any] = {"graph": graph, "file_store": file_store}

    @app.after_request
    def _no_cache(response):
        response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
        return response

    # ─────────────────────────────────────────────────────────────────
    # Read-only GET endpoints
    # ─────────────────────────────────────────────────────────────────

    @app.route("/api/status")
    def api_status():
        """GET /api/status - Node count, dirty flag, undo availability."""
        return jsonify(service.get_status(_state["graph"]))

    @app.route("/api/nodes")
    def api_nodes():
        """GET /api/nodes?q=<term>&class=<A|B>&kind=<kind>[,<kind>]"""
        kinds_str = request.args.get("kind", "")
        kinds = [k.strip() for k in kinds_str.split(",") if k.strip()] or None
        result = service.query_nodes(
            _state["graph"],
            term=request.args.get("q", ""),
            node_class=request.args.get("class") or None,
            kinds=kinds,
        )
        return jsonify(result), _status_code(result)

    @app.route("/api/nodes/<path:node_id>")
    def api_node(node_id: str):
        """GET /api/nodes/<node_id> - Node details, neighbors, eligible targets."""
        result = service.get_node(_state["graph"], node_id)
        return jsonify(result), _status_code(result, 404)

    @app.route("/api/audit")
    def api_audit():
        """GET /api/audit - Broken and asymmetric links."""
        return jsonify(service.audit(_state["graph"]))

    @app.route("/api/history")
    def api_history():
        """GET /api/history - Undoable operations, oldest first."""
        return jsonify(service.get_history(_state["graph"]))

    # ─────────────────────────────────────────────────────────────────
    # Mutation endpoints
    # ─────────────────────────────────────────────────────────────────

    @app.route("/api/nodes", methods=["POST"])
    def api_create_node():
        """POST /api/nodes - {kind, title, description?, due_date?, connect_to?}"""
        data = request.get_json(silent=True) or {}
        fields = {
            key: data[key]
            for key in ("description", "due_date", "completed", "actionable", "connect_to")
            if key in data
        }
        result = service.create_node(
            _state["graph"], data.get("kind", ""), data.get("title", ""), **fields
        )
        return jsonify(result), 201 if result["success"] else 400

    @app.route("/api/nodes/<path:node_id>", methods=["PATCH"])
    def api_update_node(node_id: str):
        """PATCH /api/nodes/<node_id> - Edit title, description, kind, task fields."""
        data = request.get_json(silent=True) or {}
        result = service.update_node(_state["graph"], node_id, **data)
        return jsonify(result), _status_code(result)

    @app.route("/api/nodes/<path:node_id>", methods=["DELETE"])
    def api_delete_node(node_id: str):
        """DELETE /api/nodes/<node_id> - Delete node (and its file)."""
        result = service.delete_nodes(_state["graph"], [node_id], _state["file_store"])
        return jsonify(result), _status_code(result, 404 if "error" in result else 500)

    @app.route("/api/connect", methods=["POST"])
    def api_connect():
        """POST /api/connect - {source_ids: [...], target_id}"""
        data = request.get_json(silent=True) or {}
        source_ids = data.get("source_ids") or (
            [data["source_id"]] if "source_id" in data else []
        )
        result = service.connect(_state["graph"], source_ids, data.get("target_id", ""))
        return jsonify(result), _status_code(result, 409)

    @app.route("/api/disconnect", methods=["POST"])
    def api_disconnect():
        """POST /api/disconnect - {source_id, target_id}"""
        data = request.get_json(silent=True) or {}
        result = service.disconnect(
            _state["graph"], data.get("source_id", ""), data.get("target_id", "")
        )
        return jsonify(result)

    @app.route("/api/undo", methods=["POST"])
    def api_undo():
        """POST /api/undo - Restore the state before the last mutation."""
        result = service.undo(_state["graph"])
        return jsonify(result), _status_code(result, 409)

    @app.route("/api/audit/fix", methods=["POST"])
    def api_audit_fix():
        """POST /api/audit/fix - Repair broken and asymmetric links."""
        return jsonify(service.audit(_state["graph"], fix=True))

    @app.route("/api/save", methods=["POST"])
    def api_save():
        """POST /api/save - Write every persisted node to disk."""
        if _state["file_store"] is None:
            return jsonify({"success": False, "error": "No storage configured"}), 409
        result = service.save(_state["graph"], _state["file_store"])
        return jsonify(result), _status_code(result, 500)

    return app
