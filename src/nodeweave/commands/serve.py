"""
nodeweave.commands.serve - Run the REST API server for an editing UI.
"""

from __future__ import annotations

import argparse
import sys

from nodeweave.commands.common import open_workspace
from nodeweave.config import get_config


def run(args: argparse.Namespace) -> int:
    """Run the serve command."""
    from nodeweave.server import create_app

    config = get_config(getattr(args, "config", None))
    graph, store = open_workspace(args)
    app = create_app(graph, store)

    host = args.host or config["server"]["host"]
    port = args.port or int(config["server"]["port"])
    print(f"Serving {graph.node_count()} nodes from {store.root} on http://{host}:{port}", file=sys.stderr)
    app.run(host=host, port=port, debug=False)
    return 0
