"""nodeweave.server - Flask REST API server.

Provides a thin REST wrapper over the nodeweave.service functions,
exposing one knowledge graph over HTTP for an editing UI.
"""

from nodeweave.server.app import create_app

__all__ = ["create_app"]
