"""
nodeweave.commands - CLI command implementations
"""

__all__ = [
    "audit",
    "common",
    "init_cmd",
    "links",
    "nodes",
    "serve",
]
