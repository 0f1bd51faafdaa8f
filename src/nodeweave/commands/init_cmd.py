"""
nodeweave.commands.init_cmd - Create a .nodeweave.toml configuration file.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from nodeweave.config import write_default_config


def run(args: argparse.Namespace) -> int:
    """Run the init command."""
    directory = Path(getattr(args, "directory", None) or Path.cwd())
    try:
        path = write_default_config(directory)
    except FileExistsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Created {path}")
    return 0
