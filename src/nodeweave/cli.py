"""
nodeweave.cli - Command-line interface.

Main entry point for the nodeweave CLI tool.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from nodeweave import __version__
from nodeweave.commands import audit, init_cmd, links, nodes, serve

KINDS = ["task", "note", "project", "goal", "area", "resource"]


def _add_json_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-j",
        "--json",
        action="store_true",
        help="Output JSON",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="nodeweave",
        description="Linked tasks, notes, projects and goals stored as plain text files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  nodeweave init                           # Create .nodeweave.toml here
  nodeweave list --class A                 # Tasks and notes
  nodeweave new task "Write report" --link projects/q3.md
  nodeweave connect tasks/a.md notes/b.md --to projects/q3.md
  nodeweave audit                          # Find broken and one-sided links
  nodeweave audit --fix                    # Repair them
  nodeweave serve                          # REST API for an editing UI

For detailed command help: nodeweave <command> --help
        """,
    )

    # Global options
    parser.add_argument(
        "--version",
        action="version",
        version=f"nodeweave {__version__}",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to configuration file",
        metavar="PATH",
    )
    parser.add_argument(
        "--root",
        type=Path,
        help="Override storage root directory",
        metavar="PATH",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress non-error output",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init command
    init_parser = subparsers.add_parser("init", help="Create .nodeweave.toml configuration")
    init_parser.add_argument(
        "directory",
        nargs="?",
        type=Path,
        help="Directory to initialise (default: current directory)",
    )

    # list command
    list_parser = subparsers.add_parser("list", help="List nodes")
    list_parser.add_argument(
        "--class",
        dest="node_class",
        choices=["A", "B"],
        help="A = tasks and notes, B = projects, goals, areas, resources",
    )
    list_parser.add_argument("--kind", choices=KINDS, help="Only this kind")
    _add_json_flag(list_parser)

    # search command
    search_parser = subparsers.add_parser("search", help="Search node titles")
    search_parser.add_argument("term", help="Case-insensitive title fragment")
    search_parser.add_argument("--class", dest="node_class", choices=["A", "B"])
    search_parser.add_argument("--kind", choices=KINDS)
    _add_json_flag(search_parser)

    # show command
    show_parser = subparsers.add_parser("show", help="Show one node and its links")
    show_parser.add_argument("node_id", help="Node id (relative file path)")
    _add_json_flag(show_parser)

    # new command
    new_parser = subparsers.add_parser("new", help="Create a node")
    new_parser.add_argument("kind", choices=KINDS)
    new_parser.add_argument("title")
    new_parser.add_argument("--description", "-d", help="Body text")
    new_parser.add_argument("--due", help="Due date (YYYY-MM-DD), tasks only")
    new_parser.add_argument("--link", metavar="ID", help="Link the new node to ID")
    _add_json_flag(new_parser)

    # edit command
    edit_parser = subparsers.add_parser("edit", help="Edit a node's fields")
    edit_parser.add_argument("node_id")
    edit_parser.add_argument("--title")
    edit_parser.add_argument("--description", "-d")
    edit_parser.add_argument("--kind", choices=KINDS)
    edit_parser.add_argument("--due", help="Due date (YYYY-MM-DD); empty string clears it")
    complete_group = edit_parser.add_mutually_exclusive_group()
    complete_group.add_argument(
        "--complete", dest="completed", action="store_const", const=True, default=None
    )
    complete_group.add_argument("--incomplete", dest="completed", action="store_const", const=False)
    _add_json_flag(edit_parser)

    # delete command
    delete_parser = subparsers.add_parser(
        "delete",
        help="Delete nodes and their files",
        description="Delete nodes, unlink them from their neighbors and remove their files.",
    )
    delete_parser.add_argument("node_ids", nargs="+", metavar="ID")
    _add_json_flag(delete_parser)

    # connect command
    connect_parser = subparsers.add_parser("connect", help="Link nodes to a target")
    connect_parser.add_argument("sources", nargs="+", metavar="SOURCE")
    connect_parser.add_argument("--to", dest="target", required=True, metavar="TARGET")
    _add_json_flag(connect_parser)

    # disconnect command
    disconnect_parser = subparsers.add_parser("disconnect", help="Unlink two nodes")
    disconnect_parser.add_argument("source")
    disconnect_parser.add_argument("target")
    _add_json_flag(disconnect_parser)

    # audit command
    audit_parser = subparsers.add_parser(
        "audit",
        help="Find broken and one-sided links",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit codes:
  0  All links consistent (or repaired with --fix)
  1  Problems found
""",
    )
    audit_parser.add_argument("--fix", action="store_true", help="Repair and save")
    _add_json_flag(audit_parser)

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run the REST API server")
    serve_parser.add_argument("--host", help="Bind address (default from config)")
    serve_parser.add_argument("--port", type=int, help="Port (default from config)")

    return parser


def _configure_logging(args: argparse.Namespace) -> None:
    level = logging.WARNING
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = create_parser()

    # Enable shell tab-completion if argcomplete is installed
    # Install with: pip install nodeweave[completion]
    try:
        import argcomplete

        argcomplete.autocomplete(parser)
    except ImportError:
        pass

    args = parser.parse_args(argv)
    _configure_logging(args)

    if not args.command:
        parser.print_help()
        return 0

    try:
        if args.command == "init":
            return init_cmd.run(args)
        elif args.command in ("list", "search"):
            return nodes.run_list(args)
        elif args.command == "show":
            return nodes.run_show(args)
        elif args.command == "new":
            return nodes.run_new(args)
        elif args.command == "edit":
            return nodes.run_edit(args)
        elif args.command == "delete":
            return nodes.run_delete(args)
        elif args.command == "connect":
            return links.run_connect(args)
        elif args.command == "disconnect":
            return links.run_disconnect(args)
        elif args.command == "audit":
            return audit.run(args)
        elif args.command == "serve":
            return serve.run(args)
        else:
            parser.print_help()
            return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled.", file=sys.stderr)
        return 130
    except Exception as e:
        if args.verbose:
            raise
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
