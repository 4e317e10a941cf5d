"""Ocelot CLI — ocelot build / ocelot develop / ocelot nodes.

Entry point for the ``ocelot`` command-line interface.
"""

from __future__ import annotations

import argparse
import json
import sys


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the ocelot CLI."""
    parser = argparse.ArgumentParser(
        prog="ocelot",
        description="Persisted content graph and plugin runtime for static sites.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # ocelot build
    build_parser = subparsers.add_parser(
        "build",
        help="Source content, create pages, and export page data",
    )
    build_parser.add_argument("root", nargs="?", default=".", help="Site root directory")
    build_parser.add_argument("--output", default=None, help="Output directory")

    # ocelot develop
    develop_parser = subparsers.add_parser(
        "develop",
        help="Build, then rebuild incrementally on content changes",
    )
    develop_parser.add_argument("root", nargs="?", default=".", help="Site root directory")

    # ocelot nodes
    nodes_parser = subparsers.add_parser(
        "nodes",
        help="List nodes cached in the store snapshot",
    )
    nodes_parser.add_argument("root", nargs="?", default=".", help="Site root directory")
    nodes_parser.add_argument("--type", dest="node_type", default=None, help="Filter by node type")
    nodes_parser.add_argument("--json", action="store_true", help="Print full nodes as JSON")

    return parser


def _get_version() -> str:
    """Get the package version."""
    from ocelot import __version__

    return __version__


def _print_nodes(found: list[dict], *, as_json: bool) -> None:
    if as_json:
        from ocelot.store.persistence import json_default

        print(json.dumps(found, indent=2, default=json_default))
        return
    for node in found:
        internal = node["internal"]
        print(f"{node['id']}\t{internal.get('type')}\t{internal.get('owner')}")
    print(f"{len(found)} node{'s' if len(found) != 1 else ''}", file=sys.stderr)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    from ocelot._errors import OcelotError
    from ocelot.app import build, develop, nodes

    try:
        if args.command == "build":
            build(root=args.root, output=args.output)
        elif args.command == "develop":
            develop(root=args.root)
        elif args.command == "nodes":
            _print_nodes(nodes(root=args.root, node_type=args.node_type), as_json=args.json)
    except OcelotError as exc:
        print(f"  Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
