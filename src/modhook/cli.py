#!/usr/bin/env python3
"""
modhook CLI

Command-line tools for inspecting module identities and tracing which
modules a hook would transform during an import.
"""

import argparse
import importlib
import json
import logging
import sys

from .hook import Hook
from .local_config import get_local_config
from .resolver import resolve_identity


def resolve_command(args):
    """Print the cache identity of each requested module name."""
    status = 0
    for name in args.names:
        try:
            identity = resolve_identity(name)
        except ImportError as e:
            print(json.dumps({"name": name, "error": str(e)}))
            status = 1
            continue
        print(json.dumps({"name": name, "filename": identity.filename, "core": identity.core}))
    return status


def trace_command(args):
    """Import a target under a pass-through hook and list what it saw."""
    seen = []

    def record(exports, name, basedir):
        seen.append(
            {
                "name": name,
                "basedir": basedir,
                "filename": getattr(exports, "__file__", None),
            }
        )
        return exports

    options = {"internals": False} if args.no_internals else None
    with Hook(args.modules or None, record, options):
        try:
            importlib.import_module(args.target)
        except ImportError as e:
            print(f"❌ Could not import {args.target}: {e}", file=sys.stderr)
            return 1

    for entry in seen:
        print(json.dumps(entry))
    return 0


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="modhook import hook tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--log-level", help="Logging level (default: from config, else WARNING)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Resolve command
    resolve_parser = subparsers.add_parser(
        "resolve", help="Show the cache identity a module name maps to"
    )
    resolve_parser.add_argument("names", nargs="+", help="Module names to resolve")
    resolve_parser.set_defaults(func=resolve_command)

    # Trace command
    trace_parser = subparsers.add_parser(
        "trace", help="Import a module and list the modules a hook transformed"
    )
    trace_parser.add_argument("target", help="Module to import")
    trace_parser.add_argument(
        "--module",
        "-m",
        dest="modules",
        action="append",
        help="Restrict the hook to this module name (repeatable; default: all modules)",
    )
    trace_parser.add_argument(
        "--no-internals", action="store_true", help="Skip submodules of hooked packages"
    )
    trace_parser.set_defaults(func=trace_command)

    # Parse arguments
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=(args.log_level or get_local_config().log_level).upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 1

    # Execute command
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
