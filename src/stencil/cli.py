"""Command-line interface for stencil templates.

Usage:
    stencil page.tmpl --data page.json      # Render with JSON data
    stencil "{{print 1 2}}" --text          # Render template text directly
    stencil page.tmpl --check               # Parse only, report errors
    stencil page.tmpl --tree                # Show the parsed nodes
    stencil --builtins                      # List builtin functions
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import stencil
from stencil import _node


def prettytree(nodes, indent=0):
    """Print parsed nodes, one per line, with their positions."""
    for node in nodes:
        _prettynode(node, indent)


def _prettynode(node, indent):
    prefix = "  " * indent
    pos = f" @{node.line}:{node.column}"
    match node:
        case _node.Text():
            print(f"{prefix}Text: {node.text!r}{pos}")
        case _node.Action():
            print(f"{prefix}Action:{pos}")
            _prettynode(node.pipeline, indent + 1)
        case _node.Pipeline():
            print(f"{prefix}Pipeline:{pos}")
            for cmd in node.commands:
                _prettynode(cmd, indent + 1)
        case _node.Command():
            print(f"{prefix}Command:{pos}")
            for op in node.operands:
                _prettynode(op, indent + 1)
        case _node.Paren():
            print(f"{prefix}Paren: {node.unparse()}{pos}")
            _prettynode(node.pipeline, indent + 1)
        case _:
            print(f"{prefix}{type(node).__name__}: {node.unparse()}{pos}")


def show_builtins():
    """Print the names and summaries of the builtin functions."""
    for entry in stencil.get_builtins():
        doc = (entry.func.__doc__ or "").strip().splitlines()
        summary = doc[0] if doc else ""
        print(f"{entry.name:10} {summary}")


def _load_data(args):
    """Build the template data from --data and --set."""
    data = {}
    if args.data:
        path = Path(args.data)
        if not path.exists():
            print(f"Error: Data file not found: {path}", file=sys.stderr)
            sys.exit(1)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            print(f"Error: Invalid JSON in {path}: {e}", file=sys.stderr)
            sys.exit(1)
    for item in args.set or []:
        key, sep, value = item.partition("=")
        if not sep:
            print(f"Error: --set expects key=value, got {item!r}", file=sys.stderr)
            sys.exit(1)
        if not isinstance(data, dict):
            print("Error: --set needs the data to be a JSON object", file=sys.stderr)
            sys.exit(1)
        data[key] = value
    return data


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="stencil",
        description="Render stencil text templates")
    parser.add_argument("source", nargs="?",
        help="Template file to render")
    parser.add_argument("--text", action="store_true",
        help="Treat source as template text instead of a file name")
    parser.add_argument("--data",
        help="JSON file providing the template data")
    parser.add_argument("--set", action="append", metavar="KEY=VALUE",
        help="Set a top level text field of the data (repeatable)")
    parser.add_argument("--check", action="store_true",
        help="Parse the template and report errors without rendering")
    parser.add_argument("--tree", action="store_true",
        help="Show the parsed template nodes")
    parser.add_argument("--builtins", action="store_true",
        help="List the builtin functions")
    parser.add_argument("--missingkey", choices=stencil.MISSINGKEY_MODES, default="default",
        help="How missing map keys render")
    parser.add_argument("--skip-func-check", action="store_true",
        help="Don't check function names while parsing")
    parser.add_argument("-v", "--verbose", action="store_true",
        help="Show debug logging")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.builtins:
        show_builtins()
        if not args.source:
            return

    if not args.source:
        parser.print_usage(sys.stderr)
        print("Error: a template source is required", file=sys.stderr)
        sys.exit(1)

    if args.text:
        name = "text"
        source = args.source
    else:
        path = Path(args.source)
        if not path.exists():
            print(f"Error: File not found: {path}", file=sys.stderr)
            sys.exit(1)
        name = path.name
        source = path.read_text(encoding="utf-8")

    tset = stencil.TemplateSet(name, missingkey=args.missingkey,
                               skip_func_check=args.skip_func_check)
    try:
        template = tset.parse(source)
    except stencil.ParseError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.tree:
        prettytree(template.nodes)
    if args.check:
        print(f"{name}: ok")
        return
    if args.tree:
        return

    data = _load_data(args)
    try:
        template.execute(sys.stdout, data)
    except stencil.ExecError as e:
        sys.stdout.flush()
        print(f"\nError: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
