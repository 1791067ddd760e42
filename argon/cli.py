# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

"""
Argon layout cell compiler.

Compiles a cell of an Argon source file, reports errors with their source
locations and optionally writes the resulting layout as GDS:

    argon compile inverter.ar inv -p w=200 --gds inv.gds
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .core import *
from .lang import parse, format_error
from .layout import GdsMap, write_gds
from .config import Config, load_config, find_config
from .version import version

logger = logging.getLogger(__name__)

def parse_param(text: str) -> tuple[str, object]:
    """Parses a name=value command line parameter."""
    name, sep, value = text.partition('=')
    name = name.strip()
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"expected name=value, got {text!r}")
    value = value.strip()
    if value in ('true', 'false'):
        return name, value == 'true'
    for conv in (int, float):
        try:
            return name, conv(value)
        except ValueError:
            pass
    if len(value) >= 2 and value[0] == value[-1] == '"':
        value = value[1:-1]
    return name, value

def format_diagnostic(err: ArgonError, source: str, filename: str) -> str:
    if isinstance(err, ArgonSyntaxError):
        # Message already contains the source window.
        return f"{filename}: {err.message}"
    if err.span is None or err.span.line < 1:
        return f"{filename}: {err.kind}: {err.message}"
    loc = f"{filename}:{err.span.line}:{err.span.column}"
    return f"{loc}: {err.kind}: {err.message}\n{format_error(source, err.span.line, err.span.column, window=0)}"

def get_config(args) -> Config:
    if args.config:
        return load_config(args.config)
    manifest = find_config(Path(args.file).parent)
    if manifest is None:
        return Config()
    logger.debug("Using configuration %s.", manifest)
    return load_config(manifest)

def cmd_compile(args) -> int:
    try:
        source = Path(args.file).read_text()
    except OSError as e:
        print(f"error: cannot read {args.file}: {e.strerror}", file=sys.stderr)
        return 1
    try:
        ast = parse(source)
        config = get_config(args)
    except ArgonError as e:
        print(format_diagnostic(e, source, args.file), file=sys.stderr)
        return 1

    params = dict(args.param)
    output = compile(ast, args.cell, params, force_solution=args.force,
        method=args.method, grid=config.grid)

    if args.json:
        print(json.dumps(output.to_dict(), indent=2))
    else:
        data = output.data
        if data is not None:
            for cell in data.cells.values():
                for w in cell.warnings:
                    print(format_diagnostic(w, source, args.file), file=sys.stderr)
        if output.is_valid():
            print(f"{args.cell}: ok ({len(data.cells)} cell(s) compiled)")
        else:
            for e in output.errors:
                print(format_diagnostic(e, source, args.file), file=sys.stderr)
            print(f"{args.cell}: {len(output.errors)} error(s)")

    if args.gds:
        if not output.is_valid():
            print(f"error: not writing {args.gds}, compile output is not valid.", file=sys.stderr)
            return 1
        try:
            gds_map = GdsMap.from_lyp(args.lyp) if args.lyp else config.gds_map()
            with open(args.gds, 'wb') as f:
                write_gds(output, f, gds_map, unit=config.unit, db_unit=config.db_unit)
        except ArgonError as e:
            print(f"error: {e}", file=sys.stderr)
            return 1
        except OSError as e:
            print(f"error: cannot write {args.gds}: {e.strerror}", file=sys.stderr)
            return 1
        logger.info("Wrote %s.", args.gds)

    return 0 if output.is_valid() else 1

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='argon',
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument('-v', '--verbose', action='store_true', help="Enable debug logging.")
    parser.add_argument('-V', '--version', action='version', version=f'%(prog)s {version}')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('compile', help="Compile a cell.")
    p.add_argument('file', help="Argon source file.")
    p.add_argument('cell', help="Name of the cell to compile.")
    p.add_argument('-p', '--param', action='append', type=parse_param, default=[], metavar='NAME=VALUE',
        help="Cell parameter (repeatable).")
    p.add_argument('--force', action='store_true', help="Pin unsolved variables to 0.")
    p.add_argument('--method', choices=Solver.methods, default='svd', help="Factorization used by the solver (default svd).")
    p.add_argument('--json', action='store_true', help="Print the compile output as JSON.")
    p.add_argument('--gds', metavar='OUT', help="Write the layout as GDS to OUT.")
    group = p.add_mutually_exclusive_group()
    group.add_argument('--config', help="Path of argon.toml (default: searched from the source file directory upwards).")
    group.add_argument('--lyp', help="KLayout layer properties file used for GDS export.")
    p.set_defaults(func=cmd_compile)
    return parser

def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)

if __name__ == "__main__":
    raise SystemExit(main())
