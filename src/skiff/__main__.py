#!/usr/bin/env python3
"""
CLI for the skiff interpreter.

Usage:
    python -m skiff run FILE.sk [--recursion-limit N]
    python -m skiff check FILE.sk
    python -m skiff tokens FILE.sk
    python -m skiff ast FILE.sk

Every subcommand also accepts --max-errors N, --no-source and --json.

Exit codes:
    0   success
    2   bad command line
    65  lex or parse errors
    66  source file cannot be read
    70  uncaught runtime error

Environment:
    SKIFF_LOGLEVEL (or LOGLEVEL)   log level name, default WARNING
    SKIFF_RECURSION_LIMIT          default for --recursion-limit

Examples:
    # Run a program
    python -m skiff run examples/fib.sk

    # Report every syntax error without running
    python -m skiff check --max-errors 50 broken.sk
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

EXIT_OK = 0
EXIT_DATAERR = 65
EXIT_NOINPUT = 66
EXIT_SOFTWARE = 70

logger = logging.getLogger("skiff")


def _get_log_level() -> int:
    """
    Determine log level from SKIFF_LOGLEVEL or LOGLEVEL.
    Defaults to WARNING if neither is set.
    """
    loglevel_env = (os.getenv("SKIFF_LOGLEVEL") or os.getenv("LOGLEVEL", "")).upper()
    if loglevel_env:
        level = getattr(logging, loglevel_env, None)
        if isinstance(level, int):
            return level
    return logging.WARNING


def _default_recursion_limit() -> int:
    from .runtime.interpreter import DEFAULT_RECURSION_LIMIT

    env_value = os.getenv("SKIFF_RECURSION_LIMIT")
    if not env_value:
        return DEFAULT_RECURSION_LIMIT
    try:
        return int(env_value)
    except ValueError:
        logger.warning("ignoring SKIFF_RECURSION_LIMIT=%r (not an integer)", env_value)
        return DEFAULT_RECURSION_LIMIT


def _positive_int(text: str) -> int:
    value = int(text)
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {text}")
    return value


def _read_source(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        print(f"error: cannot read {path}: {e}", file=sys.stderr)
        return None


def _report(diagnostics, args) -> None:
    """Print diagnostics to stderr, or as a JSON document to stdout with --json."""
    from .errors import DiagnosticCollector

    collector = DiagnosticCollector(max_errors=len(diagnostics) + 1)
    for diag in diagnostics:
        collector.add(diag)
    if args.json:
        print(json.dumps(collector.to_json(), indent=2))
    else:
        print(collector.format_all(args.show_source), file=sys.stderr)


def _load_program(args):
    """Read, tokenize and parse FILE. Returns (source, statements) or an exit code."""
    from . import tokenize, parse, LexError, ParseFailed

    source = _read_source(Path(args.file))
    if source is None:
        return EXIT_NOINPUT

    try:
        tokens = tokenize(source, args.file)
        statements = parse(tokens, source, args.max_errors)
    except LexError as e:
        _report([e.diagnostic], args)
        return EXIT_DATAERR
    except ParseFailed as e:
        _report([err.diagnostic for err in e.errors], args)
        return EXIT_DATAERR
    return source, statements


def cmd_run(args) -> int:
    """Run a program."""
    from .runtime import Interpreter

    loaded = _load_program(args)
    if isinstance(loaded, int):
        return loaded
    source, statements = loaded

    interpreter = Interpreter(source=source, recursion_limit=args.recursion_limit)
    result = interpreter.interpret(statements)
    sys.stdout.flush()

    if not result.success:
        _report(result.diagnostics, args)
        return EXIT_SOFTWARE
    return EXIT_OK


def cmd_check(args) -> int:
    """Check a program for lex and parse errors without running it."""
    loaded = _load_program(args)
    if isinstance(loaded, int):
        return loaded
    _, statements = loaded
    print(f"OK: {Path(args.file).name} - {len(statements)} statement(s), no errors")
    return EXIT_OK


def cmd_tokens(args) -> int:
    """Print the token stream of a program."""
    from . import tokenize, LexError

    source = _read_source(Path(args.file))
    if source is None:
        return EXIT_NOINPUT

    try:
        tokens = tokenize(source, args.file)
    except LexError as e:
        _report([e.diagnostic], args)
        return EXIT_DATAERR

    for token in tokens:
        print(f"{token.line:>4}:{token.column:<4} {token}")
    return EXIT_OK


def cmd_ast(args) -> int:
    """Print the parsed program in its canonical form."""
    from .ast import render_program

    loaded = _load_program(args)
    if isinstance(loaded, int):
        return loaded
    _, statements = loaded
    if statements:
        print(render_program(statements))
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=_get_log_level(),
        format='%(message)s',
        stream=sys.stderr,
    )

    parser = argparse.ArgumentParser(
        prog='skiff',
        description='skiff scripting language interpreter',
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('file', help='skiff source file')
    common.add_argument('--max-errors', type=_positive_int, default=20, metavar='N',
                        help='Stop after N parse errors (default: 20)')
    common.add_argument('--no-source', dest='show_source', action='store_false',
                        help='Omit source excerpts from error reports')
    common.add_argument('--json', action='store_true',
                        help='Print diagnostics as JSON on stdout')

    subparsers = parser.add_subparsers(dest='action', required=True)

    run_parser = subparsers.add_parser('run', parents=[common], help='Run a program')
    run_parser.add_argument('--recursion-limit', type=_positive_int,
                            default=_default_recursion_limit(), metavar='N',
                            help='Host recursion limit while running (env: SKIFF_RECURSION_LIMIT)')

    subparsers.add_parser('check', parents=[common], help='Check a program for syntax errors')
    subparsers.add_parser('tokens', parents=[common], help='Print the token stream')
    subparsers.add_parser('ast', parents=[common], help='Print the parsed program')

    args = parser.parse_args(argv)

    if args.action == 'run':
        return cmd_run(args)
    elif args.action == 'check':
        return cmd_check(args)
    elif args.action == 'tokens':
        return cmd_tokens(args)
    elif args.action == 'ast':
        return cmd_ast(args)
    else:
        parser.print_help()
        return 2


if __name__ == '__main__':
    sys.exit(main())
