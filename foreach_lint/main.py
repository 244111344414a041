#!/usr/bin/env python3
"""foreach_lint/main.py — command-line entry point.

Usage examples
--------------
    # Check a file, GCC-style output
    foreach-lint src/app.ts --format gcc

    # Check a whole tree, one JSON object per diagnostic
    python -m foreach_lint src/

    # Parse .js files with the TypeScript grammar
    foreach-lint --dialect typescript legacy/

    # List available checkers
    foreach-lint --list-checkers

Exit codes
----------
    0   No diagnostics.
    1   One or more diagnostics were emitted.
    2   Infrastructure failure (unreadable file, unknown suffix, etc.).
        Diagnostics from the files that could be checked are still printed.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from foreach_lint import __version__
from foreach_lint.checkers import CheckerRunner, SuppressionManager, default_registry
from foreach_lint.errors import ForEachLintError
from foreach_lint.syntax import SUPPORTED_SUFFIXES, Dialect

_log = logging.getLogger("foreach_lint")

EXIT_OK: int = 0
EXIT_FINDINGS: int = 1
EXIT_INFRA: int = 2

_SKIP_DIRS = frozenset({"node_modules", ".git"})


def _configure_logging(verbosity: int) -> None:
    """Set up the ``foreach_lint`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("foreach_lint")
    root.setLevel(level)
    if not any(isinstance(h, logging.StreamHandler) for h in root.handlers):
        root.addHandler(handler)


def iter_source_paths(raw_paths: Sequence[str]) -> Iterator[Path]:
    """Expand directories into the supported source files below them."""
    for raw in raw_paths:
        p = Path(raw).expanduser()
        if not p.is_dir():
            yield p
            continue
        for dirpath, dirnames, filenames in os.walk(p):
            dirnames[:] = sorted(d for d in dirnames if d not in _SKIP_DIRS)
            for name in sorted(filenames):
                if Path(name).suffix.lower() in SUPPORTED_SUFFIXES:
                    yield Path(dirpath) / name


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="foreach-lint",
        description="Flag counted for loops that only read the array they iterate.",
    )
    parser.add_argument("paths", nargs="*", help="Files or directories to check")
    parser.add_argument(
        "--format", choices=["json", "gcc", "summary"],
        default="gcc", help="Output format (default: gcc)",
    )
    parser.add_argument(
        "--dialect", default=None,
        help="Force a grammar: typescript, tsx or javascript (default: by suffix)",
    )
    parser.add_argument(
        "--suppress", nargs="*", default=None,
        help="Error IDs to suppress",
    )
    parser.add_argument(
        "--list-checkers", action="store_true",
        help="List available checkers and exit",
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0,
        help="Increase log verbosity (-v info, -vv debug)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _list_checkers() -> None:
    registry = default_registry()
    for name in registry.names:
        cls = registry.get_by_name(name)
        print(f"  {name:25s} {cls.description}")
        print(f"  {'':25s} IDs: {', '.join(sorted(cls.error_ids))}")
        if cls.metadata is not None:
            print(f"  {'':25s} {cls.metadata.rationale}")
        print()


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    if args.list_checkers:
        _list_checkers()
        return EXIT_OK
    if not args.paths:
        _log.error("no input paths given")
        return EXIT_INFRA

    suppressions = SuppressionManager()
    for eid in args.suppress or ():
        suppressions.add_global_suppression(eid)
    runner = CheckerRunner(suppressions=suppressions)

    try:
        dialect = Dialect.from_name(args.dialect) if args.dialect else None
    except ForEachLintError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA
    results = runner.run_files(iter_source_paths(args.paths), dialect=dialect)

    if args.format == "json":
        output = results.to_json_lines()
    elif args.format == "gcc":
        output = results.to_gcc_format()
    else:
        output = results.summary()
    if output:
        sys.stdout.write(output + "\n")

    if results.failures:
        return EXIT_INFRA
    return EXIT_FINDINGS if results.total_count else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
