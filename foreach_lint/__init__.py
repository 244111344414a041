"""
foreach_lint — counted-loop to for-each lint for TypeScript / JavaScript
========================================================================

Finds C-style ``for`` loops whose index variable is only used to read
elements of the array being iterated, and suggests a for-each loop
instead.

Core modules
------------
syntax
    tree-sitter parsing, node classification, expression comparison.
analyzer
    The loop analysis: header classification, loop scopes, index usage.
checkers
    Diagnostic model, suppressions, checker registry and runner.
main
    Command-line entry point.

Quick start
-----------
>>> from foreach_lint import parse_source, find_simple_loops
>>> src = parse_source("for (let i = 0; i < xs.length; i++) { f(xs[i]); }")
>>> [f.line for f in find_simple_loops(src)]
[1]
"""

from __future__ import annotations

import logging
from typing import List

__version__ = "0.1.0"
__license__ = "MIT"

logging.getLogger(__name__).addHandler(logging.NullHandler())

from foreach_lint.errors import ForEachLintError, SourceReadError, UnsupportedSourceError  # noqa: E402
from foreach_lint.syntax import Dialect, SourceFile, load_source, parse_source  # noqa: E402
from foreach_lint.analyzer import FAILURE_MESSAGE, LoopFinding, find_simple_loops  # noqa: E402
from foreach_lint.checkers import (  # noqa: E402
    CheckerRunner,
    CheckerRunResults,
    Diagnostic,
    PreferForEachChecker,
)

__all__: List[str] = [
    "CheckerRunResults",
    "CheckerRunner",
    "Diagnostic",
    "Dialect",
    "FAILURE_MESSAGE",
    "ForEachLintError",
    "LoopFinding",
    "PreferForEachChecker",
    "SourceFile",
    "SourceReadError",
    "UnsupportedSourceError",
    "find_simple_loops",
    "load_source",
    "parse_source",
]
