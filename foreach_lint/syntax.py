#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
foreach_lint/syntax.py
══════════════════════

Syntax-tree access for TypeScript / JavaScript sources, built on
tree-sitter.

The loop analyzer only needs a handful of things from a tree:

    ┌─────────────────────────────────────────────────────────────────┐
    │  Parsing                                                        │
    │    • one cached tree-sitter Parser per dialect                  │
    │    • dialect selection from the file suffix                     │
    ├─────────────────────────────────────────────────────────────────┤
    │  Node classification                                            │
    │    • closed NodeKind tag set, everything else is OTHER          │
    ├─────────────────────────────────────────────────────────────────┤
    │  Source mapping                                                 │
    │    • node text, byte → character offsets, line/column           │
    ├─────────────────────────────────────────────────────────────────┤
    │  Expression comparison                                          │
    │    • parenthesis unwrapping, token-sequence equality            │
    └─────────────────────────────────────────────────────────────────┘

All functions are read-only queries; the tree is never edited.

Usage Example
─────────────
    from foreach_lint.syntax import Dialect, parse_source, kind_of, NodeKind

    source = parse_source("for (let i = 0; i < a.length; i++) {}")
    for node in source.root.children:
        if kind_of(node) is NodeKind.FOR_LOOP:
            print(source.node_text(node))

License: MIT
"""

from __future__ import annotations

import bisect
import functools
import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Dict, FrozenSet, Iterator, List, Optional, Tuple, Union

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree

from foreach_lint.errors import SourceReadError, UnsupportedSourceError

_log = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
#  DIALECTS
# ═══════════════════════════════════════════════════════════════════════════

class Dialect(Enum):
    """Source languages with a bundled tree-sitter grammar."""
    TYPESCRIPT = "typescript"
    TSX = "tsx"
    JAVASCRIPT = "javascript"

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "Dialect":
        suffix = Path(path).suffix.lower()
        try:
            return _SUFFIXES[suffix]
        except KeyError:
            raise UnsupportedSourceError(
                f"no grammar for suffix {suffix or '(none)'!r}", path
            ) from None

    @classmethod
    def from_name(cls, name: str) -> "Dialect":
        try:
            return cls(name.lower())
        except ValueError:
            choices = ", ".join(d.value for d in cls)
            raise UnsupportedSourceError(
                f"unknown dialect {name!r} (expected one of: {choices})"
            ) from None


_SUFFIXES: Dict[str, Dialect] = {
    ".ts": Dialect.TYPESCRIPT,
    ".mts": Dialect.TYPESCRIPT,
    ".cts": Dialect.TYPESCRIPT,
    ".tsx": Dialect.TSX,
    ".js": Dialect.JAVASCRIPT,
    ".mjs": Dialect.JAVASCRIPT,
    ".cjs": Dialect.JAVASCRIPT,
    ".jsx": Dialect.JAVASCRIPT,
}

SUPPORTED_SUFFIXES: FrozenSet[str] = frozenset(_SUFFIXES)


@functools.lru_cache(maxsize=None)
def _parser_for(dialect: Dialect) -> Parser:
    if dialect is Dialect.TYPESCRIPT:
        language = Language(tree_sitter_typescript.language_typescript())
    elif dialect is Dialect.TSX:
        language = Language(tree_sitter_typescript.language_tsx())
    else:
        language = Language(tree_sitter_javascript.language())
    _log.debug("built tree-sitter parser for %s", dialect.value)
    return Parser(language)


# ═══════════════════════════════════════════════════════════════════════════
#  NODE KINDS
# ═══════════════════════════════════════════════════════════════════════════

class NodeKind(Enum):
    """The node tags the loop analyzer dispatches on."""
    FOR_LOOP = auto()
    IDENTIFIER = auto()
    ELEMENT_ACCESS = auto()
    BINARY = auto()
    UNARY = auto()
    ASSIGNMENT = auto()
    PARENTHESIZED = auto()
    OTHER = auto()


# Member names, object keys and type names are included: `obj.i`,
# `{ i: 0 }`, `{ i }` and `let v: i` all name the index variable without
# being an element access.
_KIND_BY_TYPE: Dict[str, NodeKind] = {
    "for_statement": NodeKind.FOR_LOOP,
    "identifier": NodeKind.IDENTIFIER,
    "property_identifier": NodeKind.IDENTIFIER,
    "shorthand_property_identifier": NodeKind.IDENTIFIER,
    "shorthand_property_identifier_pattern": NodeKind.IDENTIFIER,
    "type_identifier": NodeKind.IDENTIFIER,
    "subscript_expression": NodeKind.ELEMENT_ACCESS,
    "binary_expression": NodeKind.BINARY,
    "update_expression": NodeKind.UNARY,
    "unary_expression": NodeKind.UNARY,
    "assignment_expression": NodeKind.ASSIGNMENT,
    "augmented_assignment_expression": NodeKind.ASSIGNMENT,
    "parenthesized_expression": NodeKind.PARENTHESIZED,
}


def kind_of(node: Optional[Node]) -> NodeKind:
    if node is None:
        return NodeKind.OTHER
    return _KIND_BY_TYPE.get(node.type, NodeKind.OTHER)


def operator_of(node: Node) -> str:
    """Return the operator token of a binary/unary/assignment node."""
    op = node.child_by_field_name("operator")
    if op is not None:
        return op.type
    # plain assignment_expression has no operator field
    for child in node.children:
        if not child.is_named:
            return child.type
    return ""


def unwrap_parentheses(node: Node) -> Node:
    """Strip any number of grouping parentheses around *node*."""
    while node.type == "parenthesized_expression":
        inner = [c for c in node.named_children if c.type != "comment"]
        if len(inner) != 1:
            break
        node = inner[0]
    return node


def first_named(nodes: List[Node]) -> Optional[Node]:
    for node in nodes:
        if node.is_named and node.type != "comment":
            return node
    return None


# ═══════════════════════════════════════════════════════════════════════════
#  SOURCE FILE
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class SourceFile:
    """
    A parsed source file.

    Attributes
    ----------
    path    : display path ("<string>" for in-memory sources)
    text    : the decoded source
    dialect : grammar used for parsing
    tree    : tree-sitter Tree
    """
    path: str
    text: str
    dialect: Dialect
    tree: Tree
    data: bytes = field(repr=False, default=b"")
    _line_starts: List[int] = field(init=False, repr=False, default_factory=list)

    def __post_init__(self) -> None:
        if not self.data:
            self.data = self.text.encode("utf-8")
        starts = [0]
        for idx, ch in enumerate(self.text):
            if ch == "\n":
                starts.append(idx + 1)
        self._line_starts = starts

    @property
    def root(self) -> Node:
        return self.tree.root_node

    @property
    def has_syntax_errors(self) -> bool:
        return self.root.has_error

    def node_text(self, node: Node) -> str:
        return self.data[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    def char_offset(self, byte_offset: int) -> int:
        """Convert a UTF-8 byte offset into a character offset."""
        if len(self.data) == len(self.text):
            return byte_offset
        return len(self.data[:byte_offset].decode("utf-8", errors="replace"))

    def location(self, char_offset: int) -> Tuple[int, int]:
        """1-based (line, column) of a character offset."""
        line_idx = bisect.bisect_right(self._line_starts, char_offset) - 1
        return line_idx + 1, char_offset - self._line_starts[line_idx] + 1

    def comments(self) -> Iterator[Node]:
        stack = [self.root]
        while stack:
            node = stack.pop()
            if node.type == "comment":
                yield node
                continue
            stack.extend(reversed(node.children))


def parse_source(
    text: str,
    dialect: Dialect = Dialect.TYPESCRIPT,
    path: str = "<string>",
) -> SourceFile:
    """Parse *text* with the grammar for *dialect*."""
    data = text.encode("utf-8")
    tree = _parser_for(dialect).parse(data)
    source = SourceFile(path=path, text=text, dialect=dialect, tree=tree, data=data)
    if source.has_syntax_errors:
        _log.warning("%s: syntax errors recovered by the parser; results may be partial", path)
    return source


def load_source(path: Union[str, Path], dialect: Optional[Dialect] = None) -> SourceFile:
    """Read and parse a file; the dialect defaults to the suffix mapping."""
    p = Path(path)
    if dialect is None:
        dialect = Dialect.from_path(p)
    try:
        text = p.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise SourceReadError(f"not valid UTF-8: {exc}", p) from exc
    except OSError as exc:
        raise SourceReadError(exc.strerror or str(exc), p) from exc
    return parse_source(text, dialect=dialect, path=str(p))


# ═══════════════════════════════════════════════════════════════════════════
#  EXPRESSION COMPARISON
# ═══════════════════════════════════════════════════════════════════════════

def token_texts(source: SourceFile, node: Node) -> Tuple[str, ...]:
    """Leaf token texts of *node* in source order, comments skipped."""
    tokens: List[str] = []
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type == "comment":
            continue
        if current.child_count == 0:
            text = source.node_text(current)
            if text:
                tokens.append(text)
            continue
        stack.extend(reversed(current.children))
    return tuple(tokens)


def same_expression(source: SourceFile, a: Node, b: Node) -> bool:
    """
    Textual equality of two expressions.

    Grouping parentheses around either side are removed first; the
    remaining token sequences must match exactly, so whitespace and
    comments between tokens do not matter.
    """
    return token_texts(source, unwrap_parentheses(a)) == token_texts(source, unwrap_parentheses(b))


__all__ = [
    "Dialect",
    "NodeKind",
    "SourceFile",
    "SUPPORTED_SUFFIXES",
    "first_named",
    "kind_of",
    "load_source",
    "operator_of",
    "parse_source",
    "same_expression",
    "token_texts",
    "unwrap_parentheses",
]
