#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
foreach_lint/analyzer.py
════════════════════════

Detection of counted ``for`` loops that can be rewritten as for-each
loops.

A loop qualifies when its header has the canonical shape

    for (let i = 0; i < <expr>.length; i++) { ... }

and, inside the body, ``i`` only ever appears as ``<expr>[i]`` in a
read position.

Architecture
────────────

  ┌──────────────────────────────────────────────────────────────┐
  │                LoopConvertibilityAnalyzer                    │
  │     one instance per file, single depth-first walk           │
  │                                                              │
  │  ┌────────────────┐  ┌──────────────┐  ┌──────────────────┐  │
  │  │ classify_loop_ │  │  ScopeStack  │  │ check_reference  │  │
  │  │ header         │─▶│  push / pop  │◀─│ (usage rules)    │  │
  │  │ (header shape) │  │  lookup      │  │                  │  │
  │  └────────────────┘  └──────────────┘  └──────────────────┘  │
  └──────────────────────────────────────────────────────────────┘

Verdicts are read when a loop's body has been fully visited; a single
disqualifying reference anywhere in the body is enough to drop the
loop, and it never affects sibling or enclosing loops.

License: MIT
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Union

from tree_sitter import Node

from foreach_lint.syntax import (
    NodeKind,
    SourceFile,
    first_named,
    kind_of,
    operator_of,
    same_expression,
    unwrap_parentheses,
)

_log = logging.getLogger(__name__)

FAILURE_MESSAGE = (
    "Expected a for-each loop instead of a counted for loop with this simple iteration."
)


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — DATA MODEL
# ═════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class HeaderInfo:
    """Index variable and iterated expression of a canonical loop header."""
    index_name: str
    array_expr: Node


@dataclass
class LoopCandidate:
    """
    Per-loop state while its body is being visited.

    ``qualifies`` starts True and can only ever go to False.
    """
    index_name: str
    array_expr: Node
    qualifies: bool = True

    def disqualify(self) -> None:
        self.qualifies = False


@dataclass(frozen=True)
class LoopFinding:
    """
    A loop that can become a for-each loop.

    ``start``/``end`` are character offsets spanning the loop header,
    from the ``for`` keyword up to where the body begins.
    """
    start: int
    end: int
    line: int
    column: int
    message: str = FAILURE_MESSAGE


class ScopeStack:
    """
    Open loop candidates, outermost first.

    Lookup scans from the innermost candidate outwards, so an inner
    loop's counter shadows an outer counter with the same name.
    """

    def __init__(self) -> None:
        self._items: List[LoopCandidate] = []

    def push(self, candidate: LoopCandidate) -> None:
        self._items.append(candidate)

    def pop(self) -> LoopCandidate:
        return self._items.pop()

    def lookup(self, name: str) -> Optional[LoopCandidate]:
        for candidate in reversed(self._items):
            if candidate.index_name == name:
                return candidate
        return None

    def __len__(self) -> int:
        return len(self._items)


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — HEADER CLASSIFIER
# ═════════════════════════════════════════════════════════════════════════

def _is_identifier_named(source: SourceFile, node: Optional[Node], name: str) -> bool:
    return node is not None and node.type == "identifier" and source.node_text(node) == name


def _is_number(source: SourceFile, node: Optional[Node], value: str) -> bool:
    return node is not None and node.type == "number" and source.node_text(node) == value


def _condition_of(loop: Node) -> Optional[Node]:
    # Older grammars wrap the condition in an expression_statement.
    node = first_named(loop.children_by_field_name("condition"))
    if node is not None and node.type == "expression_statement":
        node = first_named(node.children)
    if node is None or node.type == "empty_statement":
        return None
    return node


def _initializer_of(loop: Node) -> Optional[Node]:
    node = first_named(loop.children_by_field_name("initializer"))
    if node is None or node.type == "empty_statement":
        return None
    return node


def is_incremented(source: SourceFile, node: Node, index_name: str) -> bool:
    """True for ``i++``, ``++i``, ``i += 1``, ``i = i + 1`` and ``i = 1 + i``."""
    kind = kind_of(node)

    if kind is NodeKind.UNARY:
        if node.type != "update_expression" or operator_of(node) != "++":
            return False
        return _is_identifier_named(source, node.child_by_field_name("argument"), index_name)

    if kind is NodeKind.ASSIGNMENT:
        if not _is_identifier_named(source, node.child_by_field_name("left"), index_name):
            return False
        rhs = node.child_by_field_name("right")
        op = operator_of(node)
        if op == "+=":
            return _is_number(source, rhs, "1")
        if op == "=":
            if kind_of(rhs) is not NodeKind.BINARY or operator_of(rhs) != "+":
                return False
            left = rhs.child_by_field_name("left")
            right = rhs.child_by_field_name("right")
            return (
                _is_identifier_named(source, left, index_name) and _is_number(source, right, "1")
                or _is_number(source, left, "1") and _is_identifier_named(source, right, index_name)
            )
        return False

    return False


def classify_loop_header(source: SourceFile, loop: Node) -> Optional[HeaderInfo]:
    """
    Return the index variable and iterated expression of *loop*, or None
    when the header is not ``let i = 0; i < expr.length; <increment>``.
    """
    initializer = _initializer_of(loop)
    condition = _condition_of(loop)
    increment = loop.child_by_field_name("increment")
    if initializer is None or condition is None or increment is None:
        return None

    # `let i = 0` / `var i = 0`, exactly one declarator
    if initializer.type not in ("lexical_declaration", "variable_declaration"):
        return None
    declarators = [c for c in initializer.named_children if c.type == "variable_declarator"]
    if len(declarators) != 1:
        return None
    index_var = declarators[0].child_by_field_name("name")
    if index_var is None or index_var.type != "identifier":
        return None
    if not _is_number(source, declarators[0].child_by_field_name("value"), "0"):
        return None
    index_name = source.node_text(index_var)

    if not is_incremented(source, increment, index_name):
        return None

    # `i < expr.length`
    if kind_of(condition) is not NodeKind.BINARY or operator_of(condition) != "<":
        return None
    if not _is_identifier_named(source, condition.child_by_field_name("left"), index_name):
        return None
    bound = condition.child_by_field_name("right")
    if bound is None or bound.type != "member_expression":
        return None
    prop = bound.child_by_field_name("property")
    array_expr = bound.child_by_field_name("object")
    if prop is None or array_expr is None or source.node_text(prop) != "length":
        return None

    return HeaderInfo(index_name=index_name, array_expr=array_expr)


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — USAGE VALIDATOR
# ═════════════════════════════════════════════════════════════════════════

def _is_write_target(access: Node) -> bool:
    parent = access.parent
    if kind_of(parent) is NodeKind.ASSIGNMENT:
        return parent.child_by_field_name("left") == access
    # a[i]++ / --a[i]
    return parent is not None and parent.type == "update_expression"


def check_reference(source: SourceFile, identifier: Node, candidate: LoopCandidate) -> None:
    """Disqualify *candidate* unless *identifier* is a plain read of ``array[i]``."""
    access = identifier.parent
    if kind_of(access) is not NodeKind.ELEMENT_ACCESS:
        candidate.disqualify()
        return

    obj = access.child_by_field_name("object")
    if obj is None or not same_expression(source, candidate.array_expr, obj):
        # indexes some other collection
        candidate.disqualify()
    elif _is_write_target(access):
        candidate.disqualify()


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 — TRAVERSAL
# ═════════════════════════════════════════════════════════════════════════

class _LoopEnter(NamedTuple):
    loop: Node
    candidate: LoopCandidate


class _LoopExit(NamedTuple):
    loop: Node
    candidate: LoopCandidate


_WorkItem = Union[Node, _LoopEnter, _LoopExit]


class LoopConvertibilityAnalyzer:
    """
    Walks one source file and collects loops that qualify.

    The walk uses an explicit work list instead of recursion, so deeply
    nested expressions cannot exhaust the interpreter stack.  A loop's
    verdict is read from a ``_LoopExit`` marker queued underneath its
    body, which is reached only after every node of the body.

    The iterated expression of a candidate (``rows[i]`` in
    ``j < rows[i].length``) is visited before the candidate's scope
    opens, so it counts as a use of any enclosing counter.  The rest of
    the header only mentions the candidate's own counter and is skipped.
    """

    def __init__(self, source: SourceFile) -> None:
        self.source = source
        self.scopes = ScopeStack()
        self.findings: List[LoopFinding] = []

    def run(self) -> List[LoopFinding]:
        work: List[_WorkItem] = list(reversed(self.source.root.named_children))
        while work:
            item = work.pop()
            if isinstance(item, _LoopEnter):
                self.scopes.push(item.candidate)
                continue
            if isinstance(item, _LoopExit):
                self._finish_loop(item)
                continue

            kind = kind_of(item)
            if kind is NodeKind.FOR_LOOP:
                work.extend(self._enter_loop(item))
            elif kind is NodeKind.IDENTIFIER:
                self._visit_identifier(item)
            else:
                work.extend(reversed(item.named_children))

        self.findings.sort(key=lambda f: f.start)
        return self.findings

    def _enter_loop(self, loop: Node) -> List[_WorkItem]:
        header = classify_loop_header(self.source, loop)
        if header is None:
            # header and body are still searched for nested loops
            return list(reversed(loop.named_children))

        _log.debug(
            "%s:%d: candidate loop over %r with index %r",
            self.source.path, loop.start_point[0] + 1,
            self.source.node_text(header.array_expr), header.index_name,
        )
        candidate = LoopCandidate(
            index_name=header.index_name,
            array_expr=unwrap_parentheses(header.array_expr),
        )
        body = loop.child_by_field_name("body")
        # popped in reverse: array expression, open scope, body, verdict
        work: List[_WorkItem] = [_LoopExit(loop, candidate)]
        if body is not None:
            work.append(body)
        work.append(_LoopEnter(loop, candidate))
        work.append(header.array_expr)
        return work

    def _visit_identifier(self, node: Node) -> None:
        candidate = self.scopes.lookup(self.source.node_text(node))
        if candidate is not None:
            check_reference(self.source, node, candidate)

    def _finish_loop(self, marker: _LoopExit) -> None:
        popped = self.scopes.pop()
        if popped is not marker.candidate:
            raise RuntimeError("loop scopes popped out of order")
        if not popped.qualifies:
            _log.debug(
                "%s:%d: index %r used for more than reading, skipped",
                self.source.path, marker.loop.start_point[0] + 1, popped.index_name,
            )
            return
        self.findings.append(self._finding_for(marker.loop))

    def _finding_for(self, loop: Node) -> LoopFinding:
        # Header span ends right after ")", before any comment preceding the body.
        body = loop.child_by_field_name("body")
        end_byte = body.start_byte if body is not None else loop.end_byte
        for child in loop.children:
            if body is not None and child == body:
                break
            if child.type == ")":
                end_byte = child.end_byte
        start = self.source.char_offset(loop.start_byte)
        line, column = self.source.location(start)
        return LoopFinding(
            start=start,
            end=self.source.char_offset(end_byte),
            line=line,
            column=column,
        )


def find_simple_loops(source: SourceFile) -> List[LoopFinding]:
    """Analyze one parsed file; findings are ordered by start offset."""
    return LoopConvertibilityAnalyzer(source).run()


__all__ = [
    "FAILURE_MESSAGE",
    "HeaderInfo",
    "LoopCandidate",
    "LoopConvertibilityAnalyzer",
    "LoopFinding",
    "ScopeStack",
    "check_reference",
    "classify_loop_header",
    "find_simple_loops",
    "is_incremented",
]
