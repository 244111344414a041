"""Pytest configuration and shared fixtures for foreach-lint tests."""

import pytest

from foreach_lint.analyzer import find_simple_loops
from foreach_lint.syntax import Dialect, parse_source


@pytest.fixture
def parse():
    """Parse a snippet; TypeScript unless a dialect is given."""
    def _parse(text, dialect=Dialect.TYPESCRIPT, path="<test>"):
        return parse_source(text, dialect=dialect, path=path)
    return _parse


@pytest.fixture
def flagged_lines(parse):
    """Lines of the loops flagged in a snippet."""
    def _flagged(text, dialect=Dialect.TYPESCRIPT):
        return [f.line for f in find_simple_loops(parse(text, dialect))]
    return _flagged


@pytest.fixture
def first_loop():
    """The first for_statement of a parsed file."""
    def _first(source):
        stack = [source.root]
        while stack:
            node = stack.pop()
            if node.type == "for_statement":
                return node
            stack.extend(reversed(node.named_children))
        raise AssertionError("no for loop in snippet")
    return _first
