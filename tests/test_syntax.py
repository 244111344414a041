# tests/test_syntax.py
"""
Tests for the tree-sitter adapter: dialects, node kinds, source mapping
and expression comparison.
"""

import pytest

from foreach_lint.errors import SourceReadError, UnsupportedSourceError
from foreach_lint.syntax import (
    Dialect,
    NodeKind,
    kind_of,
    load_source,
    same_expression,
    token_texts,
    unwrap_parentheses,
)


def _find(source, node_type):
    stack = [source.root]
    found = []
    while stack:
        node = stack.pop()
        if node.type == node_type:
            found.append(node)
        stack.extend(reversed(node.named_children))
    return found


class TestDialect:

    @pytest.mark.parametrize("name,expected", [
        ("a.ts", Dialect.TYPESCRIPT),
        ("a.mts", Dialect.TYPESCRIPT),
        ("a.tsx", Dialect.TSX),
        ("a.js", Dialect.JAVASCRIPT),
        ("a.JSX", Dialect.JAVASCRIPT),
        ("dir/a.cjs", Dialect.JAVASCRIPT),
    ])
    def test_from_path(self, name, expected):
        assert Dialect.from_path(name) is expected

    def test_from_path_unknown_suffix(self):
        with pytest.raises(UnsupportedSourceError, match="'.py'"):
            Dialect.from_path("script.py")

    def test_from_name(self):
        assert Dialect.from_name("TSX") is Dialect.TSX
        with pytest.raises(UnsupportedSourceError):
            Dialect.from_name("coffeescript")


class TestNodeKinds:

    def test_kinds_in_loop(self, parse, first_loop):
        src = parse("for (let i = 0; i < a.length; i++) { a[i] = (b + -c); }")
        assert kind_of(first_loop(src)) is NodeKind.FOR_LOOP
        assert kind_of(_find(src, "subscript_expression")[0]) is NodeKind.ELEMENT_ACCESS
        assert kind_of(_find(src, "assignment_expression")[0]) is NodeKind.ASSIGNMENT
        assert kind_of(_find(src, "update_expression")[0]) is NodeKind.UNARY
        assert kind_of(_find(src, "unary_expression")[0]) is NodeKind.UNARY
        assert kind_of(_find(src, "parenthesized_expression")[0]) is NodeKind.PARENTHESIZED
        assert kind_of(_find(src, "binary_expression")[0]) is NodeKind.BINARY

    def test_member_names_are_identifiers(self, parse):
        src = parse("o.i; x = { k: 1, j };")
        assert kind_of(_find(src, "property_identifier")[0]) is NodeKind.IDENTIFIER
        assert kind_of(_find(src, "shorthand_property_identifier")[0]) is NodeKind.IDENTIFIER

    def test_type_names_are_identifiers(self, parse):
        src = parse("let v: T = x;")
        assert kind_of(_find(src, "type_identifier")[0]) is NodeKind.IDENTIFIER

    def test_other(self, parse):
        src = parse("f();")
        assert kind_of(_find(src, "call_expression")[0]) is NodeKind.OTHER
        assert kind_of(None) is NodeKind.OTHER


class TestSourceMapping:

    def test_location(self, parse):
        src = parse("a;\n\n  b;\n")
        assert src.location(0) == (1, 1)
        assert src.location(5) == (3, 2)

    def test_char_offset_non_ascii(self, parse):
        text = "'ü'; x;"
        src = parse(text)
        [ident] = [n for n in _find(src, "identifier") if src.node_text(n) == "x"]
        assert ident.start_byte == text.index("x") + 1
        assert src.char_offset(ident.start_byte) == text.index("x")

    def test_comments(self, parse):
        src = parse("// one\nx; /* two */\n")
        assert [src.node_text(c) for c in src.comments()] == ["// one", "/* two */"]

    def test_syntax_errors_flagged(self, parse):
        assert parse("for (let i = 0; i <").has_syntax_errors
        assert not parse("x;").has_syntax_errors

    def test_load_source(self, tmp_path):
        path = tmp_path / "m.js"
        path.write_text("for (var i = 0; i < a.length; i++) {}\n", encoding="utf-8")
        src = load_source(path)
        assert src.dialect is Dialect.JAVASCRIPT
        assert src.path == str(path)

    def test_load_source_missing(self, tmp_path):
        with pytest.raises(SourceReadError):
            load_source(tmp_path / "missing.ts")

    def test_load_source_not_utf8(self, tmp_path):
        path = tmp_path / "bad.ts"
        path.write_bytes(b"\xff\xfe\x00")
        with pytest.raises(SourceReadError, match="UTF-8"):
            load_source(path)


class TestExpressionComparison:

    def _exprs(self, src):
        return [n.child_by_field_name("arguments").named_children[0] for n in _find(src, "call_expression")]

    def test_unwrap_parentheses(self, parse):
        src = parse("f(((a.b)));")
        [arg] = self._exprs(src)
        assert src.node_text(unwrap_parentheses(arg)) == "a.b"

    def test_whitespace_and_comments_ignored(self, parse):
        src = parse("f(this.a [ 0 ]); f(this . a/* x */[0]);")
        a, b = self._exprs(src)
        assert same_expression(src, a, b)
        assert token_texts(src, a) == ("this", ".", "a", "[", "0", "]")

    def test_parentheses_ignored_on_both_sides(self, parse):
        src = parse("f((xs)); f(xs);")
        a, b = self._exprs(src)
        assert same_expression(src, a, b)

    def test_different_text(self, parse):
        src = parse("f(xs); f(ys); f(x.s);")
        a, b, c = self._exprs(src)
        assert not same_expression(src, a, b)
        assert not same_expression(src, a, c)
