# tests/test_formatting.py
"""Tests for argument bundles and canonical source layout."""

import pytest

from juicegen.errors import FormatError
from juicegen.formatting import format_code, format_params
from juicegen.goast import GoType, Param, ValueGroup
from tests.conftest import EXPECTED_V1, named


def group(*pairs):
    return ValueGroup(Param(n, t if isinstance(t, GoType) else named(t)) for n, t in pairs)


CTX = ("ctx", "context.Context")


class TestFormatParams:

    def test_context_only(self):
        assert format_params(group()) == "nil"
        assert format_params(group(CTX)) == "nil"

    def test_builtin_payload_is_wrapped(self):
        assert format_params(group(CTX, ("id", "int64"))) == 'juice.H{"id": id}'

    def test_slice_payload_is_wrapped(self):
        ids = GoType.slice(named("int64"))
        assert format_params(group(CTX, ("ids", ids))) == 'juice.H{"ids": ids}'

    def test_variadic_payload_is_wrapped(self):
        ids = GoType.ellipsis(named("int64"))
        assert format_params(group(CTX, ("ids", ids))) == 'juice.H{"ids": ids}'

    @pytest.mark.parametrize("t", [
        GoType.pointer(named("model.User")),
        named("model.User"),
        GoType.map(named("string"), named("any")),
    ])
    def test_other_payload_passes_through(self, t):
        assert format_params(group(CTX, ("user", t))) == "user"

    def test_many_payloads_in_order(self):
        params = group(CTX, ("name", "string"), ("user", GoType.pointer(named("User"))), ("age", "int"))
        assert format_params(params) == 'juice.H{"name": name, "user": user, "age": age}'


class TestFormatCode:

    def test_reindents_by_nesting(self):
        source = "func f() {\nif x {\n    return\n        }\n}"
        assert format_code(source) == "func f() {\n\tif x {\n\t\treturn\n\t}\n}\n"

    def test_multiple_openers_on_one_line_indent_once(self):
        source = "f(func() {\nx()\n})"
        assert format_code(source) == "f(func() {\n\tx()\n})\n"

    def test_closer_then_opener(self):
        source = "if a {\nb()\n} else {\nc()\n}"
        assert format_code(source) == "if a {\n\tb()\n} else {\n\tc()\n}\n"

    def test_blank_lines(self):
        source = "\n\n\npackage x\n\n\n\nvar a = 1\nfunc f() {\n\n\tg()\n\n}\n\n\n"
        assert format_code(source) == "package x\n\nvar a = 1\nfunc f() {\n\tg()\n}\n"

    def test_trailing_whitespace(self):
        assert format_code("var a = 1   \t\n") == "var a = 1\n"

    def test_literals_and_comments_are_opaque(self):
        source = 'x := "}{" + \'{\' // ) ]\ny := `(`'
        assert format_code(source) == 'x := "}{" + \'{\' // ) ]\ny := `(`\n'

    def test_multiline_raw_string_is_verbatim(self):
        source = "q := `\n   select {\n\n  }`\nz()"
        assert format_code(source) == "q := `\n   select {\n\n  }`\nz()\n"

    def test_import_block(self):
        source = 'import (\n"a"\n\n"b/c"\n)'
        assert format_code(source) == 'import (\n\t"a"\n\n\t"b/c"\n)\n'

    def test_idempotent(self):
        once = format_code(EXPECTED_V1)
        assert once == EXPECTED_V1
        assert format_code(once) == once

    @pytest.mark.parametrize("source, message", [
        ("func f() {\n", "missing '}'"),
        ("}\n", "unbalanced '}'"),
        ("f(]\n", "mismatched ']'"),
        ('x := "abc\n', "unterminated literal"),
        ("x := `abc\n", "unterminated raw string"),
    ])
    def test_errors(self, source, message):
        with pytest.raises(FormatError, match=message):
            format_code(source)
