# tests/test_goparser.py
"""
Tests for the Go interface reader: the PEG grammar, the parse-tree visitor
and the declaration locator.
"""

import textwrap

import pytest
from parsimonious.exceptions import ParseError

from juicegen.errors import ErrorCodes, GoParseError, NotAnInterfaceError, TypeNotFoundError
from juicegen.goast import TypeKind
from juicegen.parser import (
    GO_GRAMMAR,
    find_interface,
    parse_file,
    parse_interface,
    strip_comments,
)
from tests.conftest import USER_REPOSITORY_GO


def iface_source(body, header="package repo\n\nimport \"context\"\n"):
    return header + "\ntype Repo interface {\n" + textwrap.dedent(body) + "}\n"


class TestGrammar:
    """Grammar-level checks, before the visitor runs."""

    def test_rules_present(self):
        for rule in ("header", "interface_body", "method_spec", "type", "identifier"):
            assert rule in GO_GRAMMAR, f"Rule {rule!r} missing"

    @pytest.mark.parametrize("text", [
        "int64",
        "*model.User",
        "[]*model.User",
        "[16]byte",
        "map[string][]int",
        "<-chan error",
        "chan<- int",
        "func(int) (string, error)",
        "interface{}",
        "struct{ A int }",
        "Page[model.User]",
    ])
    def test_types_parse(self, text):
        assert GO_GRAMMAR["type"].parse(text).text == text

    def test_keyword_is_not_identifier(self):
        with pytest.raises(ParseError):
            GO_GRAMMAR["identifier"].parse("func")

    def test_keyword_prefix_is_identifier(self):
        assert GO_GRAMMAR["identifier"].parse("mapper").text == "mapper"


class TestParseFile:

    def test_package_and_grouped_imports(self):
        f = parse_file(USER_REPOSITORY_GO, "user.go")
        assert f.package == "repo"
        assert [imp.path for imp in f.imports] == [
            "context",
            "database/sql",
            "strings",
            "github.com/acme/shop/model",
            "github.com/go-juicedev/juice",
        ]
        assert f.path == "user.go"

    def test_single_and_aliased_imports(self):
        source = textwrap.dedent("""\
            // Package repo holds repositories.
            package repo // trailing

            import "context"
            import j "github.com/go-juicedev/juice"
            import (
            \t_ "github.com/go-sql-driver/mysql"
            \t. "strings"
            \traw `github.com/acme/raw`
            )
            """)
        imports = parse_file(source).imports
        assert [(imp.name, imp.path) for imp in imports] == [
            (None, "context"),
            ("j", "github.com/go-juicedev/juice"),
            ("_", "github.com/go-sql-driver/mysql"),
            (".", "strings"),
            ("raw", "github.com/acme/raw"),
        ]

    def test_no_imports(self):
        assert len(parse_file("package main\n\nfunc main() {}\n").imports) == 0

    def test_missing_package_clause(self):
        with pytest.raises(GoParseError) as exc_info:
            parse_file("import \"fmt\"\n", "x.go")
        assert exc_info.value.span.file == "x.go"
        assert exc_info.value.span.line == 1


class TestParseInterface:

    def test_user_repository(self, user_interface):
        assert user_interface.name == "UserRepository"
        assert user_interface.package() == "repo"
        assert [m.name for m in user_interface.methods] == [
            "GetByID", "List", "Count", "Create", "Delete", "Rename", "Archive",
        ]
        get = user_interface.method("GetByID")
        assert get.signature() == "GetByID(ctx context.Context, id int64) (*model.User, error)"
        assert get.results[0].type.kind is TypeKind.POINTER
        assert get.results[0].type.elem.text == "model.User"

    def test_referenced_imports_only(self, user_interface):
        assert [imp.path for imp in user_interface.imports()] == [
            "context", "database/sql", "github.com/acme/shop/model",
        ]

    def test_unnamed_params_get_positional_names(self):
        iface = parse_interface(iface_source("Get(context.Context, int64) (string, error)\n"), "Repo")
        assert iface.methods[0].params.names() == ["arg0", "arg1"]
        assert iface.methods[0].signature() == "Get(arg0 context.Context, arg1 int64) (string, error)"

    def test_blank_param_is_renamed(self):
        iface = parse_interface(iface_source("Get(_ context.Context, id int64) error\n"), "Repo")
        assert iface.methods[0].params.names() == ["arg0", "id"]

    def test_grouped_names_share_type(self):
        iface = parse_interface(iface_source("Move(ctx context.Context, from, to int64) error\n"), "Repo")
        params = iface.methods[0].params
        assert [(p.name, p.type_name) for p in params] == [
            ("ctx", "context.Context"), ("from", "int64"), ("to", "int64"),
        ]

    def test_multiline_params_and_named_results(self):
        source = iface_source("""\
            Find(
            \tctx context.Context,
            \tids ...int64,
            ) (users []*User, err error)
            """)
        m = parse_interface(source, "Repo").methods[0]
        assert m.params[1].type.kind is TypeKind.ELLIPSIS
        assert m.signature() == "Find(ctx context.Context, ids ...int64) (users []*User, err error)"

    def test_canonical_spelling(self):
        source = iface_source("Tags(ctx context.Context, m map[ string ]* User) ([] string, error)\n")
        m = parse_interface(source, "Repo").methods[0]
        assert m.params[1].type_name == "map[string]*User"
        assert m.results[0].type_name == "[]string"

    def test_semicolon_separated_methods(self):
        source = "package repo\ntype Repo interface { A(ctx context.Context) error; B(ctx context.Context) error }\n"
        assert [m.name for m in parse_interface(source, "Repo").methods] == ["A", "B"]

    def test_function_and_channel_types(self):
        source = iface_source("Watch(ctx context.Context, fn func(int) error) (<-chan string, error)\n")
        m = parse_interface(source, "Repo").methods[0]
        assert m.params[1].type_name == "func(int) error"
        assert m.results[0].type.kind is TypeKind.CHAN

    def test_multiline_inline_struct_param(self):
        source = iface_source("""\
            Find(ctx context.Context, f struct {
            \tName string
            \tAge  int
            }) (int64, error)
            """)
        m = parse_interface(source, "Repo").methods[0]
        assert m.params[1].type_name == "struct{ Name string; Age int }"
        assert m.signature() == (
            "Find(ctx context.Context, f struct{ Name string; Age int }) (int64, error)"
        )

    def test_grouped_type_declaration(self):
        source = textwrap.dedent("""\
            package repo

            type (
            \tID int64
            \tRow struct {
            \t\tRepo string
            \t}
            \tRepo interface {
            \t\tCount(ctx context.Context) (int64, error)
            \t}
            )
            """)
        assert parse_interface(source, "Repo").methods[0].name == "Count"

    def test_comments_are_ignored(self):
        source = iface_source("""\
            /* Get(ctx context.Context) error */
            Count(ctx context.Context) (int64, error) // Delete(ctx context.Context) error
            """)
        assert [m.name for m in parse_interface(source, "Repo").methods] == ["Count"]

    def test_type_not_found(self):
        with pytest.raises(TypeNotFoundError, match="can not find type Missing"):
            parse_interface(USER_REPOSITORY_GO, "Missing")

    def test_not_an_interface(self):
        with pytest.raises(NotAnInterfaceError, match="Repo is not an interface"):
            parse_interface("package repo\n\ntype Repo struct{}\n", "Repo")

    def test_embedded_interface_rejected(self):
        with pytest.raises(GoParseError, match="embedded element `io.Closer`") as exc_info:
            parse_interface(iface_source("io.Closer\nCount(ctx context.Context) (int64, error)\n"), "Repo")
        assert exc_info.value.code == ErrorCodes.UNSUPPORTED_INTERFACE
        assert exc_info.value.hint == "declare the methods explicitly"

    def test_generic_interface_rejected(self):
        source = "package repo\n\ntype Repo[T any] interface {\n\tGet(ctx context.Context) (T, error)\n}\n"
        with pytest.raises(GoParseError, match="generic interface") as exc_info:
            parse_interface(source, "Repo")
        assert exc_info.value.code == ErrorCodes.UNSUPPORTED_INTERFACE
        assert "hint: instantiate it in a non-generic interface" in str(exc_info.value)

    def test_syntax_error_has_location(self):
        source = iface_source("Get(ctx context.Context error\n")
        with pytest.raises(GoParseError) as exc_info:
            parse_interface(source, "Repo", "repo.go")
        span = exc_info.value.span
        assert span.file == "repo.go"
        assert span.line >= 5

    def test_mixed_named_and_unnamed(self):
        with pytest.raises(GoParseError, match="mixed named and unnamed"):
            parse_interface(iface_source("Get(ctx context.Context, *User) error\n"), "Repo")

    def test_duplicate_method(self):
        source = iface_source("A(ctx context.Context) error\nA(ctx context.Context) error\n")
        with pytest.raises(GoParseError, match="duplicate method A"):
            parse_interface(source, "Repo")


class TestStripComments:

    def test_preserves_lines(self):
        text = "a /* x\ny */ b // c\nd"
        stripped = strip_comments(text)
        assert stripped.count("\n") == 2
        assert "x" not in stripped and "c" not in stripped

    def test_strings_untouched(self):
        text = 'x := "// not a comment" + `/* nor this */`'
        assert strip_comments(text) == text


class TestFindInterface:

    def test_scans_directory(self, go_project):
        iface = find_interface(go_project / "repo", "UserRepository")
        assert iface.file.path.endswith("user.go")

    def test_skips_test_files(self, tmp_path):
        (tmp_path / "a_test.go").write_text(
            "package repo\n\ntype Repo interface{ A(ctx context.Context) error }\n",
            encoding="utf-8",
        )
        with pytest.raises(TypeNotFoundError):
            find_interface(tmp_path, "Repo")

    def test_first_file_in_name_order_wins(self, tmp_path):
        for name, method in (("b.go", "B"), ("a.go", "A")):
            (tmp_path / name).write_text(
                f"package repo\n\ntype Repo interface{{ {method}(ctx context.Context) error }}\n",
                encoding="utf-8",
            )
        assert find_interface(tmp_path, "Repo").methods[0].name == "A"
