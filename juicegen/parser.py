"""juicegen/parser.py – Go interface reader.

Reads just enough Go to drive the generator: the package clause, the import
declarations, and the method set of one named interface type.

Design principles
-----------------
* **Grammar-driven** – the header (``package`` + ``import``) and the
  interface body are parsed with a Parsimonious PEG grammar; a small
  literal-aware scanner only *locates* the declaration and its braces.
* **Canonical types** – every type is rebuilt from the parse tree, so
  ``map[ string ]* model.User`` and ``map[string]*model.User`` yield the same
  ``GoType.text``.
* **Go parameter rules** – ``(a, b int)`` groups names, ``(int, string)``
  is a list of unnamed types, mixing the two is an error.
* **Fail-fast with location** – every error is a :class:`GoParseError`
  carrying ``file:line:column``.

Public API
----------
``parse_file(source, path="") -> GoFile``
``parse_interface(source, type_name, path="") -> Interface``
``find_interface(directory, type_name) -> Interface``
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple, Union

from parsimonious.exceptions import ParseError
from parsimonious.grammar import Grammar
from parsimonious.nodes import Node, NodeVisitor

from juicegen.errors import (
    ErrorCodes,
    GoParseError,
    NotAnInterfaceError,
    SourceSpan,
    TypeNotFoundError,
)
from juicegen.goast import (
    GoFile,
    GoType,
    Import,
    ImportGroup,
    Interface,
    Method,
    Param,
    TypeKind,
    ValueGroup,
)

logger = logging.getLogger(__name__)

__all__ = [
    "GO_GRAMMAR",
    "strip_comments",
    "parse_file",
    "parse_interface",
    "find_interface",
]


# ═══════════════════════════════════════════════════════════════════
#  GRAMMAR (Parsimonious PEG)
# ═══════════════════════════════════════════════════════════════════

GO_GRAMMAR = Grammar(r'''
    # ─────────────────────────────────────────────────────────────
    # File header
    # ─────────────────────────────────────────────────────────────

    header              = ws package_clause hs semi? ws import_decls
    package_clause      = ~r"package\b" hs identifier
    import_decls        = (import_decl hs semi? ws)*
    import_decl         = ~r"import\b" ws (import_group / import_spec)
    import_group        = "(" ws (import_spec hs semi? ws)* ")"
    import_spec         = (import_name ws)? string_lit
    import_name         = "." / identifier
    string_lit          = ~r'"(?:[^"\\\n]|\\.)*"' / ~r"`[^`]*`"

    # ─────────────────────────────────────────────────────────────
    # Interface body
    # ─────────────────────────────────────────────────────────────

    interface_body      = ws elements ws
    elements            = (element ws)*
    element             = (method_spec / embedded_elem) hs semi?
    method_spec         = identifier hs parameters result_part?
    embedded_elem       = "~"? ws type (ws "|" ws "~"? ws type)*
    result_part         = hs result
    result              = parameters / type

    parameters          = "(" ws param_list? ws ")"
    param_list          = param_decl (ws "," ws param_decl)* (ws ",")?
    param_decl          = named_param / type_only_param
    named_param         = identifier hs variadic? type
    type_only_param     = variadic? type
    variadic            = "..." ws

    # ─────────────────────────────────────────────────────────────
    # Types
    # ─────────────────────────────────────────────────────────────

    type                = pointer_type / slice_type / array_type / map_type
                        / chan_type / func_type / interface_type / struct_type
                        / paren_type / type_name
    pointer_type        = "*" ws type
    slice_type          = "[" ws "]" ws type
    array_type          = "[" ws array_len ws "]" ws type
    array_len           = ~r"[A-Za-z0-9_.]+"
    map_type            = ~r"map\b" ws "[" ws type ws "]" ws type
    chan_type           = recv_chan / send_chan / bidi_chan
    recv_chan           = "<-" ws ~r"chan\b" ws type
    send_chan           = ~r"chan\b" ws "<-" ws type
    bidi_chan           = ~r"chan\b" ws type
    func_type           = ~r"func\b" ws parameters result_part?
    interface_type      = ~r"interface\b" ws braced
    struct_type         = ~r"struct\b" ws braced
    braced              = "{" braced_inner "}"
    braced_inner        = (~r"[^{}]+" / braced)*
    paren_type          = "(" ws type ws ")"
    type_name           = qualified_ident type_args?
    qualified_ident     = identifier ("." identifier)?
    type_args           = "[" ws type (ws "," ws type)* (ws ",")? ws "]"

    # ─────────────────────────────────────────────────────────────
    # Lexical
    # ─────────────────────────────────────────────────────────────

    identifier          = !keyword ~r"[A-Za-z_][A-Za-z0-9_]*"
    keyword             = ~r"(break|case|chan|const|continue|default|defer|else|fallthrough|for|func|go|goto|if|import|interface|map|package|range|return|select|struct|switch|type|var)\b"
    semi                = ";"
    ws                  = ~r"\s*"
    hs                  = ~r"[ \t]*"
''')


# Raw parameter declaration before Go's grouping rules are applied.
_Decl = Tuple[Optional[str], GoType]


def _items(value: Any) -> List[Any]:
    """Children of a quantifier; an empty match visits as a bare Node."""
    return value if isinstance(value, list) else []


def _opt(value: Any) -> Any:
    items = _items(value)
    return items[0] if items else None


def _group_params(decls: Sequence[_Decl]) -> List[Param]:
    """Apply Go's parameter-list naming rules.

    If any declaration is named, every unnamed entry is really a name that
    shares the type of the next named declaration: ``(a, b int)``.
    """
    if not any(name for name, _ in decls):
        return [Param("", typ) for _, typ in decls]

    params: List[Param] = []
    pending: List[str] = []
    for name, typ in decls:
        if name is None:
            if typ.kind is not TypeKind.NAME or "." in typ.text or "[" in typ.text:
                raise GoParseError(f"mixed named and unnamed parameters near `{typ.text}`")
            pending.append(typ.text)
            continue
        params.extend(Param(n, typ) for n in pending)
        pending = []
        params.append(Param(name, typ))
    if pending:
        raise GoParseError(
            f"missing type for parameter{'s' if len(pending) > 1 else ''} "
            f"{', '.join(pending)}"
        )
    return params


# ═══════════════════════════════════════════════════════════════════
#  PARSE TREE → DECLARATIONS
# ═══════════════════════════════════════════════════════════════════

class GoDeclVisitor(NodeVisitor):
    """Transforms a Parsimonious parse tree into :mod:`juicegen.goast` values."""

    unwrapped_exceptions = (GoParseError,)

    def generic_visit(self, node: Node, visited_children: List[Any]) -> Any:
        return visited_children or node

    # ─────────────────────────────────────────────────────────────
    # Header
    # ─────────────────────────────────────────────────────────────

    def visit_header(self, node, visited_children):
        _, package, _, _, _, imports = visited_children
        return package, ImportGroup(imports)

    def visit_package_clause(self, node, visited_children):
        return visited_children[2]

    def visit_import_decls(self, node, visited_children):
        imports: List[Import] = []
        for decl, *_ in visited_children:
            imports.extend(decl)
        return imports

    def visit_import_decl(self, node, visited_children):
        chosen = visited_children[2][0]
        return chosen if isinstance(chosen, list) else [chosen]

    def visit_import_group(self, node, visited_children):
        return [spec for spec, *_ in _items(visited_children[2])]

    def visit_import_spec(self, node, visited_children):
        named, path = visited_children
        name = _opt(named)
        return Import(path=path, name=name[0] if name else None)

    def visit_import_name(self, node, visited_children):
        return node.text

    def visit_string_lit(self, node, visited_children):
        return node.text[1:-1]

    # ─────────────────────────────────────────────────────────────
    # Interface body
    # ─────────────────────────────────────────────────────────────

    def visit_interface_body(self, node, visited_children):
        return visited_children[1]

    def visit_elements(self, node, visited_children):
        return [element for element, _ in visited_children]

    def visit_element(self, node, visited_children):
        return visited_children[0][0]

    def visit_method_spec(self, node, visited_children):
        name, _, params, results = visited_children
        return Method(
            name=name,
            params=ValueGroup.named(_group_params(params)),
            results=ValueGroup(_group_params(_opt(results) or [])),
        )

    def visit_embedded_elem(self, node, visited_children):
        return ("embedded", " ".join(node.text.split()))

    def visit_result_part(self, node, visited_children):
        return visited_children[1]

    def visit_result(self, node, visited_children):
        chosen = visited_children[0]
        if isinstance(chosen, GoType):
            return [(None, chosen)]
        return chosen

    def visit_parameters(self, node, visited_children):
        return _opt(visited_children[2]) or []

    def visit_param_list(self, node, visited_children):
        first, rest, _ = visited_children
        return [first] + [decl for *_, decl in _items(rest)]

    def visit_param_decl(self, node, visited_children):
        return visited_children[0]

    def visit_named_param(self, node, visited_children):
        name, _, variadic, typ = visited_children
        if _items(variadic):
            typ = GoType.ellipsis(typ)
        return (name, typ)

    def visit_type_only_param(self, node, visited_children):
        variadic, typ = visited_children
        if _items(variadic):
            typ = GoType.ellipsis(typ)
        return (None, typ)

    # ─────────────────────────────────────────────────────────────
    # Types
    # ─────────────────────────────────────────────────────────────

    def visit_type(self, node, visited_children):
        return visited_children[0]

    def visit_pointer_type(self, node, visited_children):
        return GoType.pointer(visited_children[2])

    def visit_slice_type(self, node, visited_children):
        return GoType.slice(visited_children[4])

    def visit_array_type(self, node, visited_children):
        return GoType.array(node.children[2].text, visited_children[6])

    def visit_map_type(self, node, visited_children):
        return GoType.map(visited_children[4], visited_children[8])

    def visit_chan_type(self, node, visited_children):
        return visited_children[0]

    def visit_recv_chan(self, node, visited_children):
        return GoType.chan("<-", visited_children[4])

    def visit_send_chan(self, node, visited_children):
        return GoType.chan("->", visited_children[4])

    def visit_bidi_chan(self, node, visited_children):
        return GoType.chan("", visited_children[2])

    def visit_func_type(self, node, visited_children):
        _, _, params, results = visited_children
        return GoType.func(
            ValueGroup(_group_params(params)),
            ValueGroup(_group_params(_opt(results) or [])),
        )

    def visit_interface_type(self, node, visited_children):
        return GoType.literal(TypeKind.INTERFACE, node.children[2].text[1:-1])

    def visit_struct_type(self, node, visited_children):
        return GoType.literal(TypeKind.STRUCT, node.children[2].text[1:-1])

    def visit_paren_type(self, node, visited_children):
        return visited_children[2]

    def visit_type_name(self, node, visited_children):
        (package, name), args = visited_children
        return GoType.named(name, package, _opt(args) or ())

    def visit_qualified_ident(self, node, visited_children):
        package, _, name = node.text.rpartition(".")
        return package, name

    def visit_type_args(self, node, visited_children):
        first, rest = visited_children[2], visited_children[3]
        return [first] + [typ for *_, typ in _items(rest)]

    def visit_identifier(self, node, visited_children):
        return node.text


# ═══════════════════════════════════════════════════════════════════
#  SCANNING HELPERS
# ═══════════════════════════════════════════════════════════════════

_TYPE_KEYWORD_RE = re.compile(r"(?<![\w.])type\b")
_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_CLOSERS = {"(": ")", "[": "]", "{": "}"}


def _skip_literal(text: str, pos: int) -> int:
    """Return the index just past the string/rune literal starting at *pos*."""
    quote = text[pos]
    i = pos + 1
    while i < len(text):
        ch = text[i]
        if quote != "`" and ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        if ch == "\n" and quote != "`":
            break
        i += 1
    raise GoParseError("unterminated literal", span=SourceSpan.from_offset(text, pos))


def strip_comments(source: str) -> str:
    """Blank out ``//`` and ``/* */`` comments, preserving line structure."""
    out: List[str] = []
    i = 0
    n = len(source)
    while i < n:
        ch = source[i]
        if ch in "\"'`":
            end = _skip_literal(source, i)
            out.append(source[i:end])
            i = end
        elif source.startswith("//", i):
            end = source.find("\n", i)
            end = n if end < 0 else end
            out.append(" " * (end - i))
            i = end
        elif source.startswith("/*", i):
            end = source.find("*/", i + 2)
            if end < 0:
                raise GoParseError(
                    "unterminated block comment",
                    span=SourceSpan.from_offset(source, i),
                )
            chunk = source[i:end + 2]
            out.append("".join(c if c == "\n" else " " for c in chunk))
            i = end + 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def _matching(text: str, pos: int) -> int:
    """Index of the bracket closing the one at *pos*."""
    stack = [_CLOSERS[text[pos]]]
    i = pos + 1
    while i < len(text):
        ch = text[i]
        if ch in "\"'`":
            i = _skip_literal(text, i)
            continue
        if ch in _CLOSERS:
            stack.append(_CLOSERS[ch])
        elif ch in ")]}":
            if ch != stack.pop():
                raise GoParseError(
                    f"unexpected {ch!r}", span=SourceSpan.from_offset(text, i)
                )
            if not stack:
                return i
        i += 1
    raise GoParseError(
        f"unbalanced {text[pos]!r}", span=SourceSpan.from_offset(text, pos)
    )


def _skip_ws(text: str, pos: int) -> int:
    while pos < len(text) and text[pos].isspace():
        pos += 1
    return pos


def _spec_end(text: str, pos: int) -> int:
    """End of a type spec inside a ``type ( ... )`` group."""
    i = pos
    while i < len(text):
        ch = text[i]
        if ch in "\"'`":
            i = _skip_literal(text, i)
            continue
        if ch in _CLOSERS:
            i = _matching(text, i) + 1
            continue
        if ch in "\n;":
            return i
        i += 1
    return i


def _locate_type(text: str, type_name: str) -> Optional[int]:
    """Offset just past *type_name* in its ``type`` declaration, if any."""
    for match in _TYPE_KEYWORD_RE.finditer(text):
        pos = _skip_ws(text, match.end())
        if text.startswith("(", pos):
            close = _matching(text, pos)
            i = pos + 1
            while i < close:
                i = _skip_ws(text, i)
                if i >= close:
                    break
                if text[i] == ";":
                    i += 1
                    continue
                ident = _IDENT_RE.match(text, i)
                if ident and ident.group() == type_name:
                    return ident.end()
                i = _spec_end(text, ident.end() if ident else i + 1)
            continue
        ident = _IDENT_RE.match(text, pos)
        if ident and ident.group() == type_name:
            return ident.end()
    return None


def _convert_parse_error(
    exc: ParseError, text: str, base: int, path: str, what: str
) -> GoParseError:
    offset = base + (exc.pos or 0)
    found = text[offset:offset + 20].split("\n", 1)[0]
    return GoParseError(
        f"cannot parse {what} near {found!r}" if found else f"cannot parse {what}",
        span=SourceSpan.from_offset(text, offset, path),
    )


# ═══════════════════════════════════════════════════════════════════
#  PUBLIC API
# ═══════════════════════════════════════════════════════════════════

def _read_header(text: str, path: str) -> GoFile:
    try:
        tree = GO_GRAMMAR["header"].match(text)
    except ParseError as exc:
        raise _convert_parse_error(exc, text, 0, path, "package clause") from exc
    package, imports = GoDeclVisitor().visit(tree)
    return GoFile(package=package, imports=imports, path=path)


def parse_file(source: str, path: str = "") -> GoFile:
    """Read the package clause and imports of a Go source file."""
    return _read_header(strip_comments(source.lstrip("﻿")), path)


def parse_interface(source: str, type_name: str, path: str = "") -> Interface:
    """Parse the interface *type_name* declared in *source*.

    Raises
    ------
    TypeNotFoundError
        *type_name* is not declared in *source*.
    NotAnInterfaceError
        *type_name* is declared but is not an interface type.
    GoParseError
        The declaration is malformed, generic, or embeds other interfaces.
    """
    text = strip_comments(source.lstrip("﻿"))
    file = _read_header(text, path)

    pos = _locate_type(text, type_name)
    if pos is None:
        raise TypeNotFoundError(type_name, span=SourceSpan(file=path))

    pos = _skip_ws(text, pos)
    generic = text.startswith("[", pos)
    if generic:
        pos = _skip_ws(text, _matching(text, pos) + 1)
    if text.startswith("=", pos):
        pos = _skip_ws(text, pos + 1)
    keyword = re.compile(r"interface\b").match(text, pos)
    if keyword is None:
        raise NotAnInterfaceError(type_name, span=SourceSpan.from_offset(text, pos, path))
    if generic:
        raise GoParseError(
            f"generic interface {type_name} is not supported",
            code=ErrorCodes.UNSUPPORTED_INTERFACE,
            span=SourceSpan.from_offset(text, pos, path),
        ).with_hint("instantiate it in a non-generic interface")

    open_brace = _skip_ws(text, keyword.end())
    if not text.startswith("{", open_brace):
        raise GoParseError(
            f"expected '{{' after interface in {type_name}",
            span=SourceSpan.from_offset(text, open_brace, path),
        )
    close_brace = _matching(text, open_brace)
    body = text[open_brace + 1:close_brace]

    try:
        tree = GO_GRAMMAR["interface_body"].parse(body)
        elements = GoDeclVisitor().visit(tree)
    except ParseError as exc:
        raise _convert_parse_error(exc, text, open_brace + 1, path, f"interface {type_name}") from exc
    except GoParseError as exc:
        if exc.span is None:
            exc.span = SourceSpan.from_offset(text, open_brace, path)
        raise

    methods: List[Method] = []
    seen = set()
    for element in elements:
        if isinstance(element, tuple):
            raise GoParseError(
                f"embedded element `{element[1]}` in interface {type_name} is not supported",
                code=ErrorCodes.UNSUPPORTED_INTERFACE,
                span=SourceSpan.from_offset(text, open_brace, path),
            ).with_hint("declare the methods explicitly")
        if element.name in seen:
            raise GoParseError(
                f"duplicate method {element.name} in interface {type_name}",
                span=SourceSpan.from_offset(text, open_brace, path),
            )
        seen.add(element.name)
        methods.append(element)

    logger.debug("parsed interface %s with %d method(s)", type_name, len(methods))
    return Interface(name=type_name, methods=tuple(methods), file=file)


def find_interface(directory: Union[str, Path], type_name: str) -> Interface:
    """Search the non-test Go files of *directory* for *type_name*."""
    root = Path(directory)
    for path in sorted(root.glob("*.go")):
        if path.name.endswith("_test.go"):
            continue
        source = path.read_text(encoding="utf-8")
        if type_name not in source:
            continue
        try:
            iface = parse_interface(source, type_name, str(path))
        except TypeNotFoundError:
            continue
        logger.debug("found %s in %s", type_name, path)
        return iface
    raise TypeNotFoundError(
        type_name,
        span=SourceSpan(file=str(root)),
        hint=f"no Go file in {root} declares `type {type_name} interface`",
    )
