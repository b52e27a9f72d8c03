"""juicegen/goast.py – lightweight Go declarations.

The generator never needs a full Go syntax tree: it needs the literal
declared type of every parameter and result, the package qualifiers those
types mention, and the import table of the declaring file.  This module
holds those pieces as frozen dataclasses.

Public API
----------
``GoType``
    Canonical type text plus its shape (pointer, slice, map, ...).
``Param`` / ``ValueGroup``
    One parameter or result, and an ordered list of them.
``Method`` / ``Interface`` / ``GoFile``
    The interface being implemented and the file that declares it.
``Import`` / ``ImportGroup``
    Import specs with usage-based deduplication and gofmt-style rendering.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Iterator, List, Optional, Tuple

__all__ = [
    "PARAM_PREFIX",
    "PREDECLARED_TYPES",
    "TypeKind",
    "GoType",
    "Param",
    "ValueGroup",
    "Method",
    "Import",
    "ImportGroup",
    "GoFile",
    "Interface",
]

# Prefix of the names given to unnamed parameters (``arg0``, ``arg1``, ...).
PARAM_PREFIX = "arg"

PREDECLARED_TYPES: FrozenSet[str] = frozenset({
    "any", "bool", "byte", "comparable",
    "complex64", "complex128", "error",
    "float32", "float64",
    "int", "int8", "int16", "int32", "int64",
    "rune", "string",
    "uint", "uint8", "uint16", "uint32", "uint64", "uintptr",
})

_MAJOR_VERSION_RE = re.compile(r"^v\d+$")
_DOT_VERSION_RE = re.compile(r"\.v\d+$")

_QUOTES = "\"'`"


def _literal_end(text: str, pos: int) -> int:
    quote = text[pos]
    i = pos + 1
    while i < len(text):
        if text[i] == "\\" and quote != "`":
            i += 2
            continue
        if text[i] == quote:
            return i + 1
        i += 1
    return len(text)


def _brace_end(text: str, pos: int) -> int:
    depth = 0
    i = pos
    while i < len(text):
        ch = text[i]
        if ch in _QUOTES:
            i = _literal_end(text, i)
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return len(text)


def _join_members(body: str) -> str:
    """Rejoin a ``struct``/``interface`` body on one line as ``a T; b U``.

    A member ends at a newline or ``;`` outside parentheses and brackets.
    Nested bodies are rejoined the same way and literals (struct tags) are
    copied unchanged.
    """
    members: List[str] = []
    pieces: List[str] = []
    depth = 0

    def flush() -> None:
        member = "".join(pieces).strip()
        if member:
            members.append(member)
        pieces.clear()

    i = 0
    while i < len(body):
        ch = body[i]
        if ch in _QUOTES:
            end = _literal_end(body, i)
            pieces.append(body[i:end])
            i = end
            continue
        if ch == "{":
            close = _brace_end(body, i)
            inner = _join_members(body[i + 1:close])
            if pieces:
                pieces[-1] = pieces[-1].rstrip()
            pieces.append(f"{{ {inner} }}" if inner else "{}")
            i = close + 1
            continue
        if ch in "([":
            depth += 1
        elif ch in ")]":
            depth -= 1
        if depth == 0 and ch in ";\n":
            flush()
        elif ch.isspace():
            if pieces and not pieces[-1].endswith(" "):
                pieces.append(" ")
        else:
            pieces.append(ch)
        i += 1
    flush()
    return "; ".join(members)


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

class TypeKind(enum.Enum):
    NAME = "name"
    POINTER = "pointer"
    SLICE = "slice"
    ARRAY = "array"
    ELLIPSIS = "ellipsis"
    MAP = "map"
    CHAN = "chan"
    FUNC = "func"
    INTERFACE = "interface"
    STRUCT = "struct"


@dataclass(frozen=True)
class GoType:
    """A Go type expression in canonical (gofmt) spelling.

    ``packages`` holds every package qualifier used anywhere inside the
    expression, e.g. ``map[string]*model.User`` → ``{"model"}``.
    """

    kind: TypeKind
    text: str
    elem: Optional["GoType"] = None
    packages: FrozenSet[str] = frozenset()

    def __str__(self) -> str:
        return self.text

    @classmethod
    def named(cls, name: str, package: str = "", args: Iterable["GoType"] = ()) -> "GoType":
        args = tuple(args)
        text = f"{package}.{name}" if package else name
        if args:
            text += "[" + ", ".join(a.text for a in args) + "]"
        packages = frozenset({package}) if package else frozenset()
        return cls(TypeKind.NAME, text, packages=packages.union(*(a.packages for a in args)))

    @classmethod
    def pointer(cls, elem: "GoType") -> "GoType":
        return cls(TypeKind.POINTER, "*" + elem.text, elem, elem.packages)

    @classmethod
    def slice(cls, elem: "GoType") -> "GoType":
        return cls(TypeKind.SLICE, "[]" + elem.text, elem, elem.packages)

    @classmethod
    def array(cls, length: str, elem: "GoType") -> "GoType":
        return cls(TypeKind.ARRAY, f"[{length}]{elem.text}", elem, elem.packages)

    @classmethod
    def ellipsis(cls, elem: "GoType") -> "GoType":
        return cls(TypeKind.ELLIPSIS, "..." + elem.text, elem, elem.packages)

    @classmethod
    def map(cls, key: "GoType", value: "GoType") -> "GoType":
        return cls(
            TypeKind.MAP,
            f"map[{key.text}]{value.text}",
            value,
            key.packages | value.packages,
        )

    @classmethod
    def chan(cls, direction: str, elem: "GoType") -> "GoType":
        # direction is "" (bidirectional), "<-" (receive-only) or "->" (send-only)
        if direction == "<-":
            text = "<-chan " + elem.text
        elif direction == "->":
            text = "chan<- " + elem.text
        else:
            text = "chan " + elem.text
        return cls(TypeKind.CHAN, text, elem, elem.packages)

    @classmethod
    def func(cls, params: "ValueGroup", results: "ValueGroup") -> "GoType":
        text = f"func({params.render()}){results.render_results()}"
        return cls(TypeKind.FUNC, text, packages=params.packages() | results.packages())

    @classmethod
    def literal(cls, kind: TypeKind, body: str) -> "GoType":
        """``interface{...}`` / ``struct{...}`` on one line, members ``;``-separated."""
        body = _join_members(body)
        keyword = kind.value
        text = f"{keyword}{{ {body} }}" if body else f"{keyword}{{}}"
        return cls(kind, text)

    def is_pointer(self) -> bool:
        return self.kind is TypeKind.POINTER

    def is_array_like(self) -> bool:
        return self.kind in (TypeKind.SLICE, TypeKind.ARRAY, TypeKind.ELLIPSIS)

    def is_predeclared(self) -> bool:
        return self.kind is TypeKind.NAME and self.text in PREDECLARED_TYPES


# ---------------------------------------------------------------------------
# Parameters and results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Param:
    """One parameter or result of a method signature."""

    name: str
    type: GoType

    @property
    def type_name(self) -> str:
        return self.type.text

    def is_builtin(self) -> bool:
        return self.type.is_predeclared()

    def render(self) -> str:
        if self.name:
            return f"{self.name} {self.type.text}"
        return self.type.text


class ValueGroup(tuple):
    """An ordered parameter or result list."""

    @classmethod
    def named(cls, params: Iterable[Param], prefix: str = PARAM_PREFIX) -> "ValueGroup":
        """Give every unnamed (or blank) parameter a positional name.

        Generated bodies refer to parameters by name, so a parameter list
        like ``(context.Context, int64)`` becomes ``(arg0 context.Context,
        arg1 int64)``.
        """
        return cls(
            p if p.name and p.name != "_" else Param(f"{prefix}{i}", p.type)
            for i, p in enumerate(params)
        )

    def name_at(self, index: int) -> str:
        return self[index].name

    def names(self) -> List[str]:
        return [p.name for p in self if p.name]

    def packages(self) -> FrozenSet[str]:
        return frozenset().union(*(p.type.packages for p in self))

    def render(self) -> str:
        return ", ".join(p.render() for p in self)

    def render_results(self) -> str:
        """Result list as it follows a parameter list, with leading space."""
        if not self:
            return ""
        if len(self) == 1 and not self[0].name:
            return " " + self[0].type.text
        return f" ({self.render()})"


@dataclass(frozen=True)
class Method:
    name: str
    params: ValueGroup = field(default_factory=ValueGroup)
    results: ValueGroup = field(default_factory=ValueGroup)

    def signature(self) -> str:
        return f"{self.name}({self.params.render()}){self.results.render_results()}"

    def packages(self) -> FrozenSet[str]:
        return self.params.packages() | self.results.packages()


# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Import:
    """One import spec: ``[name] "path"``."""

    path: str
    name: Optional[str] = None

    def usage(self) -> str:
        """The identifier the importing file uses for this package.

        ``"github.com/go-juicedev/juice"`` → ``juice``,
        ``j "github.com/go-juicedev/juice"`` → ``j``,
        ``"github.com/jackc/pgx/v5"`` → ``pgx``,
        ``"gopkg.in/yaml.v3"`` → ``yaml``.
        """
        if self.name:
            return self.name
        parts = self.path.split("/")
        last = parts[-1]
        if _MAJOR_VERSION_RE.match(last) and len(parts) > 1:
            last = parts[-2]
        return _DOT_VERSION_RE.sub("", last)

    def is_std(self) -> bool:
        """Standard-library paths have no dot in their first element."""
        return "." not in self.path.split("/", 1)[0]

    def __str__(self) -> str:
        if self.name:
            return f'{self.name} "{self.path}"'
        return f'"{self.path}"'


class ImportGroup(tuple):
    """An ordered collection of imports."""

    def uniq(self) -> "ImportGroup":
        """Drop imports whose usage name was already seen (first wins)."""
        seen = set()
        result = []
        for imp in self:
            usage = imp.usage()
            if usage in seen:
                continue
            seen.add(usage)
            result.append(imp)
        return ImportGroup(result)

    def merge(self, other: Iterable[Import]) -> "ImportGroup":
        return ImportGroup((*self, *other))

    def find(self, usage: str) -> Optional[Import]:
        for imp in self:
            if imp.usage() == usage:
                return imp
        return None

    def blocks(self) -> Iterator[List[Import]]:
        """Standard-library imports, then the rest; each sorted by path."""
        key = lambda imp: (imp.path, imp.name or "")
        std = sorted((imp for imp in self if imp.is_std()), key=key)
        other = sorted((imp for imp in self if not imp.is_std()), key=key)
        for block in (std, other):
            if block:
                yield block

    def render(self) -> str:
        if not self:
            return ""
        if len(self) == 1:
            return f"import {self[0]}"
        groups = [
            "\n".join(f"\t{imp}" for imp in block)
            for block in self.blocks()
        ]
        return "import (\n" + "\n\n".join(groups) + "\n)"


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GoFile:
    """Package clause and import table of one Go source file."""

    package: str
    imports: ImportGroup = field(default_factory=ImportGroup)
    path: str = ""


@dataclass(frozen=True)
class Interface:
    name: str
    methods: Tuple[Method, ...]
    file: GoFile

    def package(self) -> str:
        return self.file.package

    def imports(self) -> ImportGroup:
        """File imports referenced by any parameter or result type."""
        used = frozenset().union(*(m.packages() for m in self.methods))
        return ImportGroup(imp for imp in self.file.imports if imp.usage() in used)

    def method(self, name: str) -> Optional[Method]:
        for m in self.methods:
            if m.name == name:
                return m
        return None
