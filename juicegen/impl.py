"""juicegen/impl.py – implementation assembly.

Walks the interface methods in declaration order, matches each one to its
statement, synthesizes the bodies and lays the Go file out in a fixed order:

    1. provenance comment
    2. package clause (same package as the interface)
    3. imports (interface imports in use + juice)
    4. implementation struct
    5. compile-time interface assertion
    6. methods
    7. constructor

Assembly is all-or-nothing: the first lookup or synthesis failure aborts
the run and no unit is produced.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from juicegen.context import ApiVersion, GenerationContext
from juicegen.errors import InternalError, StatementLookupError
from juicegen.formatting import format_code
from juicegen.function import Function, make_body
from juicegen.goast import Import, ImportGroup, Interface
from juicegen.registry import StatementRegistry

logger = logging.getLogger(__name__)

__all__ = [
    "JUICE_IMPORT",
    "DEFAULT_COMMAND",
    "ImplementationUnit",
    "Implementation",
]

JUICE_IMPORT = Import("github.com/go-juicedev/juice")

DEFAULT_COMMAND = "juicegen"

# Statement attributes that opt a method out of generation.
_SKIP_ATTRIBUTES = ("gen", "generate")


@dataclass(frozen=True)
class ImplementationUnit:
    """A complete generated Go file, section by section."""

    header: str
    package: str
    imports: ImportGroup
    struct: str
    assertion: str
    methods: Tuple[str, ...]
    constructor: str

    def to_source(self) -> str:
        sections = [
            self.header,
            f"package {self.package}",
            self.imports.render(),
            self.struct,
            self.assertion,
            *self.methods,
            self.constructor,
        ]
        return format_code("\n\n".join(s for s in sections if s))


class Implementation:
    """Builds the implementation of *interface* from *registry* statements."""

    def __init__(
        self,
        interface: Interface,
        registry: StatementRegistry,
        context: GenerationContext,
        command: str = DEFAULT_COMMAND,
    ) -> None:
        self.interface = interface
        self.registry = registry
        self.context = context
        self.command = command or DEFAULT_COMMAND

    @property
    def src(self) -> str:
        return self.context.source

    @property
    def dst(self) -> str:
        return self.context.destination

    def imports(self) -> ImportGroup:
        return self.interface.imports().merge([JUICE_IMPORT]).uniq()

    def build_methods(self) -> List[Function]:
        functions: List[Function] = []
        for method in self.interface.methods:
            key = self.context.statement_key(method.name)
            try:
                statement = self.registry.lookup(key)
            except StatementLookupError as exc:
                exc.add_note(f"required by method {self.src}.{method.name}")
                raise
            if any(statement.attribute(attr) == "false" for attr in _SKIP_ATTRIBUTES):
                logger.warning("skipping %s: generation disabled by statement %s", method.name, key)
                continue
            function = Function(method=method, receiver=self.dst, typename=self.src)
            make_body(statement, function, self.context.api_version)
            functions.append(function)
        return functions

    def _struct(self) -> str:
        version = self.context.api_version
        if version is ApiVersion.V1:
            return f"type {self.dst} struct{{}}"
        if version is ApiVersion.V2:
            return f"type {self.dst} struct {{\n\tmanager juice.Manager\n}}"
        raise InternalError(f"unhandled api version {version!r}")

    def _constructor(self) -> str:
        doc = f"// New{self.src} returns a new {self.src}."
        if self.context.api_version is ApiVersion.V2:
            return (
                f"{doc}\nfunc New{self.src}(manager juice.Manager) {self.src} {{\n"
                f"\treturn &{self.dst}{{manager: manager}}\n}}"
            )
        return f"{doc}\nfunc New{self.src}() {self.src} {{\n\treturn &{self.dst}{{}}\n}}"

    def assemble(self) -> ImplementationUnit:
        functions = self.build_methods()
        logger.debug(
            "assembled %s with %d of %d method(s)",
            self.dst, len(functions), len(self.interface.methods),
        )
        return ImplementationUnit(
            header=f'// Code generated by "{self.command}"; DO NOT EDIT.',
            package=self.interface.package(),
            imports=self.imports(),
            struct=self._struct(),
            assertion=f"var _ {self.src} = (*{self.dst})(nil)",
            methods=tuple(f.render() for f in functions),
            constructor=self._constructor(),
        )

    def render(self, unit: Optional[ImplementationUnit] = None) -> str:
        return (unit or self.assemble()).to_source()
