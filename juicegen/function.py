"""juicegen/function.py – method body synthesis.

For every interface method matched to a juice statement this module checks
the method shape against the statement's contract and writes the Go body
that forwards to the matching juice entry point.

Body selection
--------------
==============  ===========================================================
``READ_V1``     ``juice.QueryContext`` / ``QueryListContext`` /
                ``QueryList2Context``
``READ_V2``     as ``READ_V1``, after binding ``r.manager`` to the context
``WRITE_V1``    ``juice.ExecContext``
``WRITE_V2``    as ``WRITE_V1``, after binding ``r.manager`` to the context
==============  ===========================================================

Read statements whose result is a slice and that declare no ``resultMap``
load rows through the list entry points; everything else is a single-row
query.  Pointer results are loaded by value and returned by address.
"""

from __future__ import annotations

import enum
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from io import StringIO
from typing import Iterator, Set

from juicegen.context import ApiVersion
from juicegen.errors import (
    ErrorCodes,
    InternalError,
    ResultMapNotSetError,
    SignatureError,
)
from juicegen.formatting import format_params
from juicegen.goast import Method, TypeKind, ValueGroup
from juicegen.registry import Statement

logger = logging.getLogger(__name__)

__all__ = [
    "CONTEXT_TYPE",
    "BodyWriter",
    "Function",
    "BodyKind",
    "BodyMaker",
    "ReadBodyMaker",
    "WriteBodyMaker",
    "make_body",
]

CONTEXT_TYPE = "context.Context"
ERROR_TYPE = "error"
SQL_RESULT_TYPE = "sql.Result"


# ═══════════════════════════════════════════════════════════════════
#  EMISSION
# ═══════════════════════════════════════════════════════════════════

class BodyWriter:
    """Line emitter for Go function bodies.

    Every line is written as ``"\\n" + tabs + code`` so the result can be
    placed directly after the opening brace of a function declaration.
    """

    def __init__(self, indent_str: str = "\t") -> None:
        self._buffer = StringIO()
        self._indent_str = indent_str
        self._indent_level = 1

    def emit(self, code: str) -> None:
        self._buffer.write("\n")
        self._buffer.write(self._indent_str * self._indent_level)
        self._buffer.write(code)

    def indent(self) -> None:
        self._indent_level += 1

    def dedent(self) -> None:
        if self._indent_level <= 1:
            raise InternalError("dedent below function body level")
        self._indent_level -= 1

    @contextmanager
    def block(self, header: str) -> Iterator[None]:
        """``header {`` ... ``}``"""
        self.emit(header + " {")
        self.indent()
        try:
            yield
        finally:
            self.dedent()
        self.emit("}")

    def getvalue(self) -> str:
        return self._buffer.getvalue()


# ═══════════════════════════════════════════════════════════════════
#  SYNTHESIZED METHOD
# ═══════════════════════════════════════════════════════════════════

@dataclass
class Function:
    """One method of the generated implementation.

    ``receiver`` is the implementation struct, ``typename`` the interface it
    implements; bodies call juice with ``typename(alias).Method`` so the
    statement is resolved from the interface method.
    """

    method: Method
    receiver: str
    typename: str
    body: str = ""

    @property
    def name(self) -> str:
        return self.method.name

    @property
    def params(self) -> ValueGroup:
        return self.method.params

    @property
    def results(self) -> ValueGroup:
        return self.method.results

    def receiver_alias(self) -> str:
        taken: Set[str] = set(self.params.names()) | set(self.results.names())
        alias = self.receiver[:1].lower()
        if alias not in taken:
            return alias
        alias = alias + self.receiver[1:]
        while alias in taken:
            alias += "_"
        return alias

    def statement_ref(self) -> str:
        return f"{self.typename}({self.receiver_alias()}).{self.name}"

    def render(self) -> str:
        body = self.body or 'panic("not implemented")'
        return (
            f"func ({self.receiver_alias()} {self.receiver}) "
            f"{self.method.signature()} {{{body}\n}}"
        )


# ═══════════════════════════════════════════════════════════════════
#  BODY MAKERS
# ═══════════════════════════════════════════════════════════════════

class BodyKind(enum.Enum):
    READ_V1 = "read/v1"
    READ_V2 = "read/v2"
    WRITE_V1 = "write/v1"
    WRITE_V2 = "write/v2"

    @classmethod
    def select(cls, is_read: bool, version: ApiVersion) -> "BodyKind":
        if version is ApiVersion.V1:
            return cls.READ_V1 if is_read else cls.WRITE_V1
        if version is ApiVersion.V2:
            return cls.READ_V2 if is_read else cls.WRITE_V2
        raise InternalError(f"unhandled api version {version!r}")


class BodyMaker:
    """Validates a method against its statement and writes its body."""

    def __init__(self, statement: Statement, function: Function, bind_manager: bool = False) -> None:
        self.statement = statement
        self.function = function
        self.bind_manager = bind_manager

    def _error(self, message: str, code=ErrorCodes.INVALID_PARAMS) -> SignatureError:
        return SignatureError(
            message,
            method=self.function.name,
            statement=self.statement.key,
            code=code,
        )

    def _check_context(self) -> None:
        params = self.function.params
        if not params:
            raise self._error(f"{self.function.name}: must have at least one argument")
        if params[0].type_name != CONTEXT_TYPE:
            raise self._error(f"{self.function.name}: first argument must be {CONTEXT_TYPE}")

    def check(self) -> None:
        raise NotImplementedError

    def build(self, writer: BodyWriter) -> None:
        raise NotImplementedError

    def make(self) -> str:
        self.check()
        writer = BodyWriter()
        if self.bind_manager:
            ctx = self.function.params.name_at(0)
            writer.emit(
                f"{ctx} = juice.ContextWithManager({ctx}, {self.function.receiver_alias()}.manager)"
            )
        self.build(writer)
        self.function.body = writer.getvalue()
        return self.function.body

    def _call_args(self) -> str:
        return ", ".join((
            self.function.params.name_at(0),
            self.function.statement_ref(),
            format_params(self.function.params),
        ))


class ReadBodyMaker(BodyMaker):
    """``<select>`` statements: two results, the second an ``error``."""

    def check(self) -> None:
        name = self.function.name
        results = self.function.results
        if len(results) != 2:
            raise self._error(f"{name}: must have two results", ErrorCodes.INVALID_RESULTS)
        if results[1].type_name != ERROR_TYPE:
            raise self._error(f"{name}: second result must be error", ErrorCodes.INVALID_RESULTS)
        self._check_context()

    def _loads_list(self) -> bool:
        try:
            self.statement.result_map()
        except ResultMapNotSetError:
            return True
        return False

    def build(self, writer: BodyWriter) -> None:
        ret_type = self.function.results[0].type
        args = self._call_args()

        if ret_type.kind is TypeKind.SLICE and self._loads_list():
            elem = ret_type.elem
            if elem.is_pointer():
                entry, row = "QueryList2Context", elem.elem.text
            else:
                entry, row = "QueryListContext", elem.text
            logger.debug("%s: list query %s[%s]", self.statement.key, entry, row)
            writer.emit(f"return juice.{entry}[{row}]({args})")
            return

        if ret_type.is_pointer():
            logger.debug("%s: single-row query by address", self.statement.key)
            writer.emit(f"ret, err := juice.QueryContext[{ret_type.elem.text}]({args})")
            with writer.block("if err != nil"):
                writer.emit("return nil, err")
            writer.emit("return &ret, nil")
        else:
            logger.debug("%s: single-row query by value", self.statement.key)
            writer.emit(f"return juice.QueryContext[{ret_type.text}]({args})")


class WriteBodyMaker(BodyMaker):
    """``<insert>``/``<update>``/``<delete>`` statements."""

    def _check_generated_keys(self) -> None:
        params = self.function.params
        if self.statement.attribute("useGeneratedKeys") != "true":
            return
        key = self.statement.key
        if len(params) > 2:
            raise self._error(
                f"`{key}` `useGeneratedKeys` is true, but there are more than 2 parameters",
                ErrorCodes.INVALID_PAYLOAD_SHAPE,
            )
        if len(params) < 2:
            return
        payload = params[1]
        # A variadic payload is neither a pointer nor a slice of pointers here.
        if payload.type.kind in (TypeKind.SLICE, TypeKind.ARRAY):
            if not payload.type.elem.is_pointer():
                raise self._error(
                    f"`{key}` `useGeneratedKeys` is true, but `{payload.name}` is not a pointer array type",
                    ErrorCodes.INVALID_PAYLOAD_SHAPE,
                )
        elif not payload.type.is_pointer():
            raise self._error(
                f"`{key}` `useGeneratedKeys` is true, but `{payload.name}` is not a pointer type",
                ErrorCodes.INVALID_PAYLOAD_SHAPE,
            )

    def check(self) -> None:
        name = self.function.name
        self._check_context()
        self._check_generated_keys()

        results = self.function.results
        if not results:
            raise self._error(f"{name}: must have one result", ErrorCodes.INVALID_RESULTS)
        if len(results) == 1:
            if results[0].type_name != ERROR_TYPE:
                raise self._error(f"{name}: result must be error", ErrorCodes.INVALID_RESULTS)
        elif len(results) == 2:
            if results[0].type_name != SQL_RESULT_TYPE:
                raise self._error(f"{name}: first result must be {SQL_RESULT_TYPE}", ErrorCodes.INVALID_RESULTS)
            if results[1].type_name != ERROR_TYPE:
                raise self._error(f"{name}: second result must be error", ErrorCodes.INVALID_RESULTS)
        else:
            raise self._error(f"{name}: must have at most two results", ErrorCodes.INVALID_RESULTS)

    def build(self, writer: BodyWriter) -> None:
        args = self._call_args()
        if len(self.function.results) == 1:
            # A named error result is already declared in the body's scope.
            named = self.function.results[0].name
            if named and named != "_":
                writer.emit(f"_, {named} = juice.ExecContext({args})")
                writer.emit(f"return {named}")
            else:
                writer.emit(f"_, err := juice.ExecContext({args})")
                writer.emit("return err")
        else:
            writer.emit(f"return juice.ExecContext({args})")


def make_body(statement: Statement, function: Function, version: ApiVersion) -> str:
    """Validate *function* against *statement* and fill in its body.

    Raises
    ------
    SignatureError
        The method shape does not fit the statement.
    ResultMapNotFoundError
        The statement names an undefined result map.
    """
    kind = BodyKind.select(statement.is_read(), version)
    if kind is BodyKind.READ_V1:
        maker: BodyMaker = ReadBodyMaker(statement, function)
    elif kind is BodyKind.READ_V2:
        maker = ReadBodyMaker(statement, function, bind_manager=True)
    elif kind is BodyKind.WRITE_V1:
        maker = WriteBodyMaker(statement, function)
    elif kind is BodyKind.WRITE_V2:
        maker = WriteBodyMaker(statement, function, bind_manager=True)
    else:
        raise InternalError(f"unhandled body kind {kind!r}")
    logger.debug("%s: %s body", statement.key, kind.value)
    return maker.make()
