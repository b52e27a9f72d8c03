# juicegen/errors.py
"""
juicegen Error Types

Exception hierarchy for the generator pipeline. Every error carries a
structured :class:`ErrorCode`, an optional :class:`SourceSpan` and an optional
hint so the command line can print a compiler-style message.

Error Hierarchy:
────────────────
┌─────────────────────────────────────────────────────────────────────────────┐
│  JuiceGenError (base)                                                       │
│  ├── GoParseError             - Go source could not be read                 │
│  │   ├── TypeNotFoundError    - requested type is not declared              │
│  │   └── NotAnInterfaceError  - requested type is not an interface          │
│  ├── ConfigError              - XML configuration is unusable               │
│  │   ├── ConfigNotFoundError  - no configuration file could be located      │
│  │   └── ResultMapNotFoundError - resultMap refers to an undefined map      │
│  ├── ResultMapNotSetError     - statement declares no resultMap (expected)  │
│  ├── StatementLookupError     - no statement registered for a key           │
│  ├── SignatureError           - method shape does not fit the statement     │
│  ├── UnsupportedVersionError  - unknown API version                         │
│  ├── FormatError              - generated text failed canonicalisation      │
│  ├── NamespaceError           - namespace could not be auto-completed       │
│  └── InternalError            - generator bugs (should never happen)        │
└─────────────────────────────────────────────────────────────────────────────┘

Error Codes:
────────────
Codes follow the pattern JGEN-NNNN:
  - 1000-1999: Go source errors
  - 2000-2999: Configuration errors
  - 3000-3999: Statement lookup errors
  - 4000-4999: Signature errors
  - 5000-5999: Generation context errors
  - 6000-6999: Formatting errors
  - 9000-9999: Internal errors
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from typing import Any, Dict, List, Optional


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR CLASSIFICATION
# ═══════════════════════════════════════════════════════════════════════════════

@unique
class ErrorPhase(Enum):
    """Pipeline phase where the error occurred."""

    SOURCE = "source"          # Reading the Go interface
    CONFIG = "config"          # Loading the XML statements
    LOOKUP = "lookup"          # Matching methods to statements
    SIGNATURE = "signature"    # Validating method shapes
    CONTEXT = "context"        # Generation options
    FORMAT = "format"          # Canonicalising the output
    INTERNAL = "internal"      # Generator internals


class ErrorCode:
    """
    Structured error code of the form ``JGEN-NNNN``.
    """

    __slots__ = ("prefix", "number", "phase")

    def __init__(self, prefix: str, number: int, phase: ErrorPhase) -> None:
        self.prefix = prefix
        self.number = number
        self.phase = phase

    @property
    def code(self) -> str:
        """Get the full error code string."""
        return f"{self.prefix}-{self.number:04d}"

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"ErrorCode({self.code!r}, {self.phase.name})"

    def __hash__(self) -> int:
        return hash((self.prefix, self.number))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorCode):
            return self.prefix == other.prefix and self.number == other.number
        if isinstance(other, str):
            return self.code == other
        return False


class ErrorCodes:
    """Predefined error codes."""

    # Go source (1000-1999)
    GO_SYNTAX = ErrorCode("JGEN", 1000, ErrorPhase.SOURCE)
    TYPE_NOT_FOUND = ErrorCode("JGEN", 1001, ErrorPhase.SOURCE)
    NOT_AN_INTERFACE = ErrorCode("JGEN", 1002, ErrorPhase.SOURCE)
    UNSUPPORTED_INTERFACE = ErrorCode("JGEN", 1003, ErrorPhase.SOURCE)

    # Configuration (2000-2999)
    CONFIG_INVALID = ErrorCode("JGEN", 2000, ErrorPhase.CONFIG)
    CONFIG_NOT_FOUND = ErrorCode("JGEN", 2001, ErrorPhase.CONFIG)
    DUPLICATE_STATEMENT = ErrorCode("JGEN", 2002, ErrorPhase.CONFIG)
    RESULT_MAP_NOT_SET = ErrorCode("JGEN", 2003, ErrorPhase.CONFIG)
    RESULT_MAP_NOT_FOUND = ErrorCode("JGEN", 2004, ErrorPhase.CONFIG)

    # Lookup (3000-3999)
    STATEMENT_NOT_FOUND = ErrorCode("JGEN", 3000, ErrorPhase.LOOKUP)
    NAMESPACE_UNRESOLVED = ErrorCode("JGEN", 3001, ErrorPhase.LOOKUP)

    # Signature (4000-4999)
    INVALID_PARAMS = ErrorCode("JGEN", 4000, ErrorPhase.SIGNATURE)
    INVALID_RESULTS = ErrorCode("JGEN", 4001, ErrorPhase.SIGNATURE)
    INVALID_PAYLOAD_SHAPE = ErrorCode("JGEN", 4002, ErrorPhase.SIGNATURE)

    # Context (5000-5999)
    UNSUPPORTED_VERSION = ErrorCode("JGEN", 5000, ErrorPhase.CONTEXT)

    # Format (6000-6999)
    FORMAT_FAILED = ErrorCode("JGEN", 6000, ErrorPhase.FORMAT)

    # Internal (9000-9999)
    INTERNAL_ERROR = ErrorCode("JGEN", 9000, ErrorPhase.INTERNAL)


# ═══════════════════════════════════════════════════════════════════════════════
# SOURCE LOCATION
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SourceSpan:
    """A position inside a Go or XML input file."""

    file: str = ""
    line: int = 0
    column: int = 0

    @classmethod
    def from_offset(cls, text: str, offset: int, file: str = "") -> "SourceSpan":
        """Translate a character offset into a 1-based line/column span."""
        offset = max(0, min(offset, len(text)))
        line = text.count("\n", 0, offset) + 1
        column = offset - (text.rfind("\n", 0, offset) + 1) + 1
        return cls(file=file, line=line, column=column)

    def __str__(self) -> str:
        if not self.file and self.line == 0:
            return "<unknown location>"

        parts = []
        if self.file:
            parts.append(self.file)
        if self.line > 0:
            parts.append(str(self.line))
            if self.column > 0:
                parts.append(str(self.column))

        return ":".join(parts)


@dataclass
class ErrorNote:
    """Additional note attached to an error."""

    message: str
    label: str = "note"

    def __str__(self) -> str:
        return f"{self.label}: {self.message}" if self.label else self.message


# ═══════════════════════════════════════════════════════════════════════════════
# EXCEPTION CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class JuiceGenError(Exception):
    """
    Base exception for all generator errors.

    Carries the structured information needed to print a GCC-style
    diagnostic: ``file:line:col: error: message [JGEN-NNNN]``.
    """

    default_code: ErrorCode = ErrorCodes.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        span: Optional[SourceSpan] = None,
        hint: str = "",
        notes: Optional[List[ErrorNote]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.span = span
        self.hint = hint
        self.notes: List[ErrorNote] = list(notes or [])

    def add_note(self, message: str, label: str = "note") -> "JuiceGenError":
        """Add a note to this error."""
        self.notes.append(ErrorNote(message=message, label=label))
        return self

    def with_hint(self, hint: str) -> "JuiceGenError":
        """Add a hint to this error."""
        self.hint = hint
        return self

    def to_gcc_format(self) -> str:
        """Format as a GCC-style error message."""
        main = f"error: {self.message} [{self.code}]"
        if self.span is not None:
            main = f"{self.span}: {main}"
        lines = [main]
        lines.extend(str(note) for note in self.notes)
        if self.hint:
            lines.append(f"hint: {self.hint}")
        return "\n".join(lines)

    def to_json(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        return {
            "code": self.code.code,
            "phase": self.code.phase.value,
            "message": self.message,
            "location": str(self.span) if self.span else None,
            "notes": [str(note) for note in self.notes],
            "hint": self.hint,
        }

    def __str__(self) -> str:
        return self.to_gcc_format()


# ───────────────────────────────────────────────────────────────────────────────
# GO SOURCE ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class GoParseError(JuiceGenError):
    """Go source could not be parsed."""

    default_code = ErrorCodes.GO_SYNTAX


class TypeNotFoundError(GoParseError):
    """The requested type is not declared in the scanned sources."""

    default_code = ErrorCodes.TYPE_NOT_FOUND

    def __init__(self, type_name: str, **kwargs: Any) -> None:
        super().__init__(f"can not find type {type_name}", **kwargs)
        self.type_name = type_name


class NotAnInterfaceError(GoParseError):
    """The requested type exists but is not an interface."""

    default_code = ErrorCodes.NOT_AN_INTERFACE

    def __init__(self, type_name: str, **kwargs: Any) -> None:
        super().__init__(f"{type_name} is not an interface", **kwargs)
        self.type_name = type_name


# ───────────────────────────────────────────────────────────────────────────────
# CONFIGURATION ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class ConfigError(JuiceGenError):
    """The XML statement configuration is unusable."""

    default_code = ErrorCodes.CONFIG_INVALID


class ConfigNotFoundError(ConfigError):
    """No configuration file exists at any of the candidate paths."""

    default_code = ErrorCodes.CONFIG_NOT_FOUND

    def __init__(self, candidates: List[str], **kwargs: Any) -> None:
        super().__init__("|".join(candidates) + " not found", **kwargs)
        self.candidates = list(candidates)


class ResultMapNotFoundError(ConfigError):
    """A statement names a resultMap that no mapper declares."""

    default_code = ErrorCodes.RESULT_MAP_NOT_FOUND


class ResultMapNotSetError(JuiceGenError):
    """The statement declares no resultMap.

    This is an expected condition: the read path uses it to pick the
    list-loading template.
    """

    default_code = ErrorCodes.RESULT_MAP_NOT_SET


# ───────────────────────────────────────────────────────────────────────────────
# GENERATION ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class StatementLookupError(JuiceGenError):
    """No statement is registered under the requested key."""

    default_code = ErrorCodes.STATEMENT_NOT_FOUND

    def __init__(self, key: str, **kwargs: Any) -> None:
        super().__init__(f"statement `{key}` not found", **kwargs)
        self.key = key


class SignatureError(JuiceGenError):
    """A method signature does not satisfy its statement's contract."""

    default_code = ErrorCodes.INVALID_PARAMS

    def __init__(
        self,
        message: str,
        method: str = "",
        statement: str = "",
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.method = method
        self.statement = statement


class UnsupportedVersionError(JuiceGenError):
    """The requested API version is not recognised."""

    default_code = ErrorCodes.UNSUPPORTED_VERSION

    def __init__(self, version: str, **kwargs: Any) -> None:
        super().__init__(f"unsupported version: {version}", **kwargs)
        self.version = version


class FormatError(JuiceGenError):
    """Generated text could not be canonicalised."""

    default_code = ErrorCodes.FORMAT_FAILED


class NamespaceError(JuiceGenError):
    """The statement namespace could not be derived."""

    default_code = ErrorCodes.NAMESPACE_UNRESOLVED


class InternalError(JuiceGenError):
    """Generator bug."""

    default_code = ErrorCodes.INTERNAL_ERROR


__all__ = [
    "ErrorPhase",
    "ErrorCode",
    "ErrorCodes",
    "SourceSpan",
    "ErrorNote",
    "JuiceGenError",
    "GoParseError",
    "TypeNotFoundError",
    "NotAnInterfaceError",
    "ConfigError",
    "ConfigNotFoundError",
    "ResultMapNotFoundError",
    "ResultMapNotSetError",
    "StatementLookupError",
    "SignatureError",
    "UnsupportedVersionError",
    "FormatError",
    "NamespaceError",
    "InternalError",
]
