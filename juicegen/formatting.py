"""juicegen/formatting.py – argument bundles and source canonicalisation.

``format_params``
    Renders the parameter bundle passed to a juice entry point.

``format_code``
    Brings generated Go text into the canonical gofmt layout for the subset
    of Go this package emits: tab indentation by bracket nesting, no trailing
    whitespace, at most one blank line in a row, none directly inside a block,
    exactly one trailing newline.  The operation is idempotent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from juicegen.errors import FormatError, SourceSpan
from juicegen.goast import Param

logger = logging.getLogger(__name__)

__all__ = ["format_params", "format_code"]

_OPENERS = {"{": "}", "(": ")", "[": "]"}
_CLOSERS = frozenset(_OPENERS.values())


# ═══════════════════════════════════════════════════════════════════
#  ARGUMENT BUNDLES
# ═══════════════════════════════════════════════════════════════════

def _entry(param: Param) -> str:
    return f'"{param.name}": {param.name}'


def format_params(params: Sequence[Param]) -> str:
    """The value handed to juice for *params* (the leading context excluded).

    * no payload → ``nil``
    * one scalar, slice, array or variadic payload → ``juice.H{"id": id}``
    * one other payload (struct, pointer, map) → passed through by name
    * several payloads → ``juice.H`` in declaration order
    """
    if len(params) < 2:
        return "nil"
    if len(params) == 2:
        payload = params[1]
        if payload.is_builtin() or payload.type.is_array_like():
            return "juice.H{" + _entry(payload) + "}"
        return payload.name
    return "juice.H{" + ", ".join(_entry(p) for p in params[1:]) + "}"


# ═══════════════════════════════════════════════════════════════════
#  CANONICAL LAYOUT
# ═══════════════════════════════════════════════════════════════════

@dataclass
class _Line:
    text: str
    verbatim: bool = False
    opens: bool = False
    closes: bool = False

    @property
    def blank(self) -> bool:
        return not self.verbatim and not self.text


class _Scanner:
    """Tracks bracket nesting and multi-line literals across lines."""

    def __init__(self) -> None:
        self.stack: List[tuple] = []   # (closer, indent of opening line, line number)
        self.pending: Optional[str] = None  # "`" or "*/" while inside a multi-line token
        self.pending_line = 0

    def level(self) -> int:
        return self.stack[-1][1] + 1 if self.stack else 0

    def _fail(self, message: str, lineno: int, column: int) -> FormatError:
        return FormatError(message, span=SourceSpan(file="<generated>", line=lineno, column=column))

    def _close(self, ch: str, lineno: int, column: int) -> int:
        if not self.stack:
            raise self._fail(f"unbalanced {ch!r}", lineno, column)
        closer, indent, _ = self.stack.pop()
        if closer != ch:
            raise self._fail(f"mismatched {ch!r}, expected {closer!r}", lineno, column)
        return indent

    def _skip_pending(self, raw: str) -> int:
        """Consume the tail of a multi-line token; return where code resumes."""
        end = raw.find(self.pending)
        if end < 0:
            return -1
        resume = end + len(self.pending)
        self.pending = None
        return resume

    def feed(self, raw: str, lineno: int) -> _Line:
        if self.pending is not None:
            resume = self._skip_pending(raw)
            if resume < 0:
                return _Line(raw, verbatim=True)
            head, tail = raw[:resume], raw[resume:]
            rest = self._scan(tail, lineno, self.level(), offset=resume)
            return _Line((head + rest.text).rstrip(), verbatim=True, opens=rest.opens)

        text = raw.strip()
        indent = self.level()
        i = 0
        closes = False
        # Leading closers dedent the line to the indent of their opener.
        while i < len(text) and text[i] in _CLOSERS:
            indent = self._close(text[i], lineno, i + 1)
            closes = True
            i += 1
            while i < len(text) and text[i] in " \t":
                i += 1
        line = self._scan(text[i:], lineno, indent, offset=i)
        prefix = "\t" * indent if text else ""
        return _Line(prefix + text[:i] + line.text, opens=line.opens, closes=closes)

    def _scan(self, text: str, lineno: int, indent: int, offset: int) -> _Line:
        i = 0
        last = ""
        n = len(text)
        while i < n:
            ch = text[i]
            if ch in "\"'":
                end = i + 1
                while end < n and text[end] != ch:
                    end += 2 if text[end] == "\\" else 1
                if end >= n:
                    raise self._fail("unterminated literal", lineno, offset + i + 1)
                i = end + 1
                last = ch
                continue
            if ch == "`":
                end = text.find("`", i + 1)
                if end < 0:
                    self.pending = "`"
                    self.pending_line = lineno
                    return _Line(text.rstrip(), opens=False)
                i = end + 1
                last = ch
                continue
            if text.startswith("//", i):
                break
            if text.startswith("/*", i):
                end = text.find("*/", i + 2)
                if end < 0:
                    self.pending = "*/"
                    self.pending_line = lineno
                    return _Line(text.rstrip(), opens=last in _OPENERS)
                i = end + 2
                continue
            if ch in _OPENERS:
                self.stack.append((_OPENERS[ch], indent, lineno))
            elif ch in _CLOSERS:
                self._close(ch, lineno, offset + i + 1)
            if not ch.isspace():
                last = ch
            i += 1
        return _Line(text.rstrip(), opens=last in _OPENERS)

    def finish(self) -> None:
        if self.pending is not None:
            what = "raw string" if self.pending == "`" else "block comment"
            raise self._fail(f"unterminated {what}", self.pending_line, 1)
        if self.stack:
            closer, _, lineno = self.stack[-1]
            raise self._fail(f"missing {closer!r}", lineno, 1)


def format_code(text: str) -> str:
    """Return *text* in canonical layout.

    Raises
    ------
    FormatError
        Delimiters are unbalanced or mismatched, or a literal is unterminated.
    """
    scanner = _Scanner()
    lines = [
        scanner.feed(raw, lineno)
        for lineno, raw in enumerate(text.replace("\r\n", "\n").split("\n"), 1)
    ]
    scanner.finish()

    out: List[_Line] = []
    for line in lines:
        if line.blank:
            if not out or out[-1].blank or out[-1].opens:
                continue
        elif line.closes and out and out[-1].blank:
            out.pop()
        out.append(line)
    while out and out[-1].blank:
        out.pop()

    result = "\n".join(line.text for line in out) + "\n"
    logger.debug("formatted %d line(s)", len(out))
    return result
