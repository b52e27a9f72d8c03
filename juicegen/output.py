"""Output sinks."""

from __future__ import annotations

import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, TextIO

__all__ = ["open_output"]


@contextmanager
def open_output(dest: Optional[str]) -> Iterator[TextIO]:
    """Yield a writable text stream.

    *dest* ``None`` or ``"-"`` → ``sys.stdout``, which is left open;
    otherwise the file is created or truncated (parent directories as
    needed) and closed when the block exits, even on failure.
    """
    if dest is None or dest == "-":
        yield sys.stdout
        return
    p = Path(dest).expanduser()
    p.parent.mkdir(parents=True, exist_ok=True)
    stream = open(p, "w", encoding="utf-8", newline="\n")
    try:
        yield stream
    finally:
        stream.close()
