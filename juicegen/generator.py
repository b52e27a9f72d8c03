"""Generator facade: renders an implementation into a readable buffer."""

from __future__ import annotations

import io
import logging
from typing import TextIO

from juicegen.impl import Implementation

logger = logging.getLogger(__name__)

__all__ = ["Generator"]


class Generator:
    def __init__(self, implementation: Implementation) -> None:
        self.implementation = implementation

    def generate(self) -> io.StringIO:
        """Render the whole unit; nothing is returned if any step fails."""
        return io.StringIO(self.implementation.render())

    def write_to(self, stream: TextIO) -> int:
        """Copy the generated source into *stream*; returns characters written."""
        data = self.generate().read()
        stream.write(data)
        stream.flush()
        logger.debug("wrote %d character(s)", len(data))
        return len(data)
