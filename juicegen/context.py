"""Generation options shared by every stage of one run."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from juicegen.errors import UnsupportedVersionError

__all__ = ["ApiVersion", "GenerationContext"]


class ApiVersion(enum.Enum):
    """Target juice API flavour.

    ``v1`` implementations use the manager carried by the context; ``v2``
    implementations hold a ``juice.Manager`` and bind it to the context on
    every call.
    """

    V1 = "v1"
    V2 = "v2"

    @classmethod
    def parse(cls, text: str) -> "ApiVersion":
        value = text.strip().lower()
        if value and not value.startswith("v"):
            value = "v" + value
        for version in cls:
            if version.value == value:
                return version
        raise UnsupportedVersionError(text, hint="use v1 or v2")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class GenerationContext:
    api_version: ApiVersion
    source: str
    namespace: str
    destination: str = ""

    def __post_init__(self) -> None:
        if not self.destination:
            object.__setattr__(self, "destination", f"{self.source}Impl")

    def statement_key(self, method: str) -> str:
        return f"{self.namespace}.{method}"
