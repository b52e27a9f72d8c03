"""juicegen/namespace.py – statement namespace auto-completion.

Mapper namespaces are conventionally the Go import path of the package that
declares the interface, dot-separated, followed by the interface name::

    module github.com/acme/shop          (go.mod at /src/shop)
    /src/shop/internal/repo/user.go      declares UserRepository

    → github.com.acme.shop.internal.repo.UserRepository

Interfaces declared in package ``main`` use ``main.<TypeName>``.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Tuple, Union

from juicegen.errors import NamespaceError, SourceSpan
from juicegen.parser import find_interface

logger = logging.getLogger(__name__)

__all__ = ["find_module", "autocomplete"]

_MODULE_RE = re.compile(r'^\s*module\s+(?:"([^"]+)"|(\S+))', re.MULTILINE)


def find_module(directory: Union[str, Path]) -> Tuple[Path, str]:
    """Nearest ``go.mod`` at or above *directory*: ``(module root, module path)``."""
    start = Path(directory).resolve()
    for root in (start, *start.parents):
        gomod = root / "go.mod"
        if not gomod.is_file():
            continue
        text = re.sub(r"//[^\n]*", "", gomod.read_text(encoding="utf-8"))
        match = _MODULE_RE.search(text)
        if match is None:
            raise NamespaceError(
                "go.mod has no module directive",
                span=SourceSpan(file=str(gomod)),
            )
        return root, match.group(1) or match.group(2)
    raise NamespaceError(
        f"go.mod not found in {start} or any parent directory",
        hint="pass --namespace explicitly",
    )


def autocomplete(type_name: str, directory: Union[str, Path] = ".") -> str:
    """Derive the mapper namespace of the interface *type_name*."""
    iface = find_interface(directory, type_name)
    if iface.package() == "main":
        namespace = f"main.{type_name}"
    else:
        root, module = find_module(directory)
        relative = Path(directory).resolve().relative_to(root).as_posix()
        path = module if relative == "." else f"{module}/{relative}"
        namespace = f"{path.replace('/', '.')}.{type_name}"
    logger.debug("namespace of %s: %s", type_name, namespace)
    return namespace
