"""juicegen/registry.py – juice XML statement registry.

Loads the juice mapper configuration and exposes every SQL statement under
its fully qualified key ``<namespace>.<id>``::

    <configuration>
        <mappers>
            <mapper namespace="main.UserRepository">
                <select id="GetByID">select * from user where id = #{id}</select>
                <insert id="Create" useGeneratedKeys="true">...</insert>
            </mapper>
            <mapper resource="mappers/order.xml"/>
        </mappers>
    </configuration>

Only the statement *shape* matters here (its action and its attributes);
SQL text and dynamic tags inside a statement are never inspected.
"""

from __future__ import annotations

import enum
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from juicegen.errors import (
    ConfigError,
    ConfigNotFoundError,
    ErrorCodes,
    ResultMapNotFoundError,
    ResultMapNotSetError,
    SourceSpan,
    StatementLookupError,
)

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_CONFIG_FILES",
    "SqlAction",
    "ResultMap",
    "Statement",
    "StatementRegistry",
    "find_config",
]

# Searched in order when no configuration path is given.
DEFAULT_CONFIG_FILES = (
    "juice.xml",
    "config/juice.xml",
    "config.xml",
    "config/config.xml",
)

# Mapper children that are neither statements nor result maps but are valid.
_PASSIVE_ELEMENTS = frozenset({"sql"})


class SqlAction(enum.Enum):
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"

    def for_read(self) -> bool:
        return self is SqlAction.SELECT


@dataclass(frozen=True)
class ResultMap:
    namespace: str
    id: str

    @property
    def key(self) -> str:
        return f"{self.namespace}.{self.id}"


@dataclass(frozen=True)
class Statement:
    """One ``<select>``/``<insert>``/``<update>``/``<delete>`` element."""

    namespace: str
    id: str
    action: SqlAction
    attributes: Dict[str, str] = field(default_factory=dict, compare=False, hash=False)
    source: str = ""
    registry: Optional["StatementRegistry"] = field(
        default=None, compare=False, hash=False, repr=False
    )

    @property
    def key(self) -> str:
        return f"{self.namespace}.{self.id}"

    def attribute(self, name: str) -> str:
        """Attribute value, or ``""`` when the attribute is absent."""
        return self.attributes.get(name, "")

    def is_read(self) -> bool:
        return self.action.for_read()

    def result_map(self) -> ResultMap:
        """The result map this statement declares.

        Raises
        ------
        ResultMapNotSetError
            The statement has no ``resultMap`` attribute.
        ResultMapNotFoundError
            The attribute names a map that no mapper declares.
        """
        ref = self.attribute("resultMap")
        if not ref:
            raise ResultMapNotSetError(f"statement `{self.key}` has no resultMap")
        if self.registry is None:
            raise ResultMapNotFoundError(
                f"resultMap `{ref}` of `{self.key}` cannot be resolved",
                span=SourceSpan(file=self.source),
            )
        return self.registry.result_map(ref, self.namespace, referrer=self)


class StatementRegistry:
    """Statements and result maps keyed by ``namespace.id``."""

    def __init__(self) -> None:
        self._statements: Dict[str, Statement] = {}
        self._result_maps: Dict[str, ResultMap] = {}
        self.sources: List[str] = []

    # ─────────────────────────────────────────────────────────────────
    # Construction
    # ─────────────────────────────────────────────────────────────────

    @classmethod
    def load(cls, path: Union[str, Path]) -> "StatementRegistry":
        """Load a configuration file and every mapper it includes."""
        registry = cls()
        registry._load_file(Path(path), stack=())
        logger.debug(
            "loaded %d statement(s) from %s", len(registry), ", ".join(registry.sources)
        )
        return registry

    @classmethod
    def from_string(
        cls,
        xml: str,
        path: str = "<string>",
        base_dir: Union[str, Path, None] = None,
    ) -> "StatementRegistry":
        """Build a registry from XML text; includes resolve against *base_dir*."""
        registry = cls()
        root = _parse_xml(xml, path)
        base = Path(base_dir) if base_dir is not None else Path.cwd()
        registry.sources.append(path)
        registry._load_root(root, path, base, stack=(path,))
        return registry

    def _load_file(self, path: Path, stack: tuple) -> None:
        resolved = str(path.resolve())
        if resolved in stack:
            raise ConfigError(
                f"mapper include cycle: {' -> '.join(stack + (resolved,))}",
                span=SourceSpan(file=str(path)),
            )
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise ConfigError(
                f"cannot read {path}: {exc.strerror or exc}",
                span=SourceSpan(file=str(path)),
            ) from exc
        self.sources.append(str(path))
        root = _parse_xml(data, str(path))
        self._load_root(root, str(path), path.parent, stack + (resolved,))

    def _load_root(self, root: ET.Element, path: str, base: Path, stack: tuple) -> None:
        if root.tag == "configuration":
            for mappers in root.findall("mappers"):
                self._load_mappers(mappers, path, base, stack)
        elif root.tag == "mappers":
            self._load_mappers(root, path, base, stack)
        elif root.tag == "mapper":
            self._load_mapper(root, path, base, stack)
        else:
            raise ConfigError(
                f"unexpected root element <{root.tag}>",
                span=SourceSpan(file=path),
                hint="expected <configuration>, <mappers> or <mapper>",
            )

    def _load_mappers(self, mappers: ET.Element, path: str, base: Path, stack: tuple) -> None:
        for mapper in mappers:
            if mapper.tag != "mapper":
                raise ConfigError(
                    f"unknown element <{mapper.tag}> in <mappers>",
                    span=SourceSpan(file=path),
                )
            self._load_mapper(mapper, path, base, stack)

    def _load_mapper(self, mapper: ET.Element, path: str, base: Path, stack: tuple) -> None:
        resource = mapper.get("resource")
        if resource:
            self._load_file(base / resource, stack)
            return

        namespace = mapper.get("namespace", "").strip()
        if not namespace:
            raise ConfigError(
                "mapper namespace is required",
                span=SourceSpan(file=path),
            )

        for child in mapper:
            tag = child.tag
            if tag in _PASSIVE_ELEMENTS:
                continue
            ident = child.get("id", "").strip()
            if tag == "resultMap":
                if not ident:
                    raise ConfigError(
                        f"resultMap without id in mapper {namespace}",
                        span=SourceSpan(file=path),
                    )
                result_map = ResultMap(namespace, ident)
                if result_map.key in self._result_maps:
                    raise ConfigError(
                        f"resultMap `{result_map.key}` already exists",
                        code=ErrorCodes.DUPLICATE_STATEMENT,
                        span=SourceSpan(file=path),
                    )
                self._result_maps[result_map.key] = result_map
                continue
            try:
                action = SqlAction(tag)
            except ValueError:
                raise ConfigError(
                    f"unknown element <{tag}> in mapper {namespace}",
                    span=SourceSpan(file=path),
                ) from None
            if not ident:
                raise ConfigError(
                    f"<{tag}> without id in mapper {namespace}",
                    span=SourceSpan(file=path),
                )
            self._add(
                Statement(
                    namespace=namespace,
                    id=ident,
                    action=action,
                    attributes=dict(child.attrib),
                    source=path,
                    registry=self,
                )
            )

    def _add(self, statement: Statement) -> None:
        if statement.key in self._statements:
            raise ConfigError(
                f"statement `{statement.key}` already exists",
                code=ErrorCodes.DUPLICATE_STATEMENT,
                span=SourceSpan(file=statement.source),
            ).add_note(f"first defined in {self._statements[statement.key].source}")
        self._statements[statement.key] = statement

    # ─────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────

    def lookup(self, key: str) -> Statement:
        try:
            return self._statements[key]
        except KeyError:
            raise StatementLookupError(key) from None

    def result_map(
        self,
        ref: str,
        namespace: str,
        referrer: Optional[Statement] = None,
    ) -> ResultMap:
        """Resolve *ref* first inside *namespace*, then as a qualified key."""
        for key in (f"{namespace}.{ref}", ref):
            if key in self._result_maps:
                return self._result_maps[key]
        where = f" of `{referrer.key}`" if referrer is not None else ""
        raise ResultMapNotFoundError(
            f"resultMap `{ref}`{where} is not defined",
            span=SourceSpan(file=referrer.source) if referrer is not None else None,
        )

    def keys(self) -> List[str]:
        return list(self._statements)

    def __contains__(self, key: object) -> bool:
        return key in self._statements

    def __iter__(self) -> Iterator[Statement]:
        return iter(self._statements.values())

    def __len__(self) -> int:
        return len(self._statements)


def _parse_xml(text: Union[str, bytes], path: str) -> ET.Element:
    try:
        return ET.fromstring(text)
    except ET.ParseError as exc:
        line, column = getattr(exc, "position", (0, 0))
        raise ConfigError(
            f"malformed XML: {exc}",
            span=SourceSpan(file=path, line=line, column=column + 1),
        ) from exc


def find_config(directory: Union[str, Path] = ".") -> Path:
    """First existing default configuration file under *directory*."""
    root = Path(directory)
    for candidate in DEFAULT_CONFIG_FILES:
        path = root / candidate
        if path.is_file():
            logger.debug("using configuration %s", path)
            return path
    raise ConfigNotFoundError(list(DEFAULT_CONFIG_FILES))
