"""Symbols, reference edges and violations of the analyzed codebase."""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterable, Optional, Tuple


class SymbolKind(str, Enum):
    """Kinds of declared symbols under analysis."""
    CLASS = "class"
    METHOD = "method"

    @property
    def plural(self) -> str:
        return "classes" if self is SymbolKind.CLASS else "methods"


class Origin(str, Enum):
    """Where the importer found a symbol."""
    SOURCE = "source"
    TEST = "test"
    ARCHIVE = "archive"


_COMMA = re.compile(r"\s*,\s*")


def canonical_identity(identity: str) -> str:
    """Normalize spacing in a method identity (``a.B.m(x,y)`` -> ``a.B.m(x, y)``)."""
    identity = identity.strip()
    if "(" not in identity:
        return identity
    head, _, params = identity.partition("(")
    params = params.rstrip(")").strip()
    if not params:
        return f"{head.strip()}()"
    return f"{head.strip()}({_COMMA.sub(', ', params)})"


@dataclass(frozen=True)
class SourceLocation:
    """Declared location of a symbol. Best effort: file may be empty, line 0."""
    file: str = ""
    line: int = 0

    def __str__(self) -> str:
        return f"({self.file}:{self.line})"


@dataclass(frozen=True)
class Symbol:
    """A declared class or method.

    Methods carry their owning class in ``owner`` and their simple name in
    ``name``; classes carry their fully qualified name in ``name``.
    """
    name: str
    kind: SymbolKind
    owner: Optional[str] = None
    parameters: Tuple[str, ...] = ()
    location: SourceLocation = field(default_factory=SourceLocation)
    tags: FrozenSet[str] = frozenset()
    origin: Origin = Origin.SOURCE
    is_interface: bool = False

    def __post_init__(self):
        # Accept any iterable for tags/parameters but store hashable values
        object.__setattr__(self, "tags", frozenset(self.tags))
        object.__setattr__(self, "parameters", tuple(self.parameters))

    @classmethod
    def class_(cls, name: str, tags: Iterable[str] = (), file: str = "", line: int = 0,
               origin: Origin = Origin.SOURCE, is_interface: bool = False) -> "Symbol":
        return cls(name=name, kind=SymbolKind.CLASS, location=SourceLocation(file, line),
                   tags=frozenset(tags), origin=origin, is_interface=is_interface)

    @classmethod
    def method(cls, owner: str, name: str, parameters: Iterable[str] = (), tags: Iterable[str] = (),
               file: str = "", line: int = 0, origin: Origin = Origin.SOURCE) -> "Symbol":
        return cls(name=name, kind=SymbolKind.METHOD, owner=owner, parameters=tuple(parameters),
                   location=SourceLocation(file, line), tags=frozenset(tags), origin=origin)

    @property
    def is_class(self) -> bool:
        return self.kind is SymbolKind.CLASS

    @property
    def is_method(self) -> bool:
        return self.kind is SymbolKind.METHOD

    @property
    def class_name(self) -> str:
        """Fully qualified name of the class this symbol belongs to."""
        return self.name if self.is_class else self.owner

    @property
    def simple_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]

    @property
    def identity(self) -> str:
        """Stable identity used for ordering and baselines."""
        if self.is_class:
            return self.name
        return f"{self.owner}.{self.name}({', '.join(self.parameters)})"

    @property
    def description(self) -> str:
        label = "Class" if self.is_class else "Method"
        return f"{label} <{self.identity}>"

    def __str__(self) -> str:
        return self.identity


@dataclass(frozen=True)
class ReferenceEdge:
    """``source`` accesses ``target``."""
    source: Symbol
    target: Symbol

    @property
    def is_self_reference(self) -> bool:
        return self.source == self.target


@dataclass(frozen=True)
class Violation:
    """An unreferenced, non-exempt symbol and its report line."""
    symbol: Symbol
    message: str

    @property
    def identity(self) -> str:
        return self.symbol.identity


def sort_violations(violations: Iterable[Violation]) -> list:
    """Deterministic report order: by identity, ascending."""
    return sorted(violations, key=lambda v: v.identity)
