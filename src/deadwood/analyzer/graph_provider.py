"""Symbol graph provider backed by NetworkX.

Reads the graph document written by a bytecode/source importer and exposes the
read-only query interface the detector works against:

- ``list_symbols(kind)``: declared classes and methods in the import scope
- ``list_accesses(symbol)``: incoming and outgoing reference edges
- ``list_inheritance(class_symbol)``: superclasses and interfaces
- ``list_direct_type_dependents(class_symbol)``: classes using it as a type

The graph is built completely before any query runs and never changes after.
"""
import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Tuple

import networkx as nx

from ..errors import ImportFailure
from .inheritance import InheritanceMap
from .symbols import Origin, ReferenceEdge, Symbol, SymbolKind, canonical_identity

logger = logging.getLogger(__name__)

GRAPH_FORMAT = 1

# Edge kinds stored on the MultiDiGraph
ACCESS = "access"
DEPENDENCY = "dependency"

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


@dataclass(frozen=True)
class ImportOptions:
    """Which imported symbols take part in the analysis."""
    include_tests: bool = False
    include_archives: bool = False
    packages: Tuple[str, ...] = ()

    def includes(self, symbol: Symbol) -> bool:
        if symbol.origin is Origin.TEST and not self.include_tests:
            return False
        if symbol.origin is Origin.ARCHIVE and not self.include_archives:
            return False
        if self.packages:
            class_name = symbol.class_name
            return any(class_name == package or class_name.startswith(package + ".")
                       for package in self.packages)
        return True


@dataclass(frozen=True)
class Accesses:
    incoming: FrozenSet[ReferenceEdge]
    outgoing: FrozenSet[ReferenceEdge]


@dataclass(frozen=True)
class Inheritance:
    superclasses: Tuple[Symbol, ...]
    interfaces: FrozenSet[Symbol]


class SymbolGraph:
    """Directed graph of symbols with access and type-dependency edges.

    Nodes are symbol identities carrying the ``Symbol`` as the ``symbol``
    attribute. Edges carry ``kind`` (``access`` or ``dependency``).
    Symbols outside the import scope stay in the graph so supertypes from
    libraries can still be resolved, but they never appear as candidates
    and their edges never count as references.
    """

    def __init__(self, options: Optional[ImportOptions] = None):
        self.options = options or ImportOptions()
        self.graph = nx.MultiDiGraph()
        self.inheritance = InheritanceMap()
        self._members: Dict[str, List[Symbol]] = {}

    # --- Construction -----------------------------------------------------

    def add_symbol(self, symbol: Symbol):
        self.graph.add_node(symbol.identity, symbol=symbol)
        if symbol.is_method:
            self._members.setdefault(symbol.owner, []).append(symbol)
            self.inheritance.add_method(symbol)

    def add_edge(self, source: str, target: str, kind: str = ACCESS) -> bool:
        """Connect two known symbols; unknown endpoints are skipped.

        Returns:
            True if the edge was added
        """
        source, target = canonical_identity(source), canonical_identity(target)
        if source not in self.graph or target not in self.graph:
            logger.debug("Skipping %s edge to unknown symbol: %s -> %s", kind, source, target)
            return False
        self.graph.add_edge(source, target, kind=kind)
        return True

    @classmethod
    def from_document(cls, data: dict, options: Optional[ImportOptions] = None,
                      source: Optional[Path] = None) -> "SymbolGraph":
        """Build a graph from a parsed graph document.

        Raises:
            ImportFailure: If the document is not a valid graph document
        """
        if not isinstance(data, dict):
            raise ImportFailure(f"Graph document must be an object, got {type(data).__name__}", source)
        if data.get("format", GRAPH_FORMAT) != GRAPH_FORMAT:
            raise ImportFailure(f"Unsupported graph format: {data.get('format')!r}", source)
        classes = data.get("classes", [])
        if not isinstance(classes, list):
            raise ImportFailure("'classes' must be a list", source)

        symbol_graph = cls(options)
        records = [_parse_class(record, index, source) for index, record in enumerate(classes)]

        # Pass 1: every declared symbol becomes a node
        for class_symbol, class_record, methods in records:
            if class_symbol.identity in symbol_graph.graph:
                raise ImportFailure(f"Duplicate class: {class_symbol.identity}", source)
            symbol_graph.add_symbol(class_symbol)
            symbol_graph.inheritance.add_class(
                class_symbol.name,
                _string_list(class_record, "superclasses", source),
                _string_list(class_record, "interfaces", source),
            )
            for method_symbol, _ in methods:
                if method_symbol.identity in symbol_graph.graph:
                    raise ImportFailure(f"Duplicate method: {method_symbol.identity}", source)
                symbol_graph.add_symbol(method_symbol)

        # Pass 2: edges, now that every endpoint is known
        for class_symbol, class_record, methods in records:
            owner = class_symbol.identity
            for target in _string_list(class_record, "accesses", source):
                symbol_graph.add_edge(owner, target, ACCESS)
            for target in _string_list(class_record, "dependencies", source):
                symbol_graph.add_edge(owner, target, DEPENDENCY)
            for supertype in (symbol_graph.inheritance.superclasses[owner]
                              + symbol_graph.inheritance.interfaces[owner]):
                symbol_graph.add_edge(owner, supertype, DEPENDENCY)

            for method_symbol, method_record in methods:
                for target in _string_list(method_record, "accesses", source):
                    symbol_graph.add_edge(method_symbol.identity, target, ACCESS)
                # Signature types are structural dependencies of the owning class
                signature = list(method_symbol.parameters)
                if isinstance(method_record.get("returns"), str):
                    signature.append(method_record["returns"])
                for type_name in signature:
                    if type_name != owner:
                        symbol_graph.add_edge(owner, type_name, DEPENDENCY)

        logger.info("Imported %d symbols and %d edges",
                    symbol_graph.graph.number_of_nodes(), symbol_graph.graph.number_of_edges())
        return symbol_graph

    # --- Queries ----------------------------------------------------------

    def __contains__(self, identity: str) -> bool:
        return canonical_identity(identity) in self.graph

    def __len__(self) -> int:
        return self.graph.number_of_nodes()

    def get(self, identity: str) -> Optional[Symbol]:
        identity = canonical_identity(identity)
        if identity not in self.graph:
            return None
        return self.graph.nodes[identity]["symbol"]

    def in_scope(self, symbol: Symbol) -> bool:
        return self.options.includes(symbol)

    def list_symbols(self, kind: Optional[SymbolKind] = None) -> List[Symbol]:
        """Symbols in the import scope, optionally of one kind, sorted by identity."""
        symbols = [
            data["symbol"] for _, data in self.graph.nodes(data=True)
            if (kind is None or data["symbol"].kind is kind) and self.in_scope(data["symbol"])
        ]
        return sorted(symbols, key=lambda symbol: symbol.identity)

    def list_members(self, class_symbol: Symbol) -> List[Symbol]:
        """Methods declared by a class, sorted by identity."""
        return sorted(self._members.get(class_symbol.name, []), key=lambda symbol: symbol.identity)

    def list_accesses(self, symbol: Symbol) -> Accesses:
        """Reference edges touching a symbol.

        For a class, edges to or from any of its declared methods are
        included as well.
        """
        nodes = [symbol.identity]
        if symbol.is_class:
            nodes.extend(member.identity for member in self.list_members(symbol))

        incoming = set()
        outgoing = set()
        for node in nodes:
            for source, _, kind in self.graph.in_edges(node, data="kind"):
                if kind == ACCESS:
                    edge = self._edge(source, node)
                    if edge is not None:
                        incoming.add(edge)
            for _, target, kind in self.graph.out_edges(node, data="kind"):
                if kind == ACCESS:
                    edge = self._edge(node, target)
                    if edge is not None:
                        outgoing.add(edge)
        return Accesses(incoming=frozenset(incoming), outgoing=frozenset(outgoing))

    def list_direct_type_dependents(self, class_symbol: Symbol) -> FrozenSet[Symbol]:
        """In-scope classes holding a structural dependency on ``class_symbol``."""
        dependents = set()
        for source, _, kind in self.graph.in_edges(class_symbol.identity, data="kind"):
            if kind != DEPENDENCY:
                continue
            dependent = self.graph.nodes[source]["symbol"]
            if self.in_scope(dependent):
                dependents.add(dependent)
        return frozenset(dependents)

    def list_inheritance(self, class_symbol: Symbol) -> Inheritance:
        superclasses = tuple(self._resolve_class(name)
                             for name in self.inheritance.ancestors(class_symbol.name))
        interfaces = frozenset(self._resolve_class(name)
                               for name in self.inheritance.all_interfaces(class_symbol.name))
        return Inheritance(superclasses=superclasses, interfaces=interfaces)

    def find_override(self, method: Symbol, superclasses: bool = True,
                      interfaces: bool = True) -> Optional[Symbol]:
        return self.inheritance.find_override(method, superclasses=superclasses, interfaces=interfaces)

    def owner_of(self, method: Symbol) -> Optional[Symbol]:
        return self.get(method.owner) if method.is_method else None

    # --- Internal Helpers -------------------------------------------------

    def _edge(self, source: str, target: str) -> Optional[ReferenceEdge]:
        source_symbol = self.graph.nodes[source]["symbol"]
        target_symbol = self.graph.nodes[target]["symbol"]
        if not (self.in_scope(source_symbol) and self.in_scope(target_symbol)):
            return None
        return ReferenceEdge(source_symbol, target_symbol)

    def _resolve_class(self, name: str) -> Symbol:
        known = self.get(name)
        if known is not None:
            return known
        # Supertype declared outside the imported artifacts
        return Symbol.class_(name, origin=Origin.ARCHIVE)


def load_symbol_graph(path: str | Path, options: Optional[ImportOptions] = None) -> SymbolGraph:
    """Read a graph document from disk.

    Args:
        path: Path to the JSON graph document
        options: Import scope

    Returns:
        Fully built SymbolGraph

    Raises:
        ImportFailure: If the file is missing, unreadable or malformed
    """
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ImportFailure("Graph document not found", path) from None
    except json.JSONDecodeError as e:
        raise ImportFailure(f"Graph document is not valid JSON: {e}", path) from e
    except (OSError, UnicodeDecodeError) as e:
        raise ImportFailure(f"Cannot read graph document: {e}", path) from e

    logger.debug("Loaded graph document %s", path)
    return SymbolGraph.from_document(data, options, source=path)


def _string_list(record: dict, key: str, source: Optional[Path]) -> List[str]:
    value = record.get(key, [])
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ImportFailure(f"'{key}' of {record.get('name', '<unnamed>')} must be a list of strings", source)
    return value


def _check_name(value: str, what: str, source: Optional[Path]) -> str:
    if value != value.strip() or _CONTROL_CHARS.search(value):
        raise ImportFailure(f"{what} {value!r} has surrounding whitespace or control characters", source)
    return value


def _parse_line(record: dict, source: Optional[Path]) -> int:
    value = record.get("line", 0)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ImportFailure(f"Invalid line {value!r} on {record.get('name')}", source)
    return value


def _parse_origin(record: dict, default: Origin, source: Optional[Path]) -> Origin:
    value = record.get("origin")
    if value is None:
        return default
    try:
        return Origin(value)
    except ValueError:
        raise ImportFailure(f"Unknown origin {value!r} on {record.get('name')}", source) from None


def _parse_class(record: dict, index: int,
                 source: Optional[Path]) -> Tuple[Symbol, dict, List[Tuple[Symbol, dict]]]:
    if not isinstance(record, dict) or not isinstance(record.get("name"), str) or not record["name"]:
        raise ImportFailure(f"Class record #{index} has no name", source)

    _check_name(record["name"], "Class name", source)
    origin = _parse_origin(record, Origin.SOURCE, source)
    file = record.get("file", "")
    class_symbol = Symbol.class_(
        record["name"],
        tags=_string_list(record, "tags", source),
        file=file,
        line=_parse_line(record, source),
        origin=origin,
        is_interface=bool(record.get("interface", False)),
    )

    methods = []
    method_records = record.get("methods", [])
    if not isinstance(method_records, list):
        raise ImportFailure(f"'methods' of {class_symbol.name} must be a list", source)
    for method_record in method_records:
        if not isinstance(method_record, dict) or not isinstance(method_record.get("name"), str) \
                or not method_record["name"]:
            raise ImportFailure(f"Method record in {class_symbol.name} has no name", source)
        method_name = _check_name(method_record["name"], f"Method name in {class_symbol.name}", source)
        parameters = [
            _check_name(parameter, f"Parameter type of {class_symbol.name}.{method_name}", source)
            for parameter in _string_list(method_record, "parameters", source)
        ]
        methods.append((Symbol.method(
            class_symbol.name,
            method_name,
            parameters=parameters,
            tags=_string_list(method_record, "tags", source),
            file=method_record.get("file", file),
            line=_parse_line(method_record, source),
            origin=_parse_origin(method_record, origin, source),
        ), method_record))
    return class_symbol, record, methods
