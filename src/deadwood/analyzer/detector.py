"""Unreferenced class and method detection."""
import logging
from typing import Iterable, List, Optional, Set

from .predicates import NEVER, Predicate
from .symbols import ReferenceEdge, Symbol, SymbolKind, Violation, sort_violations

logger = logging.getLogger(__name__)


class UnusedDetector:
    """Find symbols with no external references in a SymbolGraph.

    A symbol can never keep itself alive: edges from the symbol to itself are
    ignored, and for a class so are edges coming from its own methods. A class
    is still used when another class depends on it purely as a type (field,
    parameter, return or super type).
    """

    def __init__(self, graph):
        """Initialize detector.

        Args:
            graph: SymbolGraph to query (read-only)
        """
        self.graph = graph

    def incoming(self, symbol: Symbol) -> Set[ReferenceEdge]:
        """Reference edges into ``symbol`` that do not originate from itself."""
        edges = self.graph.list_accesses(symbol).incoming
        if symbol.is_class:
            return {edge for edge in edges if edge.source.class_name != symbol.name}
        return {edge for edge in edges if not edge.is_self_reference}

    def direct_dependents(self, class_symbol: Symbol) -> Set[Symbol]:
        """Other classes that use ``class_symbol`` as a type."""
        return {
            dependent for dependent in self.graph.list_direct_type_dependents(class_symbol)
            if dependent.name != class_symbol.name
        }

    def is_unreferenced(self, symbol: Symbol) -> bool:
        if self.incoming(symbol):
            return False
        if symbol.is_class and self.direct_dependents(symbol):
            return False
        return True

    def violation(self, symbol: Symbol) -> Violation:
        return Violation(symbol, f"{symbol.description} is unreferenced in {symbol.location}")

    def find_unused(self, symbols: Iterable[Symbol], exempt: Optional[Predicate] = None) -> List[Violation]:
        """Check every non-exempt symbol.

        Args:
            symbols: Candidate symbols
            exempt: Exemption predicate; exempt symbols are never reported

        Returns:
            Violations sorted by symbol identity
        """
        exempt = exempt or NEVER
        violations = []
        for symbol in symbols:
            if exempt(symbol, self.graph):
                logger.debug("Exempt: %s", symbol.identity)
                continue
            if self.is_unreferenced(symbol):
                violations.append(self.violation(symbol))
        return sort_violations(violations)

    def find_unused_classes(self, symbols: Optional[Iterable[Symbol]] = None,
                            exempt: Optional[Predicate] = None) -> List[Violation]:
        if symbols is None:
            symbols = self.graph.list_symbols(SymbolKind.CLASS)
        return self.find_unused((s for s in symbols if s.is_class), exempt)

    def find_unused_methods(self, symbols: Optional[Iterable[Symbol]] = None,
                            exempt: Optional[Predicate] = None) -> List[Violation]:
        if symbols is None:
            symbols = self.graph.list_symbols(SymbolKind.METHOD)
        return self.find_unused((s for s in symbols if s.is_method), exempt)
