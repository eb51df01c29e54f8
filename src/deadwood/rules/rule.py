"""Rule definitions: what to check, what is exempt and why."""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from ..analyzer.detector import UnusedDetector
from ..analyzer.predicates import (
    DEFAULT_CLASS_EXEMPTION,
    DEFAULT_METHOD_EXEMPTION,
    Predicate,
    PredicateSet,
    compile_expression,
)
from ..analyzer.symbols import SymbolKind, Violation
from ..errors import ConfigurationError


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    @classmethod
    def parse(cls, value) -> "Priority":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ConfigurationError(
                f"Invalid priority {value!r}, expected one of {', '.join(p.value for p in cls)}"
            ) from None


@dataclass(frozen=True)
class Rule:
    """A named "should not be unreferenced" rule over one symbol kind.

    Attributes:
        name: Short identifier, also the baseline file name
        kind: Target symbol kind
        exempt: Symbols matching this predicate are never reported
        description: Human readable rule text; generated when omitted
        because: Justification appended to the rule text
        frozen: Whether violations are gated by a baseline
        priority: Priority shown in the report header
    """
    name: str
    kind: SymbolKind
    exempt: Predicate
    description: Optional[str] = None
    because: Optional[str] = None
    frozen: bool = True
    priority: Priority = Priority.MEDIUM

    @property
    def text(self) -> str:
        if self.description:
            return self.description
        return f"{self.kind.plural} that are not ({self.exempt.description}) should not be unreferenced"

    @property
    def full_text(self) -> str:
        if self.because:
            return f"{self.text}, because {self.because}"
        return self.text

    def evaluate(self, graph) -> List[Violation]:
        """Compute this rule's violations against a graph, sorted by identity."""
        detector = UnusedDetector(graph)
        return detector.find_unused(graph.list_symbols(self.kind), self.exempt)


@dataclass(frozen=True)
class RuleSpec:
    """Rule as written in configuration, before its expression is compiled."""
    name: str
    kind: SymbolKind
    exempt: str
    description: Optional[str] = None
    because: Optional[str] = None
    frozen: bool = True
    priority: Optional[str] = None

    def build(self, predicates: PredicateSet, default_priority: Priority = Priority.MEDIUM) -> Rule:
        """Compile into a Rule.

        Raises:
            ConfigurationError: If the expression or priority is invalid
        """
        try:
            exempt = compile_expression(self.exempt, predicates, self.kind)
        except ConfigurationError as e:
            raise ConfigurationError(f"Rule '{self.name}': {e}") from None
        priority = Priority.parse(self.priority) if self.priority else default_priority
        return Rule(
            name=self.name,
            kind=self.kind,
            exempt=exempt,
            description=self.description,
            because=self.because,
            frozen=self.frozen,
            priority=priority,
        )


def default_rule_specs() -> Dict[str, RuleSpec]:
    return {
        'classes': RuleSpec(
            name='classes',
            kind=SymbolKind.CLASS,
            exempt=DEFAULT_CLASS_EXEMPTION,
            because="unreferenced classes are dead code",
        ),
        'methods': RuleSpec(
            name='methods',
            kind=SymbolKind.METHOD,
            exempt=DEFAULT_METHOD_EXEMPTION,
            because="unreferenced methods are dead code",
        ),
    }


def default_rules(settings) -> List[Rule]:
    """The built-in ``classes`` and ``methods`` rules, ignoring any configured table."""
    predicates = PredicateSet.from_settings(settings)
    default_priority = Priority.parse(settings.priority)
    return [spec.build(predicates, default_priority) for spec in default_rule_specs().values()]


def build_rules(settings, names: Optional[List[str]] = None) -> List[Rule]:
    """Build the configured rules, optionally only the named ones.

    Args:
        settings: deadwood.config.Settings
        names: Rule names to keep, in configuration order

    Raises:
        ConfigurationError: On unknown rule names or invalid rule definitions
    """
    specs: Dict[str, RuleSpec] = settings.rules
    if names:
        unknown = sorted(set(names) - set(specs))
        if unknown:
            raise ConfigurationError(
                f"Unknown rule(s): {', '.join(unknown)}. Configured: {', '.join(specs)}"
            )
    predicates = PredicateSet.from_settings(settings)
    default_priority = Priority.parse(settings.priority)
    return [
        spec.build(predicates, default_priority)
        for name, spec in specs.items()
        if not names or name in names
    ]
