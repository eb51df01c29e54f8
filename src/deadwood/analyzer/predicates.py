"""Composable exemption predicates.

A ``Predicate`` is a named, pure function of ``(symbol, graph)``. Predicates
combine with ``&`` (and), ``|`` (or) and ``~`` (not); the combined description
reads like the rule it implements, e.g.::

    is_configuration | is_controller | (has_entry_point_method & is_component)

Exemption formulas can also be written as text and compiled with
``compile_expression``, which accepts only boolean operators, parentheses and
the predicate names known to a ``PredicateSet``.
"""
import ast
import fnmatch
from typing import Callable, Dict, FrozenSet, Iterable, Optional

from ..errors import ConfigurationError
from .symbols import Symbol, SymbolKind
from .tag_rules import EntryPointClassifier, TagMatcher

ALL_KINDS: FrozenSet[SymbolKind] = frozenset(SymbolKind)
CLASSES: FrozenSet[SymbolKind] = frozenset({SymbolKind.CLASS})
METHODS: FrozenSet[SymbolKind] = frozenset({SymbolKind.METHOD})

DEFAULT_STRUCTURAL_METHODS = ('equals', 'hashCode', 'toString')
DEFAULT_FRAMEWORK_ENTRY_METHODS = ('main',)
DEFAULT_COMPONENT_PATTERNS = ('*Component',)
DEFAULT_CONFIGURATION_PATTERNS = ('*Configuration',)
DEFAULT_CONTROLLER_PATTERNS = ('*Controller',)
DEFAULT_FRAMEWORK_ENTRY_PATTERNS = ('*RequestMapping',)

DEFAULT_CLASS_EXEMPTION = (
    "is_configuration or is_controller or (has_entry_point_method and is_component)"
)
DEFAULT_METHOD_EXEMPTION = (
    "is_structural_method or is_framework_entry_point or overrides_ancestor_method"
    " or (is_entry_point and declared_in_component)"
)


class Predicate:
    """A described boolean test over symbols."""

    def __init__(self, description: str, test: Callable[[Symbol, object], bool],
                 kinds: FrozenSet[SymbolKind] = ALL_KINDS, op: Optional[str] = None):
        self.description = description
        self.test = test
        self.kinds = frozenset(kinds)
        self.op = op  # 'and' / 'or' for compound predicates

    def __call__(self, symbol: Symbol, graph) -> bool:
        if symbol.kind not in self.kinds:
            return False
        return bool(self.test(symbol, graph))

    def applies_to(self, kind: SymbolKind) -> bool:
        return kind in self.kinds

    def _operand(self, op: str) -> str:
        if self.op is not None and self.op != op:
            return f"({self.description})"
        return self.description

    def and_(self, other: "Predicate") -> "Predicate":
        return Predicate(
            f"{self._operand('and')} and {other._operand('and')}",
            lambda symbol, graph: self(symbol, graph) and other(symbol, graph),
            self.kinds & other.kinds,
            op='and',
        )

    def or_(self, other: "Predicate") -> "Predicate":
        return Predicate(
            f"{self._operand('or')} or {other._operand('or')}",
            lambda symbol, graph: self(symbol, graph) or other(symbol, graph),
            self.kinds | other.kinds,
            op='or',
        )

    def negate(self) -> "Predicate":
        operand = f"({self.description})" if self.op else self.description
        return Predicate(
            f"not {operand}",
            lambda symbol, graph: not self(symbol, graph),
            self.kinds,
        )

    def as_(self, description: str) -> "Predicate":
        """Same test under a new description."""
        return Predicate(description, self.test, self.kinds)

    __and__ = and_
    __or__ = or_
    __invert__ = negate

    def __repr__(self) -> str:
        return f"Predicate({self.description!r})"


ALWAYS = Predicate("always", lambda symbol, graph: True)
NEVER = Predicate("never", lambda symbol, graph: False)


def has_name(value: str) -> Predicate:
    return Predicate(f"has name '{value}'",
                     lambda symbol, graph: value in (symbol.name, symbol.simple_name))


def name_matches(pattern: str) -> Predicate:
    return Predicate(f"has name matching '{pattern}'",
                     lambda symbol, graph: fnmatch.fnmatchcase(symbol.name, pattern)
                     or fnmatch.fnmatchcase(symbol.simple_name, pattern))


def has_tag(pattern: str) -> Predicate:
    matcher = TagMatcher.from_patterns([pattern])
    return Predicate(f"has tag '{pattern}'", lambda symbol, graph: matcher.matches(symbol.tags))


PARAMETERISED: Dict[str, Callable[[str], Predicate]] = {
    'has_name': has_name,
    'name_matches': name_matches,
    'has_tag': has_tag,
}


def _or_default(matcher: Optional[TagMatcher], patterns) -> TagMatcher:
    return TagMatcher.from_patterns(patterns) if matcher is None else matcher


class PredicateSet:
    """The primitive exemption predicates, built from configuration."""

    def __init__(
        self,
        classifier: Optional[EntryPointClassifier] = None,
        component: Optional[TagMatcher] = None,
        configuration: Optional[TagMatcher] = None,
        controller: Optional[TagMatcher] = None,
        framework_entry: Optional[TagMatcher] = None,
        framework_entry_methods: Iterable[str] = DEFAULT_FRAMEWORK_ENTRY_METHODS,
        structural_methods: Iterable[str] = DEFAULT_STRUCTURAL_METHODS,
        superclass_overrides: bool = True,
        interface_methods: bool = True,
    ):
        # An empty matcher is a valid setting and disables that exemption
        self.classifier = EntryPointClassifier() if classifier is None else classifier
        self.component = _or_default(component, DEFAULT_COMPONENT_PATTERNS)
        self.configuration = _or_default(configuration, DEFAULT_CONFIGURATION_PATTERNS)
        self.controller = _or_default(controller, DEFAULT_CONTROLLER_PATTERNS)
        self.framework_entry = _or_default(framework_entry, DEFAULT_FRAMEWORK_ENTRY_PATTERNS)
        self.framework_entry_methods = frozenset(framework_entry_methods)
        self.structural_methods = frozenset(structural_methods)
        self.superclass_overrides = superclass_overrides
        self.interface_methods = interface_methods
        self.primitives: Dict[str, Predicate] = self._build_primitives()

    @classmethod
    def from_settings(cls, settings) -> "PredicateSet":
        """Build from a ``deadwood.config.Settings``."""
        return cls(
            classifier=EntryPointClassifier(TagMatcher.from_patterns(settings.entry_point_tags)),
            component=TagMatcher.from_patterns(settings.component_tags),
            configuration=TagMatcher.from_patterns(settings.configuration_tags),
            controller=TagMatcher.from_patterns(settings.controller_tags),
            framework_entry=TagMatcher.from_patterns(settings.framework_entry_tags),
            framework_entry_methods=settings.framework_entry_methods,
            structural_methods=settings.structural_methods,
            superclass_overrides=settings.exempt_superclass_overrides,
            interface_methods=settings.exempt_interface_methods,
        )

    def __getitem__(self, name: str) -> Predicate:
        try:
            return self.primitives[name]
        except KeyError:
            raise ConfigurationError(
                f"Unknown predicate '{name}'. Known: {', '.join(sorted(self.primitives))}"
            ) from None

    def __contains__(self, name: str) -> bool:
        return name in self.primitives

    def _is_component_class(self, class_name: Optional[str], graph) -> bool:
        owner = graph.get(class_name) if class_name else None
        return owner is not None and self.component.matches(owner.tags)

    def _overrides(self, method: Symbol, graph, superclasses: bool, interfaces: bool) -> bool:
        if not (superclasses or interfaces):
            return False
        return graph.find_override(method, superclasses=superclasses, interfaces=interfaces) is not None

    def _build_primitives(self) -> Dict[str, Predicate]:
        superclass_check = Predicate(
            "overrides a superclass method",
            lambda m, g: self._overrides(m, g, self.superclass_overrides, False),
            METHODS,
        )
        interface_check = Predicate(
            "implements an interface method",
            lambda m, g: self._overrides(m, g, False, self.interface_methods),
            METHODS,
        )
        return {
            'is_configuration': Predicate(
                "is configuration", lambda s, g: self.configuration.matches(s.tags)),
            'is_controller': Predicate(
                "is controller", lambda s, g: self.controller.matches(s.tags), CLASSES),
            'is_component': Predicate(
                "is component", lambda s, g: self.component.matches(s.tags)),
            'has_entry_point_method': Predicate(
                "has entry-point method", lambda s, g: self.classifier.is_entry_point(s, g), CLASSES),
            'is_entry_point': Predicate(
                "is entry point", lambda s, g: self.classifier.is_entry_point_method(s), METHODS),
            'declared_in_component': Predicate(
                "declared in component", lambda s, g: self._is_component_class(s.owner, g), METHODS),
            'overrides_superclass_method': superclass_check,
            'implements_interface_method': interface_check,
            'overrides_ancestor_method': (superclass_check | interface_check).as_(
                "overrides an ancestor method"),
            'is_structural_method': Predicate(
                "is structural method", lambda s, g: s.name in self.structural_methods, METHODS),
            'is_framework_entry_point': Predicate(
                "is framework entry point",
                lambda s, g: s.name in self.framework_entry_methods or self.framework_entry.matches(s.tags),
                METHODS),
        }


def compile_expression(text: str, predicates: PredicateSet,
                       kind: Optional[SymbolKind] = None) -> Predicate:
    """Compile an exemption expression into a Predicate.

    Args:
        text: Expression such as ``"is_configuration or not is_component"``
        predicates: Primitive predicates the expression may name
        kind: Target kind of the rule; predicates not applying to it are rejected

    Raises:
        ConfigurationError: If the expression is malformed
    """
    if not isinstance(text, str) or not text.strip():
        raise ConfigurationError("Exemption expression must be a non-empty string")
    try:
        tree = ast.parse(text.strip(), mode='eval')
    except SyntaxError as e:
        raise ConfigurationError(f"Malformed exemption expression {text!r}: {e.msg}") from None
    return _compile_node(tree.body, text, predicates, kind)


def _compile_node(node: ast.AST, text: str, predicates: PredicateSet,
                  kind: Optional[SymbolKind]) -> Predicate:
    if isinstance(node, ast.BoolOp):
        operands = [_compile_node(value, text, predicates, kind) for value in node.values]
        combined = operands[0]
        for operand in operands[1:]:
            combined = combined & operand if isinstance(node.op, ast.And) else combined | operand
        return combined

    if isinstance(node, ast.UnaryOp) and isinstance(node.op, ast.Not):
        return ~_compile_node(node.operand, text, predicates, kind)

    if isinstance(node, ast.Name):
        predicate = predicates[node.id]
        if kind is not None and not predicate.applies_to(kind):
            raise ConfigurationError(
                f"Predicate '{node.id}' does not apply to {kind.plural} (in {text!r})"
            )
        return predicate

    if isinstance(node, ast.Constant) and isinstance(node.value, bool):
        return ALWAYS if node.value else NEVER

    if isinstance(node, ast.Call) and isinstance(node.func, ast.Name) and node.func.id in PARAMETERISED:
        args = node.args
        if node.keywords or len(args) != 1 or not (
                isinstance(args[0], ast.Constant) and isinstance(args[0].value, str)):
            raise ConfigurationError(
                f"'{node.func.id}' takes exactly one string argument (in {text!r})"
            )
        return PARAMETERISED[node.func.id](args[0].value)

    raise ConfigurationError(
        f"Unsupported element {type(node).__name__} in exemption expression {text!r}"
    )
