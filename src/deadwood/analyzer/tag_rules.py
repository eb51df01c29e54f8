"""Tag matching rules and the entry-point classifier.

Annotations of the host runtime arrive as opaque string tags on each symbol.
Which tags mark a symbol as configuration, component or entry point is pure
configuration: every set here is built from glob-style patterns.
"""
import fnmatch
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from ..errors import ConfigurationError
from .symbols import Symbol

MATCH_TYPES = ('exact', 'prefix', 'suffix', 'glob')

DEFAULT_ENTRY_POINT_PATTERNS = ('*Handler', '*Listener', '*Scheduled')

_GLOB_CHARS = set('*?[]')


@dataclass(frozen=True)
class TagRule:
    """A normalized tag rule."""
    pattern: str
    match_type: str  # 'exact', 'prefix', 'suffix', 'glob'

    def __post_init__(self):
        if self.match_type not in MATCH_TYPES:
            raise ConfigurationError(
                f"Unknown match type {self.match_type!r} for tag pattern {self.pattern!r}"
            )
        if not self.pattern:
            raise ConfigurationError("Tag patterns must not be empty")

    @classmethod
    def from_pattern(cls, pattern: str) -> "TagRule":
        """Classify a glob-style pattern.

        ``*Handler`` is a suffix rule, ``org.spring*`` a prefix rule, a name
        without wildcards an exact rule and anything else an fnmatch glob.
        """
        if not isinstance(pattern, str) or not pattern.strip():
            raise ConfigurationError(f"Invalid tag pattern: {pattern!r}")
        pattern = pattern.strip()
        inner = pattern.strip('*')
        if inner and not (_GLOB_CHARS & set(inner)):
            if pattern.startswith('*') and pattern.endswith('*') and len(pattern) > len(inner) + 1:
                return cls(pattern, 'glob')
            if pattern.startswith('*') and not pattern.endswith('*'):
                return cls(inner, 'suffix')
            if pattern.endswith('*') and not pattern.startswith('*'):
                return cls(inner, 'prefix')
            if pattern == inner:
                return cls(pattern, 'exact')
        return cls(pattern, 'glob')

    def matches(self, tag: str) -> bool:
        if self.match_type == 'exact':
            return tag == self.pattern
        if self.match_type == 'prefix':
            return tag.startswith(self.pattern)
        if self.match_type == 'suffix':
            return tag.endswith(self.pattern)
        return fnmatch.fnmatchcase(tag, self.pattern)

    def __str__(self) -> str:
        if self.match_type == 'prefix':
            return f"{self.pattern}*"
        if self.match_type == 'suffix':
            return f"*{self.pattern}"
        return self.pattern


class TagMatcher:
    """Matches symbol tags against a set of rules using lookup tables."""

    def __init__(self, rules: Iterable[TagRule]):
        self.rules: List[TagRule] = list(rules)
        self._exact: Dict[str, TagRule] = {}
        self._prefix: List[TagRule] = []
        self._suffix: List[TagRule] = []
        self._glob: List[TagRule] = []
        self._build_lookup_tables()

    @classmethod
    def from_patterns(cls, patterns: Iterable[str]) -> "TagMatcher":
        return cls(TagRule.from_pattern(pattern) for pattern in patterns)

    def _build_lookup_tables(self):
        """Build fast lookup tables from rules."""
        for rule in self.rules:
            if rule.match_type == 'exact':
                self._exact.setdefault(rule.pattern, rule)
            elif rule.match_type == 'prefix':
                self._prefix.append(rule)
            elif rule.match_type == 'suffix':
                self._suffix.append(rule)
            else:
                self._glob.append(rule)

    def __bool__(self) -> bool:
        return bool(self.rules)

    def match(self, tags: Iterable[str]) -> Optional[TagRule]:
        """Return the first rule matching any of the tags, checked in sorted tag order."""
        for tag in sorted(tags):
            # Stage 1: Exact match
            if tag in self._exact:
                return self._exact[tag]
            # Stage 2: Prefix / suffix / glob
            for rule in self._prefix + self._suffix + self._glob:
                if rule.matches(tag):
                    return rule
        return None

    def matches(self, tags: Iterable[str]) -> bool:
        return self.match(tags) is not None

    def describe(self) -> str:
        return ", ".join(f"'{rule}'" for rule in self.rules)


class EntryPointClassifier:
    """Decides whether a symbol has callers outside the reference graph.

    A method is an entry point if one of its tags matches an entry-point rule.
    A class is an entry point if it declares at least one such method.
    Being an entry point does not by itself exempt a symbol.
    """

    def __init__(self, matcher: Optional[TagMatcher] = None):
        if matcher is None:
            matcher = TagMatcher.from_patterns(DEFAULT_ENTRY_POINT_PATTERNS)
        if not matcher:
            raise ConfigurationError("The entry-point tag set must not be empty")
        self.matcher = matcher

    def is_entry_point_method(self, method: Symbol) -> bool:
        return method.is_method and self.matcher.matches(method.tags)

    def is_entry_point(self, symbol: Symbol, graph) -> bool:
        """Check a method directly, or a class through its declared methods.

        Args:
            symbol: Class or method to classify
            graph: SymbolGraph used to list a class's methods
        """
        if symbol.is_method:
            return self.is_entry_point_method(symbol)
        return any(self.is_entry_point_method(member) for member in graph.list_members(symbol))
