"""Evaluate rules against a symbol graph and gate them through baselines."""
import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional

from ..analyzer.symbols import Violation
from ..freeze.baseline import BaselineStore, FreezeResult, apply_freeze
from .rule import Rule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleResult:
    """One rule's outcome.

    Attributes:
        rule: The evaluated rule
        fresh: Every violation found, before the freeze gate
        effective: Violations that fail the run
        freeze: Freeze gate result (None for unfrozen rules)
        baseline_written: Whether the baseline file was rewritten
    """
    rule: Rule
    fresh: List[Violation]
    effective: List[Violation]
    freeze: Optional[FreezeResult] = None
    baseline_written: bool = False

    @property
    def failed(self) -> bool:
        return bool(self.effective)

    @property
    def frozen_count(self) -> int:
        return len(self.fresh) - len(self.effective)


@dataclass(frozen=True)
class RunOutcome:
    results: List[RuleResult]

    @property
    def failed(self) -> bool:
        return any(result.failed for result in self.results)

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0

    @property
    def violation_count(self) -> int:
        return sum(len(result.effective) for result in self.results)


class RuleRunner:
    """Run rules one after another, applying baselines to frozen rules."""

    def __init__(self, rules: List[Rule], store: Optional[BaselineStore] = None,
                 accept: bool = False, shrink_baseline: bool = True):
        """Initialize runner.

        Args:
            rules: Rules in report order
            store: Baseline store; without one, frozen rules behave as unfrozen
            accept: Accept all current violations into the baselines
            shrink_baseline: Drop resolved violations from stored baselines
        """
        self.rules = rules
        self.store = store
        self.accept = accept
        self.shrink_baseline = shrink_baseline

    def run(self, graph) -> RunOutcome:
        """Evaluate every rule against ``graph``.

        Every baseline is read before any rule runs, and baselines are only
        written once every rule has been evaluated.

        Raises:
            BaselineCorruption: If a stored baseline cannot be read
        """
        stored = self._read_baselines()

        gated = []
        for rule in self.rules:
            fresh = rule.evaluate(graph)
            logger.debug("Rule '%s': %d violation(s) before baseline", rule.name, len(fresh))
            if rule.name in stored:
                gated.append((rule, fresh, apply_freeze(fresh, stored[rule.name], accept=self.accept)))
            else:
                gated.append((rule, fresh, None))

        results = [self._finish(rule, fresh, freeze) for rule, fresh, freeze in gated]
        outcome = RunOutcome(results)
        logger.info("Ran %d rule(s), %d violation(s)", len(results), outcome.violation_count)
        return outcome

    def _read_baselines(self) -> Dict[str, Optional[FrozenSet[str]]]:
        if self.store is None:
            return {}
        return {rule.name: self.store.read(rule.name) for rule in self.rules if rule.frozen}

    def _should_write(self, freeze: FreezeResult) -> bool:
        if not freeze.changed:
            return False
        return self.accept or (freeze.stored is not None and bool(freeze.removed) and self.shrink_baseline)

    def _finish(self, rule: Rule, fresh: List[Violation], freeze: Optional[FreezeResult]) -> RuleResult:
        if freeze is None:
            return RuleResult(rule, fresh, fresh)

        written = self._should_write(freeze)
        if written:
            self.store.write(rule.name, freeze.updated)
        if freeze.removed:
            logger.info("Rule '%s': %d baseline entr(y/ies) resolved", rule.name, len(freeze.removed))
        return RuleResult(rule, fresh, freeze.effective, freeze, written)
