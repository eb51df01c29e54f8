"""Baseline store and freeze gate.

A baseline is the set of violations a project has accepted. Only violations
outside the baseline fail a run ("fingerprinting"). Baselines hold symbol
identities, never report messages, so rewording a message cannot reopen or
close an entry.

File format, one file per rule::

    # deadwood baseline v1
    com.example.ComponentD
    com.example.ComponentD.doSomething(com.example.ModelD)

Identities are sorted and the file ends with a newline. There are no
timestamps or absolute paths, so unchanged code produces identical bytes.
"""
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional

from ..errors import BaselineCorruption
from ..analyzer.symbols import Violation, sort_violations

logger = logging.getLogger(__name__)

HEADER = "# deadwood baseline v1"
SUFFIX = ".txt"

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_RULE_NAME = re.compile(r"[A-Za-z0-9][A-Za-z0-9_.-]*")


@dataclass(frozen=True)
class FreezeResult:
    """Outcome of gating fresh violations against a stored baseline.

    Attributes:
        effective: Violations that fail the run, sorted by identity
        updated: Baseline to persist after the run
        removed: Stored identities that no longer occur
        created: True when there was no stored baseline
        stored: The baseline the run started from (None if absent)
    """
    effective: List[Violation]
    updated: FrozenSet[str]
    removed: FrozenSet[str]
    created: bool
    stored: Optional[FrozenSet[str]] = None

    @property
    def changed(self) -> bool:
        return self.stored is None or self.updated != self.stored


def apply_freeze(fresh: Iterable[Violation], stored: Optional[FrozenSet[str]],
                 accept: bool = False) -> FreezeResult:
    """Gate freshly computed violations against a stored baseline.

    Args:
        fresh: Violations found by this run
        stored: Identities from the stored baseline, or None if there is none
        accept: Accept every fresh violation into the baseline

    Returns:
        FreezeResult. Without a stored baseline every fresh violation is
        effective and ``updated`` holds the proposed baseline; it only becomes
        the baseline when the caller persists it explicitly.
    """
    fresh = sort_violations(fresh)
    identities = frozenset(v.identity for v in fresh)

    if accept:
        removed = stored - identities if stored is not None else frozenset()
        return FreezeResult([], identities, removed, stored is None, stored)

    if stored is None:
        return FreezeResult(fresh, identities, frozenset(), True, None)

    effective = [v for v in fresh if v.identity not in stored]
    return FreezeResult(
        effective=effective,
        updated=stored & identities,
        removed=stored - identities,
        created=False,
        stored=stored,
    )


class BaselineStore:
    """Directory of per-rule baseline files."""

    def __init__(self, directory: str | Path):
        """Initialize store.

        Args:
            directory: Baseline directory, usually checked into the repository
        """
        self.directory = Path(directory)

    def path_for(self, rule_name: str) -> Path:
        if not is_valid_rule_name(rule_name):
            raise ValueError(f"Rule name {rule_name!r} cannot be used as a baseline file name")
        return self.directory / f"{rule_name}{SUFFIX}"

    def exists(self, rule_name: str) -> bool:
        return self.path_for(rule_name).is_file()

    def rule_names(self) -> List[str]:
        if not self.directory.is_dir():
            return []
        return sorted(p.stem for p in self.directory.glob(f"*{SUFFIX}") if p.is_file())

    def read(self, rule_name: str) -> Optional[FrozenSet[str]]:
        """Read a rule's baseline.

        Returns:
            Stored identities, or None if no baseline exists

        Raises:
            BaselineCorruption: If the file cannot be parsed
        """
        path = self.path_for(rule_name)
        if not path.exists():
            return None
        try:
            text = path.read_bytes().decode('utf-8')
        except UnicodeDecodeError as e:
            raise BaselineCorruption(path, f"not valid UTF-8 ({e.reason})") from None
        except OSError as e:
            raise BaselineCorruption(path, f"unreadable ({e})") from e
        return frozenset(parse_baseline(text, path))

    def write(self, rule_name: str, identities: Iterable[str]):
        """Write a rule's baseline atomically.

        The content goes to a temporary file first and then replaces the
        baseline, so a failed write leaves the old file untouched.
        """
        path = self.path_for(rule_name)
        content = format_baseline(identities)
        self.directory.mkdir(parents=True, exist_ok=True)

        temp_path = path.with_suffix('.tmp')
        try:
            with open(temp_path, 'w', encoding='utf-8', newline='\n') as f:
                f.write(content)
            temp_path.replace(path)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise
        logger.info("Wrote baseline %s", path)


def is_valid_rule_name(name: str) -> bool:
    return bool(_RULE_NAME.fullmatch(name))


def entry_problem(identity: str) -> Optional[str]:
    """Return why ``identity`` cannot be stored as a baseline line, or None."""
    if not identity or identity != identity.strip():
        return "blank or padded entry"
    if _CONTROL_CHARS.search(identity):
        return "control character in entry"
    return None


def format_baseline(identities: Iterable[str]) -> str:
    """Render baseline text.

    Raises:
        ValueError: If an identity would not survive ``parse_baseline``
    """
    entries = sorted(set(identities))
    for identity in entries:
        problem = entry_problem(identity)
        if problem:
            raise ValueError(f"Cannot store {identity!r} in a baseline: {problem}")
    lines = [HEADER] + entries
    return "\n".join(lines) + "\n"


def parse_baseline(text: str, path: Path) -> List[str]:
    """Parse baseline text strictly.

    Raises:
        BaselineCorruption: On a missing header, blank or padded lines,
            control characters or duplicates
    """
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    if not lines or lines[0].rstrip("\r") != HEADER:
        raise BaselineCorruption(path, f"missing header {HEADER!r}", 1)

    identities = []
    seen = set()
    for number, line in enumerate(lines[1:], start=2):
        line = line.rstrip("\r")
        problem = entry_problem(line)
        if problem:
            raise BaselineCorruption(path, problem, number)
        if line in seen:
            raise BaselineCorruption(path, f"duplicate entry {line!r}", number)
        seen.add(line)
        identities.append(line)
    return identities
