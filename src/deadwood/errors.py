"""Errors raised by Deadwood itself.

Rule violations are not errors: they are the normal output of a successful
run. The classes here signal defects in the inputs (graph document, rule
configuration, baseline files) that make a trustworthy report impossible.
"""
from pathlib import Path
from typing import Optional


class DeadwoodError(Exception):
    """Base class for tool defects that abort a run before reporting."""


class ImportFailure(DeadwoodError):
    """The symbol graph could not be produced (missing or corrupt document)."""

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        if path is not None:
            message = f"{message} ({path})"
        super().__init__(message)


class ConfigurationError(DeadwoodError):
    """A rule, predicate expression or tag pattern set is invalid."""


class BaselineCorruption(DeadwoodError):
    """A stored baseline file exists but cannot be parsed."""

    def __init__(self, path: Path, detail: str, line_number: int = 0):
        self.path = Path(path)
        self.detail = detail
        self.line_number = line_number
        location = f"{self.path}:{line_number}" if line_number else str(self.path)
        super().__init__(f"Corrupt baseline {location}: {detail}")
