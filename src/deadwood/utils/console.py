"""Terminal-safe output and logging setup.

Detects terminal encoding and provides ASCII alternatives for the status
marks Deadwood prints, so reports never crash a legacy Windows
console or a CI log capture with a narrow encoding.
"""
import locale
import logging
import sys
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

# Unicode to ASCII mapping for non-UTF-8 terminals
ICON_MAP = {
    '✓': '[OK]',
    '✗': '[FAIL]',
}


def detect_terminal_encoding() -> str:
    """Detect the terminal's encoding.

    Returns:
        str: Terminal encoding ('utf-8', 'cp1252', 'ascii', etc.)
    """
    if getattr(sys.stdout, 'encoding', None):
        return sys.stdout.encoding.lower()

    try:
        return locale.getpreferredencoding().lower()
    except (LookupError, ValueError):
        return 'ascii'


def is_utf8_capable() -> bool:
    return detect_terminal_encoding().replace('_', '-') in ('utf-8', 'utf8')


def sanitize_for_terminal(text: str) -> str:
    """Replace Unicode glyphs with ASCII equivalents if the terminal lacks UTF-8."""
    if is_utf8_capable():
        return text

    for unicode_char, ascii_replacement in ICON_MAP.items():
        text = text.replace(unicode_char, ascii_replacement)
    return text


class SafeConsole(Console):
    """Rich Console that sanitizes Unicode output on non-UTF-8 terminals."""

    def __init__(self, *args, **kwargs):
        self._needs_sanitization = not is_utf8_capable()
        if self._needs_sanitization:
            kwargs['legacy_windows'] = True
        super().__init__(*args, **kwargs)

    def print(self, *objects: Any, **kwargs) -> None:
        if self._needs_sanitization:
            objects = tuple(
                sanitize_for_terminal(obj) if isinstance(obj, str) else obj
                for obj in objects
            )
        super().print(*objects, **kwargs)


def configure_logging(verbose: bool = False) -> None:
    """Route ``deadwood`` loggers to a rich handler on stderr.

    Args:
        verbose: Log at DEBUG instead of WARNING
    """
    logger = logging.getLogger("deadwood")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=verbose,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
