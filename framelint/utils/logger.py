"""Logging and terminal-safe text for framelint.

Log records go through Rich's handler so they share the CLI console style.
Text that ends up on a terminal is passed through ``sanitize_for_terminal``,
which swaps the arrows and icons used in messages for ASCII on terminals that
cannot print UTF-8 (legacy Windows consoles mostly).
"""
import locale
import logging
import os
import sys

from rich.logging import RichHandler


# Unicode to ASCII replacements for the glyphs framelint prints
ICON_MAP = {
    '✓': '[OK]',
    '✗': '[FAIL]',
    '⚠': '[WARN]',
    '⚡': '[!]',
    '→': '->',
    '⇒': '=>',
    '│': '|',
    '─': '-',
    '…': '...',
    '•': '*',
}

LOG_LEVEL_ENV = "FRAMELINT_LOG_LEVEL"

_ROOT_LOGGER = "framelint"
_configured = False


def detect_terminal_encoding() -> str:
    """Detect the terminal's encoding capability.

    Returns:
        str: Terminal encoding ('utf-8', 'cp1252', 'ascii', etc.)
    """
    if hasattr(sys.stdout, 'encoding') and sys.stdout.encoding:
        return sys.stdout.encoding.lower()

    try:
        return locale.getpreferredencoding().lower()
    except (LookupError, ValueError):
        return 'ascii'


def is_utf8_capable() -> bool:
    """Check if the terminal can handle UTF-8 Unicode characters."""
    return detect_terminal_encoding() in ('utf-8', 'utf8', 'utf_8')


def sanitize_for_terminal(text: str) -> str:
    """Replace Unicode glyphs with ASCII equivalents if the terminal needs it.

    Args:
        text: Text potentially containing Unicode glyphs

    Returns:
        str: Text safe for the current terminal
    """
    if is_utf8_capable():
        return text

    sanitized = text
    for unicode_char, ascii_replacement in ICON_MAP.items():
        sanitized = sanitized.replace(unicode_char, ascii_replacement)
    return sanitized


def configure_logging(level: str = None) -> None:
    """Attach a Rich handler to the framelint logger hierarchy.

    The level comes from ``level``, then ``FRAMELINT_LOG_LEVEL``, then WARNING.
    Calling it again only updates the level.
    """
    global _configured

    level_name = (level or os.getenv(LOG_LEVEL_ENV) or "WARNING").upper()
    root = logging.getLogger(_ROOT_LOGGER)
    root.setLevel(getattr(logging, level_name, logging.WARNING))

    if not _configured:
        handler = RichHandler(show_path=False, rich_tracebacks=False, markup=False)
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        root.addHandler(handler)
        root.propagate = False
        _configured = True


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``framelint`` hierarchy.

    Module loggers are cheap to create; handlers are only attached by
    ``configure_logging`` (the CLI calls it), so library users keep control.
    """
    if not name.startswith(_ROOT_LOGGER):
        name = f"{_ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
