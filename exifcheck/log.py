"""Logging utilities -- ANSI terminal colors and the exifcheck log handler.

Provides consistent color-coded output for the command line, and the
handler that shows store warnings and debug traces on stderr.
"""

import logging
import sys
from datetime import datetime

# ---------------------------------------------------------------------------
# ANSI color codes
# ---------------------------------------------------------------------------

_RESET = '\033[0m'
_DIM = '\033[2m'

_GREEN = '\033[32m'
_YELLOW = '\033[33m'

_BOLD_RED = '\033[1;31m'


def _is_tty():
    """Check if stdout is a terminal (not piped)."""
    try:
        return sys.stdout.isatty()
    except AttributeError:
        return False


# Module-level flag -- set once at import time
_USE_COLOR = _is_tty()


def _c(code: str, text: str) -> str:
    """Apply ANSI code if color is enabled."""
    if _USE_COLOR:
        return f'{code}{text}{_RESET}'
    return text


# ---------------------------------------------------------------------------
# CLI formatting helpers
# ---------------------------------------------------------------------------

def cli_success(text: str) -> str:
    """Green text for success."""
    return _c(_GREEN, text)


def cli_warning(text: str) -> str:
    """Yellow text for metadata warnings."""
    return _c(_YELLOW, text)


def cli_error(text: str) -> str:
    """Red text for errors."""
    return _c(_BOLD_RED, text)


def cli_dim(text: str) -> str:
    """Dim text for secondary information."""
    return _c(_DIM, text)


# ---------------------------------------------------------------------------
# Log records
# ---------------------------------------------------------------------------

_LEVEL_STYLES = {
    logging.DEBUG: cli_dim,
    logging.WARNING: cli_warning,
    logging.ERROR: cli_error,
    logging.CRITICAL: cli_error,
}


def _timestamp() -> str:
    return datetime.now().strftime('%Y-%m-%d %H:%M:%S')


class CLIFormatter(logging.Formatter):
    """One line per record: ``[LEVEL] message``, colored by level.

    Debug records get a timestamp, since they are read as a trace.
    """

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        if record.levelno <= logging.DEBUG:
            line = f'[{_timestamp()}] [DEBUG] {msg}'
        else:
            line = f'[{record.levelname}] {msg}'
        if record.exc_info:
            line += '\n' + self.formatException(record.exc_info)
        style = _LEVEL_STYLES.get(record.levelno, str)
        return style(line)


def configure_logging(debug: bool = False, stream=None) -> logging.Logger:
    """Attach a stderr handler to the ``exifcheck`` logger.

    Warnings are always shown (the store only emits them when asked to);
    debug traces only when ``debug`` is set. Calling again replaces the
    handler installed by a previous call.
    """
    logger = logging.getLogger('exifcheck')
    for handler in list(logger.handlers):
        if getattr(handler, '_exifcheck', False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler._exifcheck = True
    handler.setFormatter(CLIFormatter())
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    return logger
