"""Tests for exifcheck/log.py -- CLI color helpers and the log handler."""

import io
import logging
import re

import pytest

from exifcheck import log

HELPERS = [log.cli_success, log.cli_warning, log.cli_error, log.cli_dim]


@pytest.fixture
def color(monkeypatch):
    monkeypatch.setattr(log, '_USE_COLOR', True)


@pytest.fixture(autouse=True)
def _no_color(monkeypatch):
    monkeypatch.setattr(log, '_USE_COLOR', False)


# ---------------------------------------------------------------------------
# Color helpers
# ---------------------------------------------------------------------------

class TestCLIColorEnabled:
    """All CLI functions return ANSI escape codes when color is enabled."""

    @pytest.mark.parametrize('fn', HELPERS)
    def test_colored(self, color, fn):
        result = fn('text')
        assert '\033[' in result
        assert 'text' in result
        assert result.endswith('\033[0m')


class TestCLIColorDisabled:
    """All CLI functions return plain text when color is disabled."""

    @pytest.mark.parametrize('fn', HELPERS)
    def test_plain(self, fn):
        assert fn('text') == 'text'


# ---------------------------------------------------------------------------
# Formatter and handler
# ---------------------------------------------------------------------------

def _record(level, msg, *args):
    return logging.LogRecord('exifcheck.test', level, __file__, 1, msg, args, None)


class TestCLIFormatter:
    _DEBUG_PATTERN = re.compile(r'^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] \[DEBUG\] .+$')

    def test_warning(self):
        line = log.CLIFormatter().format(_record(logging.WARNING, 'tag %s', '0x0131'))
        assert line == '[WARNING] tag 0x0131'

    def test_debug_has_timestamp(self):
        line = log.CLIFormatter().format(_record(logging.DEBUG, 'primary IFD'))
        assert self._DEBUG_PATTERN.match(line), f'Unexpected format: {line!r}'

    def test_colored_by_level(self, color):
        line = log.CLIFormatter().format(_record(logging.ERROR, 'bad'))
        assert line.startswith('\033[1;31m')


class TestConfigureLogging:
    def test_warnings_shown_debug_hidden(self):
        stream = io.StringIO()
        logger = log.configure_logging(stream=stream)
        logging.getLogger('exifcheck.exif.store').warning('issue')
        logging.getLogger('exifcheck.exif.store').debug('trace')
        assert logger.name == 'exifcheck'
        assert '[WARNING] issue' in stream.getvalue()
        assert 'trace' not in stream.getvalue()

    def test_debug(self):
        stream = io.StringIO()
        log.configure_logging(debug=True, stream=stream)
        logging.getLogger('exifcheck.exif.parser').debug('trace')
        assert '[DEBUG] trace' in stream.getvalue()

    def test_reconfigure_replaces_handler(self):
        first, second = io.StringIO(), io.StringIO()
        log.configure_logging(stream=first)
        logger = log.configure_logging(stream=second)
        logging.getLogger('exifcheck').warning('once')
        assert first.getvalue() == ''
        assert second.getvalue().count('once') == 1
        assert len([h for h in logger.handlers if getattr(h, '_exifcheck', False)]) == 1
