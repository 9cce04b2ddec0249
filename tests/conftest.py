"""Shared fixtures: parsers, node lookup and a clean configuration environment."""
from pathlib import Path

import pytest

from framelint import config as config_module
from framelint.analyzer.parser import LanguageParser
from framelint.analyzer.walker import iter_preorder

SCENES_DIR = Path(__file__).parent / 'fixtures' / 'scenes'

FRAMELINT_ENV = (
    'FRAMELINT_CONFIG',
    'FRAMELINT_PRESET',
    'FRAMELINT_MAX_CALL_DEPTH',
    'FRAMELINT_LOG_LEVEL',
)


@pytest.fixture(scope='session')
def js_parser():
    return LanguageParser('javascript')


@pytest.fixture(scope='session')
def tsx_parser():
    return LanguageParser('tsx')


@pytest.fixture
def parse(js_parser):
    """Parse JavaScript (JSX included) and return the program node."""
    def _parse(source):
        return js_parser.parse_source(source).root_node
    return _parse


@pytest.fixture
def parse_tsx(tsx_parser):
    def _parse(source):
        return tsx_parser.parse_source(source).root_node
    return _parse


@pytest.fixture
def find():
    """First node under ``root`` of a kind, optionally with an exact source text."""
    def _find(root, kind, text=None):
        for node in iter_preorder(root):
            if node.type != kind:
                continue
            if text is None or node.text.decode('utf-8') == text:
                return node
        raise LookupError(f"no {kind} node matching {text!r}")
    return _find


@pytest.fixture
def scenes_dir():
    return SCENES_DIR


@pytest.fixture
def clean_env(monkeypatch):
    """No FRAMELINT_* variables and a fresh Config singleton.

    Each variable is set before it is deleted so monkeypatch also undoes
    values a test loads from a .env file.
    """
    for name in FRAMELINT_ENV:
        monkeypatch.setenv(name, '')
        monkeypatch.delenv(name)
    monkeypatch.setattr(config_module, '_config', None)
    yield monkeypatch
