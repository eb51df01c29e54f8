"""Shared fixtures for the Deadwood test suite."""
from pathlib import Path

import pytest

from deadwood.analyzer.graph_provider import ImportOptions, SymbolGraph, load_symbol_graph
from deadwood.config import Settings

FIXTURES_DIR = Path(__file__).parent / 'fixtures'
SAMPLE_APP = FIXTURES_DIR / 'sample_app.json'

PKG = "com.github.timtebeek.archunit"

ENV_VARS = (
    "DEADWOOD_BASELINE_DIR",
    "DEADWOOD_PRIORITY",
    "DEADWOOD_SHRINK_BASELINE",
    "DEADWOOD_GRAPH",
    "DEADWOOD_VERBOSE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Blank out DEADWOOD_* variables so the developer's shell cannot leak in."""
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")


@pytest.fixture
def sample_graph():
    """The example Spring application, production code only."""
    return load_symbol_graph(SAMPLE_APP)


@pytest.fixture
def settings():
    return Settings()


def make_graph(*classes, options=None):
    """Build a SymbolGraph from inline class records."""
    return SymbolGraph.from_document({"format": 1, "classes": list(classes)}, options or ImportOptions())
