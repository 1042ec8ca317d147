"""Global pytest fixtures for miniserver."""

from __future__ import annotations

import sys

import pytest

pytest_plugins = [
    "tests.fixtures.projects",
]


@pytest.fixture
def clean_models_module():
    """Drop the generated `models` module imported by a bootstrap run."""
    sys.modules.pop("models", None)
    yield
    sys.modules.pop("models", None)
