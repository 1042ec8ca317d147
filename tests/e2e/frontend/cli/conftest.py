"""Fixtures for end-to-end tests of the `miniserver` CLI."""

from pathlib import Path

import pytest
from click.testing import CliRunner

# pylint: disable=redefined-outer-name

E2E_ROOT = Path(__file__).parents[2].resolve()
MARKER_NAME = "e2e"


@pytest.hookimpl(tryfirst=True)
def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]  # pylint: disable=unused-argument
) -> None:
    """Add default `e2e` marks to items in `tests/e2e/`."""
    for item in items:
        if E2E_ROOT in item.path.resolve().parents:
            if not any(m.name == MARKER_NAME for m in item.iter_markers()):
                item.add_marker(pytest.mark.e2e)


@pytest.fixture
def runner():
    """Return a Click CliRunner for invoking CLI commands in tests."""
    return CliRunner()


@pytest.fixture
def fs(runner):
    """Run the test inside an isolated working directory; yields its path."""
    with runner.isolated_filesystem() as path:
        yield Path(path)
