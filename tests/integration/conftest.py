"""Default marks for tests under `tests/integration/`."""

from pathlib import Path

import pytest

INTEGRATION_ROOT = Path(__file__).parent.resolve()
MARKER_NAME = "integration"


@pytest.hookimpl(tryfirst=True)
def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]  # pylint: disable=unused-argument
) -> None:
    """Add default `integration` marks to items in `tests/integration/`."""
    for item in items:
        if INTEGRATION_ROOT in item.path.resolve().parents:
            if not any(m.name == MARKER_NAME for m in item.iter_markers()):
                item.add_marker(pytest.mark.integration)
