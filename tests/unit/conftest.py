"""Default marks for tests under `tests/unit/`."""

from pathlib import Path

import pytest

UNIT_ROOT = Path(__file__).parent.resolve()
MARKER_NAME = "unit"


@pytest.hookimpl(tryfirst=True)
def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]  # pylint: disable=unused-argument
) -> None:
    """Add default `unit` marks to items in `tests/unit/`."""
    for item in items:
        if UNIT_ROOT in item.path.resolve().parents:
            if not any(m.name == MARKER_NAME for m in item.iter_markers()):
                item.add_marker(pytest.mark.unit)
