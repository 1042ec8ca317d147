"""Runtime helpers called by the generated bootstrap program.

- :func:`import_file` loads the services configuration.
- :func:`link` discovers compiled handler modules and returns a mapping from
  handler identifier to the module's exported ``handler`` callable.
"""

from __future__ import annotations

import importlib.util
import json
import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

from miniserver import config
from miniserver.errors import HandlerLinkError, ServicesConfigError

logger = logging.getLogger(__name__)

HANDLER_ATTRIBUTE = "handler"  # pragma: no mutate
MODULE_NAMESPACE = "miniserver_handlers"  # pragma: no mutate


def import_file(path: str | Path) -> Any:
    """Read and parse the JSON file at `path`.

    Raises:
        ServicesConfigError: If the file is absent, unreadable or not valid JSON.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ServicesConfigError(path, "file not found") from e
    except OSError as e:
        raise ServicesConfigError(path, str(e)) from e

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ServicesConfigError(path, f"invalid JSON ({e})") from e


def handler_identifier(relative: Path) -> str:
    """Derive a handler identifier from a module path relative to the handlers root.

    Example:
        ``users/create.py`` -> ``users.create``
    """
    return ".".join(relative.with_suffix("").parts)


def _is_linkable(relative: Path) -> bool:
    return not any(part.startswith(("_", ".")) for part in relative.parts)


def _load_module(identifier: str, path: Path) -> Any:
    module_name = f"{MODULE_NAMESPACE}.{identifier}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise HandlerLinkError(path, "not an importable module")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        sys.modules.pop(module_name, None)
        raise HandlerLinkError(path, f"{type(e).__name__}: {e}") from e
    return module


def link(
    root: str | Path, handlers_path: str | Path = config.HANDLERS_SUBDIR
) -> dict[str, Callable[..., Any]]:
    """Import every handler module under `root/handlers_path`.

    Files or directories whose name starts with ``_`` or ``.`` are ignored.

    Args:
        root: Directory `handlers_path` is resolved against.
        handlers_path: Location of the compiled handler modules.

    Returns:
        Mapping from handler identifier to the exported ``handler`` callable.

    Raises:
        HandlerLinkError: If the directory is missing, or any module fails to
            import or does not export a callable ``handler``.
    """
    base = Path(root) / handlers_path
    if not base.is_dir():
        raise HandlerLinkError(base, "handlers directory not found")

    handlers: dict[str, Callable[..., Any]] = {}
    for path in sorted(base.rglob("*.py")):
        relative = path.relative_to(base)
        if not _is_linkable(relative):
            continue
        identifier = handler_identifier(relative)
        module = _load_module(identifier, path)
        exported = getattr(module, HANDLER_ATTRIBUTE, None)
        if not callable(exported):
            raise HandlerLinkError(
                path, f"module does not export a callable '{HANDLER_ATTRIBUTE}'"
            )
        handlers[identifier] = exported
        logger.debug("Linked handler %s from %s", identifier, path)

    logger.info("Linked %d handler(s) from %s", len(handlers), base)
    return handlers
