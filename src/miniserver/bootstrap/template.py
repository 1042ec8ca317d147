"""Render and write the generated bootstrap program."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from string import Template

from miniserver import config
from miniserver.errors import BootstrapWriteError, UnsafeSubstitutionError

logger = logging.getLogger(__name__)

# Characters that would terminate or corrupt a single-quoted Python literal.
UNSAFE_CHARACTERS = frozenset("'\"\\\n\r\x00")

BOOTSTRAP_TEMPLATE = Template(
    '''"""Entry point generated by miniserver; rewritten on every start."""

import os

import models
from miniserver import server, utils

WORKDIR = '${workdir}'


def init():
    services = utils.import_file(os.path.join(WORKDIR, '${services_config}'))
    handlers = utils.link(WORKDIR, '${handlers_path}')
    server.serve(models, handlers, services)


init()
'''
)


@dataclass(frozen=True)
class BootstrapParams:
    """Run-specific values embedded in the bootstrap program.

    Attributes:
        workdir: Project working directory the runtime resolves files from.
        services_config: Services configuration filename, relative to `workdir`.
        build_dir: Build directory, normally relative to `workdir`.
    """

    workdir: Path
    services_config: str = config.SERVICES_CONFIG_FILE
    build_dir: str = config.BUILD_DIR

    @property
    def handlers_path(self) -> str:
        """The `<build_dir>/handlers` path handed to the linker."""
        return str(PurePosixPath(self.build_dir) / config.HANDLERS_SUBDIR)

    def substitutions(self) -> dict[str, str]:
        """Return the template substitutions, validated for safe embedding.

        Raises:
            UnsafeSubstitutionError: If a value contains quote, backslash,
                newline or NUL characters.
        """
        values = {
            "workdir": Path(self.workdir).as_posix(),
            "services_config": self.services_config,
            "handlers_path": self.handlers_path,
        }
        for field, value in values.items():
            if not value or UNSAFE_CHARACTERS.intersection(value):
                raise UnsafeSubstitutionError(field, value)
        return values


def render_bootstrap(params: BootstrapParams) -> str:
    """Render the bootstrap program text for `params`."""
    return BOOTSTRAP_TEMPLATE.substitute(params.substitutions())


def write_bootstrap(build_dir: Path, text: str) -> Path:
    """Write `text` to `<build_dir>/index.py`, replacing any previous file.

    The build directory must already exist; it is never created here, so a
    bootstrap is only ever written after the workspace has been prepared.

    Returns:
        Path of the written bootstrap.

    Raises:
        BootstrapWriteError: If the file cannot be written.
    """
    path = build_dir / config.BOOTSTRAP_FILENAME
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise BootstrapWriteError(path, str(e)) from e
    logger.debug("Wrote bootstrap program %s", path)
    return path


def synthesize_bootstrap(params: BootstrapParams, build_dir: Path) -> Path:
    """Render the bootstrap for `params` and write it into `build_dir`."""
    return write_bootstrap(build_dir, render_bootstrap(params))
