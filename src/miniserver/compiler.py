"""Reference compiler for miniserver projects.

Copies every Python source of a project into an output directory, keeping the
relative layout, and byte-compiles each copy so that syntax errors surface at
build time rather than when the server starts.

Usage:
    $ python -m miniserver.compiler --out-dir .miniserver [SOURCE_ROOT]
"""

from __future__ import annotations

import os
import py_compile
import shutil
from collections.abc import Iterator
from pathlib import Path

import click

EXCLUDED_DIRS = frozenset(
    {"venv", "env", "tests", "node_modules", "build", "dist", "site-packages"}
)


class SourceCompileError(Exception):
    """Raised when one or more sources fail to compile."""

    def __init__(self, errors: list[py_compile.PyCompileError]) -> None:
        super().__init__(f"{len(errors)} source file(s) failed to compile.")
        self.errors = errors


def _skip_dir(name: str) -> bool:
    return name.startswith((".", "__")) or name in EXCLUDED_DIRS


def iter_sources(root: Path, *, exclude: Path | None = None) -> Iterator[Path]:
    """Yield the Python sources under `root` in a stable order.

    Hidden, dunder and well-known environment/test directories are skipped, as
    is `exclude` (normally the output directory).
    """
    excluded = exclude.resolve() if exclude is not None else None
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        dirnames[:] = sorted(
            d
            for d in dirnames
            if not _skip_dir(d) and (current / d).resolve() != excluded
        )
        for filename in sorted(filenames):
            if filename.endswith(".py"):
                yield current / filename


def compile_tree(source_root: Path, out_dir: Path) -> list[Path]:
    """Copy and byte-compile every source under `source_root` into `out_dir`.

    Args:
        source_root: Project directory to read sources from.
        out_dir: Output directory; created if missing.

    Returns:
        The written source copies, in discovery order.

    Raises:
        SourceCompileError: If any source has a syntax error. All sources are
            attempted before raising.
    """
    source_root = source_root.resolve()
    out_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    errors: list[py_compile.PyCompileError] = []

    for src in iter_sources(source_root, exclude=out_dir):
        dest = out_dir / src.relative_to(source_root)
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src, dest)
        try:
            py_compile.compile(str(dest), dfile=str(src), doraise=True)
        except py_compile.PyCompileError as e:
            errors.append(e)
            continue
        written.append(dest)

    if errors:
        raise SourceCompileError(errors)
    return written


@click.command()
@click.option(
    "--out-dir",
    required=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory to emit compiled output into.",
)
@click.argument(
    "source_root",
    default=".",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
def main(out_dir: Path, source_root: Path) -> None:
    """Compile the project at SOURCE_ROOT into --out-dir."""
    try:
        written = compile_tree(source_root, out_dir)
    except SourceCompileError as e:
        for err in e.errors:
            click.echo(err.msg, err=True)
        raise click.ClickException(str(e)) from e
    click.echo(f"Compiled {len(written)} file(s) into {out_dir}")


if __name__ == "__main__":
    main()  # pylint: disable=no-value-for-parameter
