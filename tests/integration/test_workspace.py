"""Integration tests for workspace preparation with the real compiler subprocess."""

import sys
from pathlib import Path

import pytest

from miniserver import config
from miniserver.bootstrap import BootstrapParams, synthesize_bootstrap
from miniserver.errors import CompilationError, WorkspaceError
from miniserver.workspace import compile_sources, prepare_workspace, recreate_build_dir

# pylint: disable=magic-value-comparison


def _snapshot(root: Path) -> set[str]:
    return {p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file()}


@pytest.fixture(autouse=True)
def default_compiler(monkeypatch):
    """Always use the bundled compiler."""
    monkeypatch.delenv(config.COMPILER_ENV_VAR, raising=False)


def _build(project: Path) -> Path:
    build_dir = prepare_workspace(project / config.BUILD_DIR, cwd=project)
    synthesize_bootstrap(BootstrapParams(workdir=project), build_dir)
    return build_dir


def test_missing_build_dir_is_created(project):
    """A first run succeeds even though the build directory does not exist yet."""
    assert not (project / ".miniserver").exists()
    build_dir = _build(project)
    assert (build_dir / "index.py").is_file()
    assert (build_dir / "handlers" / "ping.py").is_file()


def test_regeneration_is_idempotent_and_drops_stale_files(project):
    """Two runs yield the same tree; leftovers from earlier runs disappear."""
    build_dir = _build(project)
    first = _snapshot(build_dir)
    (build_dir / "stale.txt").write_text("old", encoding="utf-8")
    (build_dir / "handlers" / "removed.py").write_text("x = 1\n", encoding="utf-8")

    _build(project)
    assert _snapshot(build_dir) == first
    assert {f for f in first if not f.endswith(".pyc")} == {
        "handlers/health.py",
        "handlers/ping.py",
        "models.py",
        "index.py",
    }


def test_compilation_failure_raises_with_output(broken_project):
    """A syntax error fails the build and the compiler diagnostics are kept."""
    with pytest.raises(CompilationError) as exc_info:
        prepare_workspace(broken_project / ".miniserver", cwd=broken_project)
    assert exc_info.value.returncode == 1
    assert "broken.py" in exc_info.value.output
    assert not (broken_project / ".miniserver" / "index.py").exists()


def test_missing_compiler_executable(tmp_path):
    """A compiler that cannot be started is a compilation failure."""
    with pytest.raises(CompilationError) as exc_info:
        compile_sources(
            tmp_path, cwd=tmp_path, command=["definitely-not-a-compiler-xyz"]
        )
    assert exc_info.value.returncode is None


def test_custom_compiler_command_from_env(project, monkeypatch):
    """MINISERVER_COMPILER replaces the bundled compiler."""
    monkeypatch.setenv(
        config.COMPILER_ENV_VAR,
        f"'{sys.executable}' -c \"import sys, pathlib; "
        "pathlib.Path(sys.argv[1], 'marker').write_text('ok')\" {out_dir}",
    )
    build_dir = prepare_workspace(project / ".miniserver", cwd=project)
    assert (build_dir / "marker").read_text() == "ok"


def test_recreate_reports_os_errors(tmp_path):
    """A build path that cannot be created surfaces as WorkspaceError."""
    blocker = tmp_path / "file"
    blocker.write_text("not a directory", encoding="utf-8")
    with pytest.raises(WorkspaceError):
        recreate_build_dir(blocker / "build")
