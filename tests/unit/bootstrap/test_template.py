"""Unit tests for bootstrap rendering and writing."""

from pathlib import Path

import pytest

from miniserver.bootstrap import (
    BootstrapParams,
    render_bootstrap,
    synthesize_bootstrap,
    write_bootstrap,
)
from miniserver.errors import BootstrapWriteError, UnsafeSubstitutionError

# pylint: disable=magic-value-comparison


@pytest.fixture
def params(tmp_path: Path) -> BootstrapParams:
    """Parameters for a project rooted in a temporary directory."""
    return BootstrapParams(
        workdir=tmp_path / "my project",
        services_config="servicesconfig.json",
        build_dir=".miniserver",
    )


def test_handlers_path_is_build_dir_handlers(params):
    """The linker path is `<build_dir>/handlers`."""
    assert params.handlers_path == ".miniserver/handlers"


def test_render_embeds_each_value_exactly_once(params):
    """Working directory, config filename and handlers path appear verbatim once."""
    text = render_bootstrap(params)
    assert text.count(params.workdir.as_posix()) == 1
    assert text.count("servicesconfig.json") == 1
    assert text.count(".miniserver/handlers") == 1


def test_render_calls_steps_in_order(params):
    """Configuration is loaded, then handlers linked, then the server started."""
    text = render_bootstrap(params)
    load = text.index("utils.import_file(")
    link = text.index("utils.link(")
    serve = text.index("server.serve(models, handlers, services)")
    assert load < link < serve
    assert "import models" in text


def test_rendered_program_is_valid_python(params):
    """The rendered text compiles."""
    compile(render_bootstrap(params), "index.py", "exec")


@pytest.mark.parametrize("bad", ["it's.json", 'quo"te.json', "back\\slash.json", "new\nline.json", "", "nul\x00.json"])
def test_render_rejects_unsafe_config_filename(tmp_path, bad):
    """Values that would break the generated literal are refused."""
    params = BootstrapParams(workdir=tmp_path, services_config=bad)
    with pytest.raises(UnsafeSubstitutionError) as exc_info:
        render_bootstrap(params)
    assert exc_info.value.field == "services_config"


def test_render_rejects_unsafe_workdir(tmp_path):
    """A working directory containing a quote is refused as well."""
    params = BootstrapParams(workdir=tmp_path / "o'brien")
    with pytest.raises(UnsafeSubstitutionError) as exc_info:
        render_bootstrap(params)
    assert exc_info.value.field == "workdir"


def test_render_keeps_dollar_signs_verbatim(tmp_path):
    """Template syntax inside a value is not expanded a second time."""
    params = BootstrapParams(workdir=tmp_path, services_config="${workdir}.json")
    assert "'${workdir}.json'" in render_bootstrap(params)


def test_write_overwrites_previous_bootstrap(tmp_path):
    """Writing replaces any prior index.py content."""
    (tmp_path / "index.py").write_text("stale", encoding="utf-8")
    path = write_bootstrap(tmp_path, "fresh\n")
    assert path == tmp_path / "index.py"
    assert path.read_text(encoding="utf-8") == "fresh\n"


def test_write_requires_existing_build_dir(tmp_path):
    """The bootstrap is never written into a build directory that was not prepared."""
    with pytest.raises(BootstrapWriteError):
        write_bootstrap(tmp_path / "missing", "text")


def test_synthesize_renders_then_writes(tmp_path, params):
    """synthesize_bootstrap writes exactly what render_bootstrap returns."""
    path = synthesize_bootstrap(params, tmp_path)
    assert path.read_text(encoding="utf-8") == render_bootstrap(params)
