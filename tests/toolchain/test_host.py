"""Tests for typedconf.toolchain.host."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from typedconf.config import ToolchainSettings
from typedconf.toolchain import check_script
from typedconf.toolchain.host import SCRIPT_MODULE, ToolchainHost


def test_get_source_serves_script_from_memory(scripts) -> None:
    schema = scripts.schema()
    script = scripts.write("home/local.py", "on disk\n")
    host = ToolchainHost(schema)

    host.load_script(script, "in memory\n")

    assert host.get_source(script) == "in memory\n"
    assert host.get_source(host.source_path) == "in memory\n"
    assert host.get_source(str(schema.path)) == schema.path.read_text(encoding="utf-8")
    assert host.get_source(scripts.missing("nowhere.py")) is None


def test_script_source_path_has_no_file_behind_it(scripts) -> None:
    schema = scripts.schema()
    host = ToolchainHost(schema)

    assert host.source_path.parent == schema.directory
    assert not host.source_path.exists()
    assert not host.is_script(host.source_path)

    host.load_script(scripts.write("home/local.py", ""), "")
    assert host.is_script(host.source_path)


def test_resolve_imports_from_script_is_rooted_at_schema_directory(scripts) -> None:
    schema = scripts.schema()
    helper = scripts.write("app/typedconf_host_helper.py", "PORT = 1\n")
    scripts.write("home/typedconf_host_sibling.py", "PORT = 2\n")
    script = scripts.write("home/local.py", "")
    host = ToolchainHost(schema)
    host.load_script(script, "")

    resolved = host.resolve_imports(
        ["typedconf_host_helper", "typedconf_host_sibling", "schema", ".typedconf_host_helper"],
        script,
    )

    assert resolved == [str(helper.resolve()), None, str(schema.path), None]


def test_resolve_imports_from_other_files_uses_the_build_search_path(scripts) -> None:
    schema = scripts.schema()
    helper = scripts.write("app/typedconf_host_helper.py", "PORT = 1\n")
    scripts.write("home/typedconf_host_sibling.py", "PORT = 2\n")
    other = scripts.write("home/other.py", "")
    host = ToolchainHost(schema)
    host.load_script(scripts.write("home/local.py", ""), "")

    resolved = host.resolve_imports(["typedconf_host_sibling", "typedconf_host_helper"], other)

    assert resolved == [None, str(helper.resolve())]
    assert str(schema.directory) in host.search_paths.python_path


def test_resolve_imports_handles_relative_specifiers(scripts) -> None:
    schema = scripts.schema()
    ports = scripts.write("app/settings/ports.py", "HTTP = 80\n")
    package_init = scripts.write("app/settings/__init__.py", "")
    base = scripts.write("app/settings/base.py", "")
    nested = scripts.write("app/settings/extra/deep.py", "")
    host = ToolchainHost(schema)

    assert host.resolve_imports([".ports", ".", ".missing"], base) == [
        str(ports.resolve()),
        str(package_init.resolve()),
        None,
    ]
    assert host.resolve_imports(["..ports"], nested) == [str(ports.resolve())]


def test_resolve_imports_agrees_with_the_checker(scripts) -> None:
    schema = scripts.schema()
    scripts.write("app/typedconf_host_agree.py", "PORT: int = 1\n")
    scripts.write("home/typedconf_host_disagree.py", "PORT: int = 2\n")
    host = ToolchainHost(schema)

    for module in ("typedconf_host_agree", "typedconf_host_disagree"):
        script = scripts.write(f"home/use_{module}.py", f"import {module}\n")
        checked = check_script(script, script.read_text(encoding="utf-8"), host=host)
        (resolved,) = host.resolve_imports([module], script)
        assert checked.ok == (resolved is not None), module


def test_resolve_imports_finds_standard_declarations(scripts) -> None:
    host = ToolchainHost(scripts.schema())

    (resolved,) = host.resolve_imports(["os"], scripts.missing("unused.py"))

    assert resolved is not None
    assert resolved.endswith(".pyi")
    assert "typeshed" in resolved


def test_build_sources_hands_mypy_the_in_memory_text(scripts) -> None:
    schema = scripts.schema()
    script = scripts.write("home/local.py", "")
    host = ToolchainHost(schema)
    host.load_script(script, "config = 1\n")

    (source,) = host.build_sources()

    assert source.module == SCRIPT_MODULE
    assert source.path == str(host.source_path)
    assert source.text == "config = 1\n"
    assert source.base_dir == str(schema.directory)
    assert host.script_path == script.resolve()


def test_build_sources_requires_loaded_script(scripts) -> None:
    host = ToolchainHost(scripts.schema())

    with pytest.raises(RuntimeError, match="No script loaded"):
        host.build_sources()


def test_options_are_deterministic(scripts) -> None:
    host = ToolchainHost(scripts.schema(), ToolchainSettings(python_version=(3, 11)))

    options = host.options
    assert options.python_version == (3, 11)
    assert options.incremental is False
    assert options.cache_dir == os.devnull
    assert options.follow_imports == "silent"
    assert options.show_column_numbers is True
    assert options.show_absolute_path is True
    assert options.disallow_untyped_defs is False


def test_options_enable_cache_and_strict_mode(scripts, tmp_path: Path) -> None:
    settings = ToolchainSettings(strict=True, cache_dir=tmp_path / "cache")

    options = ToolchainHost(scripts.schema(), settings).options

    assert options.incremental is True
    assert options.cache_dir == str(tmp_path / "cache")
    assert options.disallow_untyped_defs is True
    assert options.strict_equality is True
