"""Tests for diagnostic and result rendering."""

from __future__ import annotations

from pathlib import Path

from typedconf.models import ConfigFileResult, Diagnostic
from typedconf.reporting import format_diagnostic, format_result


def _diagnostic(**overrides) -> Diagnostic:
    values = {
        "file": "/srv/app/local.py",
        "line": 3,
        "char": 15,
        "message": 'Incompatible types in assignment (expression has type "str", variable has type "int")',
        "severity": "error",
        "text": 'config.port = "3001"',
    }
    values.update(overrides)
    return Diagnostic(**values)


def test_format_diagnostic_points_caret_at_column() -> None:
    rendered = format_diagnostic(_diagnostic())

    header, source, caret = rendered.splitlines()
    assert header.startswith("/srv/app/local.py:3:15: error: Incompatible types")
    assert source == '    config.port = "3001"'
    assert caret == "    " + " " * 14 + "^"


def test_format_diagnostic_keeps_tabs_in_caret_line() -> None:
    rendered = format_diagnostic(_diagnostic(text="\tconfig.port = x", char=3))

    caret = rendered.splitlines()[2]
    assert caret == "    \t ^"


def test_format_diagnostic_without_source_text_is_single_line() -> None:
    rendered = format_diagnostic(_diagnostic(text="", line=1, char=1))

    assert "\n" not in rendered


def test_format_diagnostic_relativizes_paths_under_cwd(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    target = tmp_path / "home" / "local.py"

    rendered = format_diagnostic(_diagnostic(file=str(target)))

    assert rendered.startswith("home/local.py:3:15: ")


def test_format_result_variants() -> None:
    assert format_result(ConfigFileResult("/x/a.py", exists=False, loaded=False)) == (
        "/x/a.py: not found, skipped"
    )
    assert format_result(ConfigFileResult("/x/a.py", exists=True, loaded=True)) == "/x/a.py: loaded"
    assert format_result(
        ConfigFileResult("/x/a.py", exists=True, loaded=False, exception="KeyError: 'port'")
    ) == "/x/a.py: failed: KeyError: 'port'"


def test_format_result_lists_diagnostics() -> None:
    result = ConfigFileResult(
        "/x/a.py",
        exists=True,
        loaded=False,
        errors=[_diagnostic(), _diagnostic(line=4)],
    )

    rendered = format_result(result).splitlines()

    assert rendered[0] == "/x/a.py: rejected with 2 diagnostics"
    assert sum(1 for line in rendered if ": error: " in line) == 2
