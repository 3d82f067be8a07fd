"""Tests for typedconf.models."""

from __future__ import annotations

from typedconf.models import ConfigFileResult, Diagnostic


def test_diagnostic_serialises_severity_as_type() -> None:
    diagnostic = Diagnostic(
        file="/srv/app/local.py",
        line=3,
        char=15,
        message="Incompatible types in assignment",
        severity="error",
        text='config.port = "80"',
    )

    assert diagnostic.to_dict() == {
        "file": "/srv/app/local.py",
        "line": 3,
        "char": 15,
        "message": "Incompatible types in assignment",
        "type": "error",
        "text": 'config.port = "80"',
    }


def test_file_result_omits_exception_when_absent() -> None:
    result = ConfigFileResult(name="local.py", exists=False, loaded=False)

    assert result.to_dict() == {
        "name": "local.py",
        "exists": False,
        "loaded": False,
        "errors": [],
    }


def test_file_result_includes_exception_and_errors() -> None:
    diagnostic = Diagnostic("a.py", 1, 1, "boom", "error", "x")
    failed = ConfigFileResult(name="a.py", exists=True, loaded=False, exception="ValueError: bad")
    rejected = ConfigFileResult(name="a.py", exists=True, loaded=False, errors=[diagnostic])

    assert failed.to_dict()["exception"] == "ValueError: bad"
    assert rejected.to_dict()["errors"] == [diagnostic.to_dict()]
