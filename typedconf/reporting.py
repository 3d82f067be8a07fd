"""Human-readable rendering of diagnostics and per-file outcomes."""

from __future__ import annotations

from pathlib import Path
from typing import List

from .models import ConfigFileResult, Diagnostic

_INDENT = "    "


def format_diagnostic(diagnostic: Diagnostic) -> str:
    """Render a diagnostic with its source line and a caret under the column."""
    header = (
        f"{_relativize(diagnostic.file)}:{diagnostic.line}:{diagnostic.char}: "
        f"{diagnostic.severity}: {diagnostic.message}"
    )
    if not diagnostic.text.strip():
        return header
    return "\n".join(
        [
            header,
            f"{_INDENT}{diagnostic.text}",
            f"{_INDENT}{_caret_prefix(diagnostic.text, diagnostic.char)}^",
        ]
    )


def format_result(result: ConfigFileResult) -> str:
    """Render the outcome of one config file, including any diagnostics."""
    name = _relativize(result.name)
    if not result.exists:
        return f"{name}: not found, skipped"
    if result.loaded:
        return f"{name}: loaded"
    if result.errors:
        count = len(result.errors)
        lines: List[str] = [f"{name}: rejected with {count} diagnostic{'s' if count != 1 else ''}"]
        lines.extend(format_diagnostic(error) for error in result.errors)
        return "\n".join(lines)
    return f"{name}: failed: {result.exception}"


def _caret_prefix(text: str, char: int) -> str:
    # keep tabs so the caret lines up with the echoed source line
    prefix = text[: max(char - 1, 0)]
    return "".join(ch if ch == "\t" else " " for ch in prefix)


def _relativize(name: str) -> str:
    try:
        return str(Path(name).relative_to(Path.cwd()))
    except ValueError:
        return name


__all__ = ["format_diagnostic", "format_result"]
