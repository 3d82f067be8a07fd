"""Type-check rewritten scripts with mypy and emit executable units."""

from __future__ import annotations

import ast
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from mypy.build import build
from mypy.errors import CompileError

from ..config import ToolchainSettings
from ..logging import get_logger
from ..models import CompiledUnit, Diagnostic
from ..schema import SchemaModule
from .host import ToolchainHost
from .rewriter import RewrittenScript, rewrite_script

_MESSAGE_PATTERN = re.compile(
    r"^(?P<file>.+?):(?:(?P<line>\d+):)?(?:(?P<column>\d+):)? "
    r"(?P<severity>error|warning|note): (?P<message>.*)$"
)

logger = get_logger("toolchain.pipeline")


@dataclass
class CheckResult:
    """Either the diagnostics for a script or its compiled unit, never both."""

    diagnostics: List[Diagnostic] = field(default_factory=list)
    unit: Optional[CompiledUnit] = None

    @property
    def ok(self) -> bool:
        return not self.diagnostics and self.unit is not None


def check_script(
    path: Path,
    text: str,
    schema: SchemaModule | None = None,
    *,
    settings: ToolchainSettings | None = None,
    host: ToolchainHost | None = None,
) -> CheckResult:
    """Statically validate one script and compile it when mypy reports nothing."""
    if host is None:
        if schema is None:
            raise ValueError("check_script needs either a schema or a toolchain host")
        host = ToolchainHost(schema, settings)
    path = Path(path).resolve()
    rewritten = rewrite_script(text, host.schema, host.settings)
    host.load_script(path, rewritten.text)

    messages = run_mypy(host)
    diagnostics = [_to_diagnostic(message, host, rewritten, text) for message in messages]
    if diagnostics:
        logger.debug("%s: %d diagnostic(s)", path, len(diagnostics))
        return CheckResult(diagnostics=diagnostics)

    try:
        unit = emit(path, rewritten)
    except SyntaxError as exc:
        return CheckResult(diagnostics=[_syntax_diagnostic(path, exc, rewritten, text)])
    return CheckResult(unit=unit)


def run_mypy(host: ToolchainHost) -> List[str]:
    """Run mypy over the host's script and return its formatted messages."""
    try:
        result = build(host.build_sources(), host.options, fscache=host.fscache)
    except CompileError as exc:
        # blocking errors such as syntax errors abort the build
        return [message for message in exc.messages if message.strip()]
    return [message for message in result.errors if message.strip()]


def emit(path: Path, rewritten: RewrittenScript) -> CompiledUnit:
    """Compile the rewritten text with line numbers pointing into the author's file."""
    tree = ast.parse(rewritten.text, filename=str(path))
    for node in ast.walk(tree):
        lineno = getattr(node, "lineno", None)
        if lineno is None:
            continue
        node.lineno = rewritten.original_line(lineno)
        end_lineno = getattr(node, "end_lineno", None)
        if end_lineno is not None:
            node.end_lineno = max(node.lineno, rewritten.original_line(end_lineno))
    code = compile(tree, str(path), "exec", dont_inherit=True)
    return CompiledUnit(
        path=path,
        source=rewritten.text,
        code=code,
        global_name=rewritten.global_name,
        schema=rewritten.schema,
    )


def _to_diagnostic(
    message: str, host: ToolchainHost, rewritten: RewrittenScript, source: str
) -> Diagnostic:
    script_path = host.script_path
    match = _MESSAGE_PATTERN.match(message)
    if match is None:
        return Diagnostic(
            file=str(script_path),
            line=1,
            char=1,
            message=message.strip(),
            severity="error",
            text=_line_text(source, 1),
        )

    file = match.group("file")
    line = int(match.group("line") or 1)
    column = int(match.group("column") or 1)
    if script_path is not None and host.is_script(file):
        file = str(script_path)
        if rewritten.in_prologue(line):
            column = 1
        line = rewritten.original_line(line)
        text = _line_text(source, line)
    else:
        other = host.get_source(file)
        text = _line_text(other, line) if other is not None else ""

    return Diagnostic(
        file=file,
        line=line,
        char=column,
        message=match.group("message"),
        severity=match.group("severity"),
        text=text,
    )


def _syntax_diagnostic(
    path: Path, exc: SyntaxError, rewritten: RewrittenScript, source: str
) -> Diagnostic:
    line = rewritten.original_line(exc.lineno or 1)
    return Diagnostic(
        file=str(path),
        line=line,
        char=max(1, exc.offset or 1),
        message=exc.msg,
        severity="error",
        text=_line_text(source, line),
    )


def _line_text(source: str, line: int) -> str:
    lines = source.splitlines()
    if 1 <= line <= len(lines):
        return lines[line - 1]
    return ""


__all__ = ["CheckResult", "check_script", "emit", "run_mypy"]
