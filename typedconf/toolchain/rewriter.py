"""Turns raw config scripts into units mypy can check and Python can run."""

from __future__ import annotations

import ast
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..config import ToolchainSettings
from ..schema import SchemaModule

CONTEXT_NAME = "__typedconf_context__"
_TYPING_ALIAS = "__typedconf_typing__"
_SCHEMA_TYPE_ALIAS = "__typedconf_schema_type__"


@dataclass
class RewrittenScript:
    """Checkable text plus what is needed to map positions back to the author's file."""

    text: str
    prologue_lines: int
    imports_schema: bool
    global_name: str
    schema: SchemaModule

    def original_line(self, line: int) -> int:
        """Map a 1-based line of the rewritten text to the author's file."""
        return max(1, line - self.prologue_lines)

    def in_prologue(self, line: int) -> bool:
        return line <= self.prologue_lines


def rewrite_script(
    source: str,
    schema: SchemaModule,
    settings: ToolchainSettings | None = None,
) -> RewrittenScript:
    """Substitute the placeholder, import the schema type and bind the state global.

    The prologue is placed above the author's code. The schema type is imported
    for real, so scripts may use it as a value; only stub schemas (``.pyi``)
    are imported for the type checker alone, since they cannot be executed.
    """
    settings = settings or ToolchainSettings()
    module = schema.module_name
    type_name = settings.type_name

    body = source.replace(settings.placeholder, module)
    tree = _parse(body)
    body, futures = _hoist_future_imports(body, tree)
    imports_schema = tree is not None and references_schema(tree, module)

    imports: List[str] = []
    if not imports_schema:
        imports.append(f"from {module} import {type_name}")
    imports.append(f"from {module} import {type_name} as {_SCHEMA_TYPE_ALIAS}")

    prologue: List[str] = ["from __future__ import annotations", *futures]
    prologue.append(f"import typing as {_TYPING_ALIAS}")
    if schema.path.suffix == ".pyi":
        prologue.append(f"if {_TYPING_ALIAS}.TYPE_CHECKING:")
        prologue.extend(f"    {line}" for line in imports)
    else:
        prologue.extend(imports)
    prologue.extend(
        [
            f"exports: {_TYPING_ALIAS}.Dict[str, {_TYPING_ALIAS}.Any]",
            f"require: {_TYPING_ALIAS}.Callable[[str], {_TYPING_ALIAS}.Any]",
            "__dirname__: str",
            f"{CONTEXT_NAME}: {_TYPING_ALIAS}.Any",
            f"{settings.global_name}: {_TYPING_ALIAS}.Final[{_SCHEMA_TYPE_ALIAS}] = {CONTEXT_NAME}.state",
        ]
    )

    text = "\n".join(prologue) + "\n" + body
    return RewrittenScript(
        text=text,
        prologue_lines=len(prologue),
        imports_schema=imports_schema,
        global_name=settings.global_name,
        schema=schema,
    )


def references_schema(tree: ast.AST, module: str) -> bool:
    """Return True when the script already imports the schema module itself."""
    for node in ast.walk(tree):
        if isinstance(node, ast.ImportFrom) and node.level == 0 and node.module == module:
            return True
        if isinstance(node, ast.Import) and any(alias.name == module for alias in node.names):
            return True
    return False


def _parse(body: str) -> Optional[ast.Module]:
    # scripts that do not parse are left untouched; mypy reports the error
    try:
        return ast.parse(body)
    except SyntaxError:
        return None


def _hoist_future_imports(body: str, tree: Optional[ast.Module]) -> Tuple[str, List[str]]:
    """Move top-level ``__future__`` imports out of the body, keeping its line count."""
    if tree is None:
        return body, []
    nodes = [
        node
        for node in tree.body
        if isinstance(node, ast.ImportFrom) and node.module == "__future__"
    ]
    if not nodes:
        return body, []

    lines = body.splitlines(keepends=True)
    futures: List[str] = []
    # right to left so earlier offsets on a shared line stay valid
    for node in reversed(nodes):
        names = ", ".join(
            f"{alias.name} as {alias.asname}" if alias.asname else alias.name
            for alias in node.names
        )
        futures.insert(0, f"from __future__ import {names}")

        first = node.lineno - 1
        last = (node.end_lineno or node.lineno) - 1
        # offsets are utf-8 byte positions
        head = lines[first].encode("utf-8")[: node.col_offset].decode("utf-8")
        tail = lines[last].encode("utf-8")[node.end_col_offset or 0 :].decode("utf-8")
        if not tail.endswith("\n"):
            tail += "\n"
        lines[first] = f"{head}pass{tail}"
        for index in range(first + 1, last + 1):
            lines[index] = "\n"
    return "".join(lines), futures


__all__ = ["CONTEXT_NAME", "RewrittenScript", "references_schema", "rewrite_script"]
