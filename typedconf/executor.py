"""Sandboxed execution of compiled config scripts."""

from __future__ import annotations

import builtins
import hashlib
import importlib
import importlib.util
import sys
import traceback
from dataclasses import dataclass, field
from importlib.machinery import PathFinder
from pathlib import Path
from types import ModuleType
from typing import Any, Dict, Mapping, Optional

from .logging import get_logger
from .models import CompiledUnit
from .schema import SchemaModule
from .toolchain.rewriter import CONTEXT_NAME

logger = get_logger("executor")


@dataclass
class ExecutionContext:
    """Values handed to a compiled script's entry point."""

    exports: Dict[str, Any]
    require: "ModuleLoader"
    filename: str
    dirname: str
    state: Any


@dataclass
class ExecutionResult:
    """Outcome of running one compiled unit."""

    exports: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.exception is None


class ModuleLoader:
    """Resolves run-time imports for config scripts.

    Top-level modules are looked up under ``root`` (the process working
    directory unless told otherwise) before falling back to the regular import
    system. Names in ``aliases`` map to files loaded by absolute path; the
    schema module is registered this way so scripts can import it wherever
    they live.
    """

    def __init__(self, root: Path | None = None, *, aliases: Mapping[str, Path] | None = None) -> None:
        self.root = (root or Path.cwd()).resolve()
        self.aliases = {name: Path(path).resolve() for name, path in (aliases or {}).items()}
        self._files: Dict[Path, ModuleType] = {}

    def __call__(self, name: str) -> ModuleType:
        """Load a module by dotted name or by a path relative to ``root``."""
        if name in self.aliases:
            return self._load_file(self.aliases[name])
        if name.startswith(".") or name.endswith(".py") or "/" in name:
            return self._load_file(self.root / name)
        self._ensure_top_level(name.partition(".")[0])
        return importlib.import_module(name)

    def import_hook(
        self,
        name: str,
        globals: Mapping[str, Any] | None = None,
        locals: Mapping[str, Any] | None = None,
        fromlist: Any = (),
        level: int = 0,
    ) -> ModuleType:
        """Drop-in ``__import__`` used by statement-level imports inside scripts."""
        if level == 0:
            if name in self.aliases:
                return self._load_file(self.aliases[name])
            self._ensure_top_level(name.partition(".")[0])
        return builtins.__import__(name, globals, locals, fromlist, level)

    def _ensure_top_level(self, name: str) -> None:
        if name in sys.modules:
            return
        spec = PathFinder.find_spec(name, [str(self.root)])
        if spec is None or spec.loader is None:
            return
        module = importlib.util.module_from_spec(spec)
        sys.modules[name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(name, None)
            raise

    def _load_file(self, path: Path) -> ModuleType:
        path = path.resolve()
        cached = self._files.get(path)
        if cached is not None:
            return cached
        module_name = _file_module_name(path)
        module = sys.modules.get(module_name)
        if module is None:
            spec = importlib.util.spec_from_file_location(module_name, path)
            if spec is None or spec.loader is None:
                raise ImportError(f"Cannot load module from {path}", path=str(path))
            module = importlib.util.module_from_spec(spec)
            sys.modules[module_name] = module
            try:
                spec.loader.exec_module(module)
            except BaseException:
                sys.modules.pop(module_name, None)
                raise
        self._files[path] = module
        return module


def schema_loader(schema: SchemaModule, root: Path | None = None) -> ModuleLoader:
    """Return a loader rooted at ``root`` that also knows where the schema lives."""
    return ModuleLoader(root, aliases={schema.module_name: schema.path})


def execute_unit(
    unit: CompiledUnit,
    state: Any,
    *,
    loader: ModuleLoader | None = None,
) -> ExecutionResult:
    """Run ``unit`` once against ``state`` and contain anything it raises.

    Without a ``loader`` one rooted at the working directory is used, with the
    unit's schema registered so the prologue's schema import resolves.
    Mutations made before an exception are kept; there is no rollback.
    """
    loader = loader or schema_loader(unit.schema)
    filename = str(unit.path)
    context = ExecutionContext(
        exports={},
        require=loader,
        filename=filename,
        dirname=str(unit.path.parent),
        state=state,
    )
    namespace: Dict[str, Any] = {
        "__name__": f"__typedconf_{unit.path.stem}__",
        "__builtins__": {**vars(builtins), "__import__": loader.import_hook},
        "__file__": filename,
        "__dirname__": context.dirname,
        "exports": context.exports,
        "require": context.require,
        CONTEXT_NAME: context,
    }
    try:
        exec(unit.code, namespace)
    except (Exception, SystemExit) as exc:
        message = describe_exception(exc)
        logger.debug("%s raised %s", filename, message)
        return ExecutionResult(exports=context.exports, exception=message)
    return ExecutionResult(exports=context.exports)


def describe_exception(exc: BaseException) -> str:
    """Return a one-line ``Type: message`` description of ``exc``."""
    lines = traceback.format_exception_only(type(exc), exc)
    # SyntaxError indents its source excerpt; notes follow the summary line
    for line in lines:
        if line and not line[0].isspace():
            return line.strip()
    return type(exc).__name__


def _file_module_name(path: Path) -> str:
    digest = hashlib.sha1(str(path).encode("utf-8")).hexdigest()[:12]
    return f"_typedconf_{path.stem}_{digest}"


__all__ = [
    "ExecutionContext",
    "ExecutionResult",
    "ModuleLoader",
    "describe_exception",
    "execute_unit",
    "schema_loader",
]
