"""Virtual toolchain host feeding config scripts and the schema to mypy."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from mypy.build import default_data_dir
from mypy.fscache import FileSystemCache
from mypy.modulefinder import BuildSource, FindModuleCache, SearchPaths, compute_search_paths
from mypy.options import Options

from ..config import ToolchainSettings
from ..logging import get_logger
from ..schema import SchemaModule

SCRIPT_MODULE = "__typedconf_script__"

_STRICT_FLAGS = (
    "disallow_untyped_defs",
    "disallow_incomplete_defs",
    "disallow_any_generics",
    "warn_return_any",
    "strict_equality",
)
_MODULE_SUFFIXES = (".py", ".pyi", "/__init__.py", "/__init__.pyi")


class ToolchainHost:
    """Supplies source text and import resolution for one schema.

    The script under validation never reaches mypy from disk. It is handed over
    under a source path with no file behind it, beside the schema, so the
    checker can only see the rewritten in-memory text. The schema module, the
    typeshed stubs bundled with mypy and any other import are read from disk
    through mypy's file-system cache.
    """

    def __init__(self, schema: SchemaModule, settings: ToolchainSettings | None = None) -> None:
        self.schema = schema
        self.settings = settings or ToolchainSettings()
        self.fscache = FileSystemCache()
        self.options = self._build_options()
        self.logger = get_logger("toolchain.host")
        self.source_path = schema.directory / f"{SCRIPT_MODULE}.py"
        self._script_path: Optional[Path] = None
        self._script_text: Optional[str] = None
        self._finder: Optional[FindModuleCache] = None

    @property
    def script_path(self) -> Optional[Path]:
        """Author's path of the loaded script."""
        return self._script_path

    def load_script(self, path: Path, text: str) -> None:
        """Install the in-memory unit that the next check will validate."""
        self._script_path = path.resolve()
        self._script_text = text
        # Files imported by scripts may change between reload passes.
        self.fscache.flush()
        self._finder = None

    def is_script(self, name: str | Path) -> bool:
        """True for both the author's path and the source path mypy reports."""
        if self._script_path is None:
            return False
        path = Path(name).resolve()
        return path == self._script_path or path == self.source_path

    def get_source(self, name: str | Path) -> Optional[str]:
        """Return the text mypy sees for ``name``, or None when it cannot be read."""
        if self.is_script(name):
            return self._script_text
        try:
            data = self.fscache.read(str(name))
        except OSError:
            return None
        return data.decode("utf-8", errors="replace")

    def resolve_imports(
        self, specifiers: Sequence[str], containing_file: str | Path
    ) -> List[Optional[str]]:
        """Resolve each module specifier to a file path, or None when unresolved.

        Absolute specifiers go through the search path of the build itself,
        which is rooted at the schema's directory; the directory the script
        lives in is never searched. Relative specifiers are resolved against
        the containing file's package and are never valid inside the script.
        """
        resolved: List[Optional[str]] = []
        for specifier in specifiers:
            if specifier.startswith("."):
                result = self._resolve_relative(specifier, containing_file)
            else:
                found = self._module_finder().find_module(specifier)
                result = found if isinstance(found, str) else None
            if result is None:
                self.logger.debug("Unresolved import %s from %s", specifier, containing_file)
            resolved.append(result)
        return resolved

    @property
    def search_paths(self) -> SearchPaths:
        """The module search path mypy computes for ``build_sources()``."""
        return self._module_finder().search_paths

    def build_sources(self) -> List[BuildSource]:
        """Return the mypy build input for the loaded script."""
        if self._script_path is None or self._script_text is None:
            raise RuntimeError("No script loaded into the toolchain host")
        return [self._source(self._script_text)]

    def _source(self, text: Optional[str]) -> BuildSource:
        return BuildSource(
            str(self.source_path),
            SCRIPT_MODULE,
            text,
            base_dir=str(self.schema.directory),
        )

    def _module_finder(self) -> FindModuleCache:
        if self._finder is None:
            search_paths = compute_search_paths(
                [self._source(None)], self.options, default_data_dir()
            )
            self._finder = FindModuleCache(search_paths, self.fscache, self.options)
        return self._finder

    def _resolve_relative(self, specifier: str, containing_file: str | Path) -> Optional[str]:
        if self.is_script(containing_file):
            return None
        name = specifier.lstrip(".")
        package = Path(containing_file).resolve().parent
        for _ in range(len(specifier) - len(name) - 1):
            package = package.parent
        base = package.joinpath(*name.split(".")) if name else package
        candidates = [f"{base}{suffix}" for suffix in _MODULE_SUFFIXES]
        if not name:
            candidates = candidates[2:]
        for candidate in candidates:
            if self.fscache.isfile(candidate):
                return candidate
        return None

    def _build_options(self) -> Options:
        options = Options()
        cache_dir = self.settings.cache_dir
        options.incremental = cache_dir is not None
        options.cache_dir = str(cache_dir) if cache_dir is not None else os.devnull
        options.python_version = self.settings.python_version or sys.version_info[:2]
        options.follow_imports = "silent"
        options.show_column_numbers = True
        options.show_absolute_path = True
        options.hide_error_codes = True
        options.show_error_context = False
        options.color_output = False
        options.pretty = False
        if self.settings.strict:
            for flag in _STRICT_FLAGS:
                setattr(options, flag, True)
        return options


__all__ = ["SCRIPT_MODULE", "ToolchainHost"]
