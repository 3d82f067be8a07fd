"""Reload orchestration for config scripts sharing one mutable state."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Generic, List, Optional, Sequence, TypeVar

from .config import ToolchainSettings
from .executor import describe_exception, execute_unit, schema_loader
from .logging import get_logger, get_script_logger
from .models import ConfigFileResult
from .schema import SchemaModule, resolve_schema
from .toolchain import ToolchainHost, check_script

T = TypeVar("T")

ResultCallback = Callable[[ConfigFileResult], None]


class ConfigManager(Generic[T]):
    """Owns the ordered config files and the live state they mutate.

    ``reload()`` is not reentrant; callers on several threads must serialise it.
    """

    def __init__(
        self,
        config_file_paths: Sequence[Path | str],
        schema: SchemaModule,
        *,
        initial: Optional[T] = None,
        regenerate: Optional[Callable[[], T]] = None,
        result_callback: Optional[ResultCallback] = None,
        settings: ToolchainSettings | None = None,
    ) -> None:
        if (initial is None) == (regenerate is None):
            raise ValueError("Exactly one of 'initial' or 'regenerate' must be provided")
        self.schema = schema
        self.logger = get_logger("manager")
        self._paths = [Path(path) for path in config_file_paths]
        self._regenerate = regenerate
        self._result_callback = result_callback
        self._host = ToolchainHost(schema, settings)
        if initial is not None:
            self._state: T = initial
        else:
            assert regenerate is not None
            self._state = regenerate()

    @property
    def state(self) -> T:
        """The live state; scripts mutate this object in place."""
        return self._state

    @property
    def paths(self) -> List[Path]:
        return list(self._paths)

    def reload(self) -> List[ConfigFileResult]:
        """Re-run every config file in order, regenerating the state first if possible."""
        if self._regenerate is not None:
            self._state = self._regenerate()
        return self.apply_files()

    def apply_files(self) -> List[ConfigFileResult]:
        """Run every config file in order against the current state."""
        self.logger.debug("Applying %d config file(s)", len(self._paths))
        results: List[ConfigFileResult] = []
        for path in self._paths:
            result = self._attempt(path)
            self._log_result(result)
            results.append(result)
            if self._result_callback is not None:
                self._result_callback(result)
        return results

    def _attempt(self, path: Path) -> ConfigFileResult:
        name = str(path)
        if not path.exists():
            return ConfigFileResult(name=name, exists=False, loaded=False)
        try:
            return self._load(path)
        except Exception as exc:  # one broken file must not end the pass
            self._log_exception(f"Unexpected failure while loading {name}", exc)
            return ConfigFileResult(
                name=name,
                exists=True,
                loaded=False,
                exception=describe_exception(exc),
            )

    def _load(self, path: Path) -> ConfigFileResult:
        name = str(path)
        text = path.read_text(encoding="utf-8")
        checked = check_script(path, text, host=self._host)
        if checked.diagnostics or checked.unit is None:
            return ConfigFileResult(
                name=name, exists=True, loaded=False, errors=checked.diagnostics
            )

        outcome = execute_unit(checked.unit, self._state, loader=schema_loader(self.schema))
        if outcome.exception is not None:
            return ConfigFileResult(
                name=name, exists=True, loaded=False, exception=outcome.exception
            )
        return ConfigFileResult(name=name, exists=True, loaded=True)

    def _log_exception(self, message: str, exc: Exception) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.exception("%s: %s", message, exc)
        else:
            self.logger.error("%s: %s", message, exc)

    def _log_result(self, result: ConfigFileResult) -> None:
        logger = get_script_logger(result.name)
        if result.loaded:
            logger.debug("Loaded %s", result.name)
        elif not result.exists:
            logger.debug("Skipping %s: file does not exist", result.name)
        elif result.errors:
            logger.warning(
                "Rejected %s with %d diagnostic(s)", result.name, len(result.errors)
            )
        else:
            logger.warning("Failed to run %s: %s", result.name, result.exception)


def initialize(
    config_file_paths: Sequence[Path | str],
    schema_path: Path | str,
    *,
    initial: Optional[T] = None,
    regenerate: Optional[Callable[[], T]] = None,
    result_callback: Optional[ResultCallback] = None,
    settings: ToolchainSettings | None = None,
) -> ConfigManager[T]:
    """Resolve the schema, create the state and apply every config file once.

    Raises ``SchemaError`` when the schema module cannot be read; every other
    problem is reported per file through ``result_callback``.
    """
    schema = resolve_schema(schema_path)
    manager: ConfigManager[T] = ConfigManager(
        config_file_paths,
        schema,
        initial=initial,
        regenerate=regenerate,
        result_callback=result_callback,
        settings=settings,
    )
    manager.apply_files()
    return manager


__all__ = ["ConfigManager", "ResultCallback", "initialize"]
