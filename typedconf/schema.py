"""Resolution of the schema module every config script is checked against."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

_SCHEMA_SUFFIXES = {".py", ".pyi"}


class SchemaError(RuntimeError):
    """Raised when the schema module is missing, unreadable or unusable."""


@dataclass(frozen=True)
class SchemaModule:
    """Absolute location of the schema module and the name scripts import it by."""

    path: Path

    @property
    def module_name(self) -> str:
        return self.path.stem

    @property
    def directory(self) -> Path:
        return self.path.parent


def resolve_schema(schema_path: Path | str) -> SchemaModule:
    """Return the resolved schema module, failing before any script is processed."""
    path = Path(schema_path).expanduser().resolve()
    try:
        with path.open("rb"):
            pass
    except OSError as exc:
        raise SchemaError(
            f"typedconf schema module ({schema_path}) must exist and be readable."
        ) from exc

    if path.suffix not in _SCHEMA_SUFFIXES:
        raise SchemaError(f"typedconf schema module ({schema_path}) must be a .py or .pyi file.")
    if not path.stem.isidentifier():
        raise SchemaError(
            f"typedconf schema module name '{path.stem}' is not a valid Python module name."
        )
    return SchemaModule(path=path)


__all__ = ["SchemaError", "SchemaModule", "resolve_schema"]
