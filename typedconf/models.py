"""Core data models shared across typedconf components."""

from dataclasses import dataclass, field
from pathlib import Path
from types import CodeType
from typing import Any, Dict, List, Optional

from .schema import SchemaModule


@dataclass
class Diagnostic:
    """Single static-analysis finding reported against a config script."""

    file: str
    line: int
    char: int
    message: str
    severity: str
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file,
            "line": self.line,
            "char": self.char,
            "message": self.message,
            "type": self.severity,
            "text": self.text,
        }


@dataclass
class ConfigFileResult:
    """Outcome of attempting to load one config file during a reload pass."""

    name: str
    exists: bool
    loaded: bool
    errors: List[Diagnostic] = field(default_factory=list)
    exception: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "name": self.name,
            "exists": self.exists,
            "loaded": self.loaded,
            "errors": [error.to_dict() for error in self.errors],
        }
        if self.exception is not None:
            payload["exception"] = self.exception
        return payload


@dataclass
class CompiledUnit:
    """Executable form of a script that passed static analysis."""

    path: Path
    source: str
    code: CodeType
    global_name: str
    schema: SchemaModule
