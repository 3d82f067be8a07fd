"""Static-analysis toolchain driving mypy over config scripts."""

from .host import SCRIPT_MODULE, ToolchainHost
from .pipeline import CheckResult, check_script, emit, run_mypy
from .rewriter import CONTEXT_NAME, RewrittenScript, references_schema, rewrite_script

__all__ = [
    "CONTEXT_NAME",
    "CheckResult",
    "RewrittenScript",
    "SCRIPT_MODULE",
    "ToolchainHost",
    "check_script",
    "emit",
    "references_schema",
    "rewrite_script",
    "run_mypy",
]
