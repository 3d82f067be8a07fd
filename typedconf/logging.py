"""Logger hierarchy for typedconf and the console setup used by the CLI.

Library code only ever asks for loggers. Per-file outcomes are logged on a
logger named after the config file (``typedconf.scripts.<stem>``) so an
application can quieten or raise the verbosity of one file on its own.
"""

from __future__ import annotations

import logging
import re
import sys
from pathlib import Path

_ROOT = "typedconf"
_SCRIPTS = "scripts"
_UNSAFE_NAME_CHARS = re.compile(r"[^0-9A-Za-z_-]+")


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``typedconf`` or one of its children."""
    return logging.getLogger(f"{_ROOT}.{name}" if name else _ROOT)


def get_script_logger(path: Path | str) -> logging.Logger:
    """Return the logger that reports outcomes for one config file."""
    stem = _UNSAFE_NAME_CHARS.sub("_", Path(path).stem) or "_"
    return get_logger(f"{_SCRIPTS}.{stem}")


def verbosity_level(*, verbose: bool = False, quiet: bool = False) -> int:
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


def configure_logging(
    *, verbose: bool = False, quiet: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Send typedconf records to stderr and, optionally, to ``log_file``.

    stdout is left alone because ``typedconf load`` prints the state there.
    Calling this again replaces the handlers installed by the previous call.
    """
    level = verbosity_level(verbose=verbose, quiet=quiet)
    root = get_logger()
    root.setLevel(logging.DEBUG if log_file is not None else level)
    root.propagate = False
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(logging.Formatter("typedconf: %(levelname)s: %(message)s"))
    root.addHandler(console)

    if log_file is not None:
        # the file always gets the full debug trail
        sink = logging.FileHandler(log_file, encoding="utf-8")
        sink.setLevel(logging.DEBUG)
        sink.setFormatter(logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s"))
        root.addHandler(sink)
    return root


__all__ = ["configure_logging", "get_logger", "get_script_logger", "verbosity_level"]
