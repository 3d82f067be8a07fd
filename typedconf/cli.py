"""CLI entrypoints for typedconf commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any, List

from .config import ConfigError, ProjectSettings, load_settings
from .logging import configure_logging
from .manager import initialize
from .models import ConfigFileResult
from .reporting import format_diagnostic, format_result
from .schema import SchemaError, resolve_schema
from .toolchain import ToolchainHost, check_script


def _add_logging_options(parser: argparse.ArgumentParser, *, subcommand: bool = False) -> None:
    # subcommands must not overwrite flags already given before the command
    default = argparse.SUPPRESS if subcommand else False
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=default,
        help="Log every config file outcome and toolchain step.",
    )
    group.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=default,
        help="Only log rejected and failing config files.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=argparse.SUPPRESS if subcommand else None,
        help="Also write a debug log of the run to this file.",
    )


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    _add_logging_options(parser, subcommand=True)
    parser.add_argument(
        "files",
        nargs="*",
        help="Config scripts to process, in order (defaults to the settings file list).",
    )
    parser.add_argument(
        "--schema",
        help="Path to the schema module (defaults to the settings file entry).",
    )
    parser.add_argument(
        "--settings",
        default=".",
        help="Path to .typedconf.yml or the directory holding it (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="typedconf",
        description="Validate and load type-checked Python configuration scripts.",
    )
    _add_logging_options(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser(
        "check",
        help="Type-check config scripts against the schema without running them.",
    )
    _add_common_options(check_parser)

    load_parser = subparsers.add_parser(
        "load",
        help="Check and run config scripts, then print the resulting state as JSON.",
    )
    _add_common_options(load_parser)
    load_parser.add_argument(
        "--namespace",
        action="store_true",
        help="Start from an attribute namespace instead of an empty dict.",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for typedconf commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(args.verbose), quiet=bool(args.quiet), log_file=args.log_file
    )

    try:
        settings = load_settings(Path(args.settings))
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")
    schema_path = Path(args.schema) if args.schema else settings.schema
    if schema_path is None:
        parser.exit(1, "No schema module given. Pass --schema or set 'schema' in .typedconf.yml.\n")
    files = [Path(name) for name in args.files] or settings.files
    if not files:
        parser.exit(1, "No config files given.\n")

    try:
        if args.command == "check":
            failed = _run_check(files, schema_path, settings)
        elif args.command == "load":
            failed = _run_load(files, schema_path, settings, namespace=bool(args.namespace))
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except SchemaError as exc:
        parser.exit(1, f"{exc}\n")

    if failed:
        parser.exit(1)


def _run_check(files: List[Path], schema_path: Path, settings: ProjectSettings) -> bool:
    host = ToolchainHost(resolve_schema(schema_path), settings.toolchain)
    failed = False
    for path in files:
        if not path.exists():
            print(f"{path}: not found, skipped")
            continue
        result = check_script(path, path.read_text(encoding="utf-8"), host=host)
        if result.diagnostics:
            failed = True
            for diagnostic in result.diagnostics:
                print(format_diagnostic(diagnostic))
        else:
            print(f"{path}: ok")
    return failed


def _run_load(
    files: List[Path], schema_path: Path, settings: ProjectSettings, *, namespace: bool
) -> bool:
    results: List[ConfigFileResult] = []

    def _report(result: ConfigFileResult) -> None:
        results.append(result)
        print(format_result(result), file=sys.stderr)

    initial: Any = SimpleNamespace() if namespace else {}
    manager = initialize(
        files,
        schema_path,
        initial=initial,
        result_callback=_report,
        settings=settings.toolchain,
    )
    print(json.dumps(manager.state, indent=2, sort_keys=True, default=_to_json))
    return any(result.exists and not result.loaded for result in results)


def _to_json(value: object) -> object:
    if hasattr(value, "__dict__"):
        return vars(value)
    return repr(value)


if __name__ == "__main__":
    main(sys.argv[1:])
