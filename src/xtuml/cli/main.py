# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Entry point for the xtUML command-line interface."""

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from yachalk import chalk

from xtuml.config import OUTPUT_FORMATS, ConfigError, ToolConfig, find_config, load_config
from xtuml.logging_utils import configure_logging
from xtuml.oal.lexer import tokenize
from xtuml.translation import LoweringContractViolation, translate
from xtuml.validation import Diagnostic, Severity, count_by_severity, has_errors, validate

# ###############
# Public Interface
# ###############


def main() -> None:
    """Run the xtUML CLI."""
    parser = argparse.ArgumentParser(
        prog="xtuml",
        description="xtUML model validator and OAL-to-TypeScript translator",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    # check subcommand
    check_parser = subparsers.add_parser(
        "check",
        help="Validate an xtUML model document",
        description="Run the schema, consistency and semantic checks on a model document.",
    )
    check_parser.add_argument("model", help="Path to the model JSON document")
    check_parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default=None,
        help="Output format (default: from config, else text)",
    )
    check_parser.add_argument(
        "--fail-on-warnings",
        action="store_true",
        help="Exit with code 1 when warnings are reported",
    )
    _add_common_arguments(check_parser)

    # translate subcommand
    translate_parser = subparsers.add_parser(
        "translate",
        help="Translate a validated model into TypeScript",
        description="Validate a model document and generate a TypeScript module from it.",
    )
    translate_parser.add_argument("model", help="Path to the model JSON document")
    translate_parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="File to write the TypeScript module to (default: from config, else stdout)",
    )
    translate_parser.add_argument(
        "--no-timestamp",
        action="store_true",
        help="Omit the generation timestamp from the header",
    )
    translate_parser.add_argument(
        "--skip-validation",
        action="store_true",
        help="Translate without validating first",
    )
    _add_common_arguments(translate_parser)

    # tokens subcommand
    tokens_parser = subparsers.add_parser(
        "tokens",
        help="Print the OAL token stream of a file",
        description="Tokenize an OAL action body and print one token per line.",
    )
    tokens_parser.add_argument("file", help="Path to a file containing OAL text")

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        sys.exit(0)

    sys.exit(_dispatch(args))


# ################
# Implementation
# ################

_PHASE_NAMES = {1: "Schema", 2: "Consistency", 3: "Semantic"}

_SEVERITY_STYLE = {
    Severity.ERROR: chalk.red,
    Severity.WARNING: chalk.yellow,
    Severity.INFO: chalk.blue,
}


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default=None, help="Path to a .xtuml.yaml configuration file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")


def _dispatch(args: argparse.Namespace) -> int:
    """Dispatch to the appropriate subcommand handler."""
    configure_logging(getattr(args, "verbose", False))
    if args.command == "check":
        return _cmd_check(args)
    if args.command == "translate":
        return _cmd_translate(args)
    if args.command == "tokens":
        return _cmd_tokens(args)
    return 0


def _cmd_check(args: argparse.Namespace) -> int:
    """Handle the check subcommand."""
    try:
        config = _resolve_config(args)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    document = _load_document(Path(args.model))
    if document is None:
        return 1

    diagnostics = validate(document)
    output_format = args.format or config.output_format
    if output_format == "json":
        print(json.dumps([d.to_dict() for d in diagnostics], indent=2))
    else:
        _print_diagnostics(diagnostics)

    counts = count_by_severity(diagnostics)
    fail_on_warnings = args.fail_on_warnings or config.fail_on_warnings
    if has_errors(diagnostics):
        return 1
    if fail_on_warnings and counts[Severity.WARNING]:
        return 1
    return 0


def _cmd_translate(args: argparse.Namespace) -> int:
    """Handle the translate subcommand."""
    try:
        config = _resolve_config(args)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    document = _load_document(Path(args.model))
    if document is None:
        return 1

    if not args.skip_validation:
        errors = [d for d in validate(document) if d.is_error]
        if errors:
            print(
                f"Error: model has {len(errors)} validation error(s); run 'xtuml check' for details.",
                file=sys.stderr,
            )
            for diagnostic in errors:
                print(f"  {diagnostic.path}: {diagnostic.message}", file=sys.stderr)
            return 1
    elif not isinstance(document, dict) or not isinstance(document.get("system_model"), dict):
        print("Error: document has no 'system_model' object.", file=sys.stderr)
        return 1

    include_timestamp = config.include_timestamp and not args.no_timestamp
    try:
        code = translate(document, include_timestamp=include_timestamp)
    except LoweringContractViolation as exc:
        print(f"Error: cannot lower OAL: {exc}", file=sys.stderr)
        return 1
    except ValidationError as exc:
        print(f"Error: model does not have the expected structure: {exc}", file=sys.stderr)
        return 1

    output = args.output or config.output_file
    if output is None:
        sys.stdout.write(code)
        return 0
    output_path = Path(output)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(code, encoding="utf-8")
    except OSError as exc:
        print(f"Error: cannot write '{output_path}': {exc}", file=sys.stderr)
        return 1
    print(chalk.green(f"Wrote TypeScript module to '{output_path}'."))
    return 0


def _cmd_tokens(args: argparse.Namespace) -> int:
    """Handle the tokens subcommand."""
    path = Path(args.file)
    try:
        source = path.read_text(encoding="utf-8")
    except OSError as exc:
        print(f"Error: cannot read '{path}': {exc}", file=sys.stderr)
        return 1
    for token in tokenize(source):
        location = f"{token.line}:{token.column}"
        print(f"{token.offset:>6}  {location:<8} {token.type.name:<11} {token.value}")
    return 0


def _resolve_config(args: argparse.Namespace) -> ToolConfig:
    """Load the configuration named on the command line or found in the working directory."""
    if args.config is not None:
        return load_config(Path(args.config))
    discovered = find_config(Path.cwd())
    return load_config(discovered) if discovered is not None else ToolConfig()


def _load_document(path: Path) -> Any | None:
    """Read and decode a JSON document, reporting failures on stderr."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        print(f"Error: cannot read '{path}': {exc}", file=sys.stderr)
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        print(f"Error: '{path}' is not valid JSON: {exc}", file=sys.stderr)
        return None


def _print_diagnostics(diagnostics: list[Diagnostic]) -> None:
    """Print diagnostics grouped by phase, followed by a summary line."""
    if not diagnostics:
        print(chalk.green("No issues found."))
        return
    for phase, name in _PHASE_NAMES.items():
        in_phase = [d for d in diagnostics if d.phase == phase]
        if not in_phase:
            continue
        print(chalk.bold(f"Phase {phase}: {name}"))
        for diagnostic in in_phase:
            style = _SEVERITY_STYLE[diagnostic.severity]
            print(f"  {style(diagnostic.severity.value.upper()):<7} {diagnostic.path}: {diagnostic.message}")
            if diagnostic.suggestion:
                print(f"          suggestion: {diagnostic.suggestion}")
            if diagnostic.context is not None:
                for line in diagnostic.context.excerpt:
                    marker = ">" if line.is_error else " "
                    print(f"        {marker} {line.number:>4} | {line.text}")
    counts = count_by_severity(diagnostics)
    summary = ", ".join(f"{counts[severity]} {severity.value}(s)" for severity in Severity)
    print(f"Summary: {summary}")
