"""
CLI: Run the policy compiler on files.

Usage:
    uv run policy xml model.json            # PolicyModel JSON -> <policies> XML
    uv run policy parse policy.xml --scope operation --api-id orders --operation-id get
    uv run policy validate model.json       # exit code 1 when the model has errors

Use ``-`` as the path to read from stdin. The compiler strategy follows
COMPILER_MODE (local, remote or auto).
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from pydantic import ValidationError as ModelValidationError

from apim_policy.core.errors import PolicyCompilerError
from apim_policy.domain.enums import PolicyScope
from apim_policy.domain.models import PolicyModel
from apim_policy.services.compiler import PolicyCompiler, get_policy_compiler


def _read(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _read_model(path: str) -> PolicyModel:
    return PolicyModel.model_validate_json(_read(path))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="policy",
        description="Generate, parse and validate API Management policy documents",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    xml_parser = subparsers.add_parser("xml", help="Generate XML from a policy model")
    xml_parser.add_argument("path", help="PolicyModel JSON file, or - for stdin")

    parse_parser = subparsers.add_parser("parse", help="Parse XML into a policy model")
    parse_parser.add_argument("path", help="Policy XML file, or - for stdin")
    parse_parser.add_argument(
        "--scope",
        choices=[scope.value for scope in PolicyScope],
        help="Scope of the document (default: DEFAULT_PARSED_SCOPE)",
    )
    parse_parser.add_argument("--api-id", help="API id for api/operation scope")
    parse_parser.add_argument("--operation-id", help="Operation id for operation scope")

    validate_parser = subparsers.add_parser("validate", help="Validate a policy model")
    validate_parser.add_argument("path", help="PolicyModel JSON file, or - for stdin")

    return parser


def _run(compiler: PolicyCompiler, args: argparse.Namespace) -> int:
    if args.command == "xml":
        print(compiler.to_xml(_read_model(args.path)))
        return 0

    if args.command == "parse":
        model = compiler.from_xml(
            _read(args.path),
            scope=args.scope,
            api_id=args.api_id,
            operation_id=args.operation_id,
        )
        print(json.dumps(model.to_json_dict(), indent=2))
        return 0

    result = compiler.validate(_read_model(args.path))
    print(json.dumps(result.to_json_dict(), indent=2))
    return 0 if result.valid else 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 2

    try:
        compiler = get_policy_compiler()
        try:
            return _run(compiler, args)
        finally:
            compiler.close()

    except (OSError, ModelValidationError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 2
    except PolicyCompilerError as e:
        print(f"[ERROR] {e.__class__.__name__}: {e.message}", file=sys.stderr)
        if e.details:
            print(json.dumps(e.details, indent=2, default=str), file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
