"""
pgrotate CLI entry point.

Lets an operator run a single rotation phase by hand, inspect a
secret's version stages, or preview a generated password.
"""

from __future__ import annotations

import argparse
import json
import sys

from pgrotate import __version__
from pgrotate.config import PasswordPolicy, RotationSettings
from pgrotate.exceptions import RotationError
from pgrotate.lambda_function import build_orchestrator
from pgrotate.models import RotationRequest, RotationStep
from pgrotate.observability import configure_logging
from pgrotate.passwords import generate_password
from pgrotate.store import SecretsManagerStore


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="pgrotate",
        description="Rotate PostgreSQL credentials stored in AWS Secrets Manager",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"pgrotate {__version__}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (can be repeated)",
    )
    parser.add_argument(
        "--config",
        help="Settings file (JSON or YAML). Defaults to environment variables.",
    )
    parser.add_argument("--region", help="AWS region")
    parser.add_argument("--endpoint-url", help="Secrets Manager endpoint override")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    step_parser = subparsers.add_parser("step", help="Run one rotation phase")
    step_parser.add_argument("--secret-id", required=True, help="Secret ARN or name")
    step_parser.add_argument("--token", required=True, help="Version id being rotated in")
    step_parser.add_argument(
        "--step",
        required=True,
        choices=[step.value for step in RotationStep],
        help="Phase to run",
    )

    describe_parser = subparsers.add_parser(
        "describe", help="Show version ids and their stage labels"
    )
    describe_parser.add_argument("--secret-id", required=True, help="Secret ARN or name")

    password_parser = subparsers.add_parser(
        "generate-password", help="Print a password that satisfies the policy"
    )
    password_parser.add_argument("--length", type=int, help="Password length")

    return parser


def _load_settings(args: argparse.Namespace) -> RotationSettings:
    if args.config:
        settings = RotationSettings.from_file(args.config)
    else:
        settings = RotationSettings.from_env()
    if args.region:
        settings.region = args.region
    if args.endpoint_url:
        settings.endpoint_url = args.endpoint_url
    return settings


def cmd_step(args: argparse.Namespace) -> int:
    """Run one rotation phase against Secrets Manager."""
    settings = _load_settings(args)
    request = RotationRequest(
        secret_id=args.secret_id,
        token=args.token,
        step=RotationStep.parse(args.step),
    )
    build_orchestrator(settings).handle(request)
    print(f"{request.step.value} completed for {request.secret_id}")
    return 0


def cmd_describe(args: argparse.Namespace) -> int:
    """Print the version to stage map of a secret."""
    settings = _load_settings(args)
    store = SecretsManagerStore(region=settings.region, endpoint_url=settings.endpoint_url)
    stages = store.describe_stages(args.secret_id)
    output = {
        "secret_id": args.secret_id,
        "rotation_enabled": store.rotation_enabled(args.secret_id),
        "versions": {vid: [s.value for s in labels] for vid, labels in stages.items()},
    }
    print(json.dumps(output, indent=2))
    return 0


def cmd_generate_password(args: argparse.Namespace) -> int:
    """Print one generated password."""
    policy = _load_settings(args).password
    if args.length:
        policy = PasswordPolicy(
            length=args.length,
            exclude_characters=policy.exclude_characters,
            symbols=policy.symbols,
            require_each_type=policy.require_each_type,
        )
    print(generate_password(policy))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        level = "DEBUG" if args.verbose > 1 else "INFO"
    else:
        level = "WARNING"
    configure_logging(level=level, format="human")

    if args.command is None:
        parser.print_help()
        return 0

    command_handlers = {
        "step": cmd_step,
        "describe": cmd_describe,
        "generate-password": cmd_generate_password,
    }

    handler = command_handlers.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}")
        return 1

    try:
        return handler(args)
    except RotationError as e:
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
