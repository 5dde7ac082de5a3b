from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from policysync.app import (
    declare_binding,
    list_declarations,
    reconcile_declarations,
    run_reconcile_loop,
    undeclare_binding,
)
from policysync.config import configure_logging
from policysync.domain.model import BindingIntent, ConditionType

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from policysync.domain.model import BindingDeclaration

log = logging.getLogger(__name__)


def _add_binding_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--resource",
        type=str,
        required=True,
        help="Bucket name whose IAM policy is managed",
    )
    parser.add_argument(
        "--role",
        type=str,
        required=True,
        help="Role to manage, e.g. roles/storage.objectViewer",
    )
    parser.add_argument(
        "--member",
        type=str,
        required=True,
        help="Principal, e.g. user:alice@example.com",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile bucket IAM policy bindings")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    declare = subparsers.add_parser("declare", help="Declare a managed binding")
    _add_binding_arguments(declare)
    declare.add_argument(
        "--absent",
        action="store_true",
        help="Declare that the member must NOT hold the role",
    )

    undeclare = subparsers.add_parser(
        "undeclare",
        help=(
            "Stop managing a binding. For a present binding the next pass clears the "
            "whole resource policy; an absent binding is dropped without a write"
        ),
    )
    _add_binding_arguments(undeclare)

    reconcile = subparsers.add_parser("reconcile", help="Reconcile due declarations")
    reconcile.add_argument(
        "--loop",
        action="store_true",
        help="Keep reconciling every poll interval until interrupted",
    )
    reconcile.add_argument(
        "--interval",
        type=float,
        help="Seconds between passes in loop mode (defaults to config)",
    )

    subparsers.add_parser("status", help="Show declarations and their conditions")

    return parser.parse_args(list(argv))


def _validate_args(args: argparse.Namespace) -> None:
    if args.command in {"declare", "undeclare"}:
        for name in ("resource", "role", "member"):
            if not getattr(args, name).strip():
                raise ValueError(f"--{name} must not be empty")
    if args.command == "reconcile" and args.interval is not None:
        if args.interval < 0:
            raise ValueError("Interval must be non-negative")
        if not args.loop:
            raise ValueError("--interval only applies together with --loop")


def _format_declaration(declaration: BindingDeclaration) -> str:
    ready = declaration.condition(ConditionType.READY)
    synced = declaration.condition(ConditionType.SYNCED)
    parts = [
        f"{declaration.resource_id}",
        f"{declaration.role}",
        f"{declaration.member}",
        f"intent={declaration.intent}",
        f"ready={ready.reason if ready else '-'}",
        f"synced={synced.reason if synced else '-'}",
    ]
    if declaration.deletion_requested:
        parts.append("deleting")
    if declaration.last_error:
        parts.append(f"error={declaration.last_error!r}")
    return " ".join(parts)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        _validate_args(parsed_args)
    except ValueError:
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        if parsed_args.command == "declare":
            declaration = declare_binding(
                resource_id=parsed_args.resource,
                role=parsed_args.role,
                member=parsed_args.member,
                intent=BindingIntent.ABSENT if parsed_args.absent else BindingIntent.PRESENT,
            )
            log.info("Declaration %s stored", declaration.id)
        elif parsed_args.command == "undeclare":
            undeclare_binding(
                resource_id=parsed_args.resource,
                role=parsed_args.role,
                member=parsed_args.member,
            )
        elif parsed_args.command == "reconcile":
            if parsed_args.loop:
                run_reconcile_loop(interval_seconds=parsed_args.interval)
            else:
                result = reconcile_declarations()
                if result.failed:
                    log.error("%s of %s declarations failed", result.failed, result.attempted)
                    sys.exit(1)
        elif parsed_args.command == "status":
            for declaration in list_declarations():
                log.info(_format_declaration(declaration))
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during reconcile")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console-script entry: load `.env`, install the SIGINT handler and run."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
