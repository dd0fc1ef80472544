"""Administrative commands for the digit allocation store."""
from __future__ import annotations

import argparse
import logging
import sys
import uuid
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from pi_canvas.core.security import create_access_token
from pi_canvas.core.settings import settings
from pi_canvas.db.session import SessionLocal, create_tables
from pi_canvas.models import Assignment
from pi_canvas.services.allocator import ResetError
from pi_canvas.services.container import PiServices, build_services
from pi_canvas.services.renderer import RenderError


def cmd_status(services: PiServices, args: argparse.Namespace) -> int:
    with SessionLocal() as db:
        state = services.allocator.get_state(db)
        print(f"[admin] assigned_count={state.assigned_count}")
        print(f"[admin] last_rendered_at={state.last_rendered_at}")
        rows = db.scalars(select(Assignment).order_by(Assignment.position)).all()
        print(f"[admin] assignments={len(rows)}")
        if args.verbose:
            for row in rows:
                print(f"  #{row.position:<6} digit={row.digit_value} participant={row.participant_id}")
    return 0


def cmd_reset(services: PiServices, args: argparse.Namespace) -> int:
    if not args.yes:
        print("[admin] refusing to reset without --yes", file=sys.stderr)
        return 2
    with SessionLocal() as db:
        removed = services.allocator.reset(db)
    print(f"[admin] removed {removed} assignments; counter reset to 0")
    return 0


def cmd_render(services: PiServices, args: argparse.Namespace) -> int:
    with SessionLocal() as db:
        rendered_at = services.render_service.render_and_publish(db)
    names = ", ".join(services.publisher.published_names())
    print(f"[admin] rendered at {rendered_at.isoformat()}: {names}")
    return 0


def cmd_reconcile(services: PiServices, args: argparse.Namespace) -> int:
    with SessionLocal() as db:
        report = services.allocator.reconcile(db)
    print(
        f"[admin] counter {report.counter_before} -> {report.counter_after} "
        f"({report.assignment_count} assignments)"
    )
    if report.missing_positions:
        preview = ", ".join(str(p) for p in report.missing_positions[:20])
        print(f"[admin] missing positions: {preview}")
        return 1
    return 0


def cmd_simulate(services: PiServices, args: argparse.Namespace) -> int:
    prefix = args.prefix or f"sim-{uuid.uuid4().hex[:8]}"
    with SessionLocal() as db:
        for index in range(args.count):
            assignment = services.allocator.assign(db, f"{prefix}-{index}")
            print(f"[admin] {prefix}-{index} -> #{assignment.position} digit={assignment.digit_value}")
    return 0


def cmd_token(services: PiServices, args: argparse.Namespace) -> int:
    print(create_access_token(args.participant_id, name=args.name, handle=args.handle))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage digit assignments and wallpapers")
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before running the command (local SQLite setups).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    status = sub.add_parser("status", help="Show the counter and assignment totals")
    status.add_argument("-v", "--verbose", action="store_true", help="List every assignment")
    status.set_defaults(handler=cmd_status)

    reset = sub.add_parser("reset", help="Delete all assignments, zero the counter, re-render")
    reset.add_argument("--yes", action="store_true", help="Confirm the destructive reset")
    reset.set_defaults(handler=cmd_reset)

    render = sub.add_parser("render", help="Re-render and publish every resolution")
    render.set_defaults(handler=cmd_render)

    reconcile = sub.add_parser("reconcile", help="Realign the counter with stored assignments")
    reconcile.set_defaults(handler=cmd_reconcile)

    simulate = sub.add_parser("simulate", help="Assign positions to synthetic participants")
    simulate.add_argument("count", type=int)
    simulate.add_argument("--prefix", default=None, help="Participant id prefix")
    simulate.set_defaults(handler=cmd_simulate)

    token = sub.add_parser("token", help="Mint a bearer token for local testing")
    token.add_argument("participant_id")
    token.add_argument("--name", default=None)
    token.add_argument("--handle", default=None)
    token.set_defaults(handler=cmd_token)
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    args = build_parser().parse_args(argv)
    if args.create_tables:
        create_tables()

    services = build_services(settings)
    try:
        code = args.handler(services, args)
    except (ResetError, RenderError, SQLAlchemyError) as exc:
        print(f"[admin] ERROR: {exc}", file=sys.stderr)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
