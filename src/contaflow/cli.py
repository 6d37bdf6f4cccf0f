"""Command-line interface for the dashboard core.

Provides subcommands: `kpis`, `notifications`, `grant-admin` and `seed`. Each
command is implemented as a `cmd_*` function that accepts an argparse
namespace and returns a process exit status.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pymongo.database import Database
from pymongo.errors import PyMongoError

from contaflow.admin import grant_admin
from contaflow.aggregate.state import Failed
from contaflow.config import get_settings
from contaflow.db import get_client, get_db
from contaflow.kpis import build_aggregators, compute_all, state_to_dict, to_jsonable
from contaflow.logging_config import configure_logging
from contaflow.notifications import NotificationsFeed
from contaflow.seed import load_fixture_file

log = logging.getLogger(__name__)


# --------------------------------------------------
# Helpers
# --------------------------------------------------
def _open_db() -> Database[dict[str, Any]]:
    s = get_settings()
    client = get_client(s.mongo_uri, tls=s.mongo_tls)
    return get_db(client, s.mongo_db)


def _print(obj: Any) -> None:
    print(json.dumps(obj, ensure_ascii=False, indent=2, default=str))


# --------------------------------------------------
# KPIS
# --------------------------------------------------
def cmd_kpis(args: argparse.Namespace, db: Database[dict[str, Any]] | None = None) -> int:
    """Compute every dashboard KPI and print them.

    Exit status is 1 when any KPI failed to load.
    """
    s = get_settings()
    db = db if db is not None else _open_db()
    states = compute_all(build_aggregators(db, s))

    if args.json:
        _print({name: state_to_dict(st) for name, st in states.items()})
    else:
        for name, st in states.items():
            marker = f"FAILED ({st.reason})" if isinstance(st, Failed) else ""
            print(f"{name:<24} {json.dumps(to_jsonable(st.value), ensure_ascii=False)} {marker}".rstrip())

    return 1 if any(isinstance(st, Failed) for st in states.values()) else 0


# --------------------------------------------------
# NOTIFICATIONS
# --------------------------------------------------
def cmd_notifications(args: argparse.Namespace, db: Database[dict[str, Any]] | None = None) -> int:
    """Print the notification feed, newest first."""
    s = get_settings()
    db = db if db is not None else _open_db()
    state = NotificationsFeed.from_settings(db, s).compute()
    if isinstance(state, Failed):
        log.error("Notifications unavailable: %s", state.reason)
        return 1

    items = state.value[: args.limit] if args.limit else state.value
    _print([n.model_dump(mode="json") for n in items])
    return 0


# --------------------------------------------------
# ADMIN
# --------------------------------------------------
def cmd_grant_admin(args: argparse.Namespace, db: Database[dict[str, Any]] | None = None) -> int:
    """Grant full permissions to a user; the grant is written to the activity log."""
    db = db if db is not None else _open_db()
    existed = grant_admin(db, args.user_id, args.actor)
    if not existed:
        log.warning("User %s did not exist; a permissions-only document was created.", args.user_id)
    print(f"Admin permissions granted to {args.user_id}.")
    return 0


# --------------------------------------------------
# SEED
# --------------------------------------------------
def cmd_seed(args: argparse.Namespace, db: Database[dict[str, Any]] | None = None) -> int:
    """Load a JSON fixture into MongoDB."""
    db = db if db is not None else _open_db()
    loaded = load_fixture_file(db, Path(args.fixture))
    _print(loaded)
    return 0


# --------------------------------------------------
# CLI
# --------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    """Build and return the top-level argument parser for the CLI.

    Returns:
        Configured argparse.ArgumentParser instance.
    """
    p = argparse.ArgumentParser(prog="contaflow")
    p.add_argument("--log-file", type=Path, default=None)
    sub = p.add_subparsers(dest="cmd", required=True)

    p_kpis = sub.add_parser("kpis", help="compute dashboard KPIs")
    p_kpis.add_argument("--json", action="store_true")
    p_kpis.set_defaults(func=cmd_kpis)

    p_notif = sub.add_parser("notifications", help="print the notification feed")
    p_notif.add_argument("--limit", type=int, default=0)
    p_notif.set_defaults(func=cmd_notifications)

    p_admin = sub.add_parser("grant-admin", help="grant full permissions to a user")
    p_admin.add_argument("--user-id", required=True)
    p_admin.add_argument("--actor", required=True, help="who is running the command")
    p_admin.set_defaults(func=cmd_grant_admin)

    p_seed = sub.add_parser("seed", help="load a JSON fixture")
    p_seed.add_argument("fixture")
    p_seed.set_defaults(func=cmd_seed)

    return p


def main(argv: list[str] | None = None) -> int:
    """CLI entry point: parse args, configure logging and dispatch commands."""
    args = build_parser().parse_args(argv)

    try:
        s = get_settings()
        configure_logging(args.log_file, level=s.log_level)
        return int(args.func(args))
    except (RuntimeError, ValueError, OSError) as exc:
        log.error("%s", exc)
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except PyMongoError as exc:
        log.error("Database error: %s", exc)
        print(f"database error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
