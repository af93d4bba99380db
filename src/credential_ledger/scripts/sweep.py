"""One-shot expiry sweep, suitable for cron.

Revokes every credential whose temporal commitment stayed unrevealed past the
grace period and prints the resulting batch as JSON.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from datetime import datetime

from credential_ledger.core.errors import TemporalError
from credential_ledger.db.session import SessionLocal
from credential_ledger.db.time import ensure_utc
from credential_ledger.services.secret_store import get_secret_store
from credential_ledger.services.temporal import RevocationBatch, TemporalService


def parse_now(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    try:
        return ensure_utc(datetime.fromisoformat(value))
    except ValueError as err:
        raise argparse.ArgumentTypeError(f"Invalid ISO timestamp: {value!r}") from err


def batch_to_json(batch: RevocationBatch) -> str:
    return json.dumps(asdict(batch), default=lambda value: value.isoformat(), indent=2)


def run_sweep(now: datetime | None = None, grace_days: int | None = None) -> RevocationBatch:
    with SessionLocal() as db:
        service = TemporalService(db, get_secret_store())
        return service.sweep_expired(now=now, grace_period_days=grace_days)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Revoke credentials with lapsed commitments")
    parser.add_argument(
        "--grace-days",
        type=int,
        default=None,
        help="Override the configured grace period in days",
    )
    parser.add_argument(
        "--now",
        type=parse_now,
        default=None,
        help="Evaluate expiry as of this ISO timestamp instead of the current time",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    try:
        batch = run_sweep(now=args.now, grace_days=args.grace_days)
    except TemporalError as exc:
        print(f"[sweep] {exc}", file=sys.stderr)
        sys.exit(1)

    print(batch_to_json(batch))
    if batch.failures:
        sys.exit(2)


if __name__ == "__main__":
    main()
