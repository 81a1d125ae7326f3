#!/usr/bin/env python3
"""
Seed the speech event catalog (idempotent).

Usage:
    python scripts/seed_event_types.py
    python scripts/seed_event_types.py --dry-run
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Add src to path so this script can be run directly
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ovballot.config import settings
from ovballot.db import get_session
from ovballot.services.event_types import seed_event_types


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed speech event types and rubrics.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would change, then roll back.",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    with get_session() as session:
        created, updated = seed_event_types(session)
        if args.dry_run:
            session.rollback()

    suffix = " (dry run, nothing written)" if args.dry_run else ""
    print(f"Event types: {created} created, {updated} updated{suffix}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
