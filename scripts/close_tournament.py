#!/usr/bin/env python3
"""
Close a tournament and email every competitor their magic link.

Usage:
    python scripts/close_tournament.py                 # closes the active tournament
    python scripts/close_tournament.py --id <uuid>
    python scripts/close_tournament.py --resend --id <uuid>
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ovballot.config import settings
from ovballot.db import get_session
from ovballot.errors import BallotAppError
from ovballot.services.notifications import SmtpNotifier
from ovballot.services.tournaments import close_tournament, require_active_tournament, send_all_links


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Close a tournament and send magic links.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--id", dest="tournament_id", default=None, help="Tournament id")
    parser.add_argument(
        "--resend",
        action="store_true",
        help="Only (re)send links for an already-closed tournament.",
    )
    return parser


def main() -> int:
    args = _build_parser().parse_args()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    notifier = SmtpNotifier.from_settings(settings)
    try:
        with get_session() as session:
            tournament_id = args.tournament_id or require_active_tournament(session).id
            if args.resend:
                report = send_all_links(session, tournament_id, notifier)
            else:
                report = close_tournament(session, tournament_id, notifier).delivery
    except BallotAppError as exc:
        print(f"ERROR: {exc.message}", file=sys.stderr)
        return 1

    print(report.summary())
    for error in report.errors:
        print(f"  - {error}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
