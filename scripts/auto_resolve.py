"""
auto_resolve.py - Settle pending predictions from Sportmonks outside the server.

Runs the same batch the scheduler runs every AUTO_RESOLVE_INTERVAL_MIN.
Useful after downtime, or when the scheduler is disabled.

Usage
-----
  python scripts/auto_resolve.py              # dry-run (lists pending fixtures)
  python scripts/auto_resolve.py --execute    # look up and settle them
  python scripts/auto_resolve.py --execute --limit 50
"""

import argparse
import logging
import sys
from pathlib import Path

# Project root on sys.path so `backend.xxx` resolves when run directly.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dotenv import load_dotenv

load_dotenv()


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Settle finished fixtures for pending PROPRED predictions."
    )
    parser.add_argument(
        "--execute",
        action="store_true",
        help="Query Sportmonks and settle.  Without this flag the script runs dry.",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="How many of the most recent predictions to scan (default: AUTO_RESOLVE_BATCH_SIZE).",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    from backend.models import SessionLocal, init_db
    from backend.services.prediction_store import get_predictions
    from backend.services.resolution import AUTO_RESOLVE_BATCH_SIZE, auto_resolve_pending

    init_db()
    db = SessionLocal()
    try:
        if not args.execute:
            recent = get_predictions(db, limit=args.limit or AUTO_RESOLVE_BATCH_SIZE)
            pending = [p for p in recent if not p.get("result")]
            print(f"[DRY RUN] {len(pending)} pending prediction(s) in the last {len(recent)}:")
            for p in pending:
                print(f"  {p['fixtureId']:>10}  {p.get('homeTeam')} vs {p.get('awayTeam')}  {p.get('tip')}")
            print("\nRe-run with --execute to settle finished fixtures.")
            return

        summary = auto_resolve_pending(db, limit=args.limit)
        print(
            f"Checked {summary['checked']}, resolved {summary['resolved']}, "
            f"skipped {summary['skipped']}, errors {len(summary['errors'])}"
        )
        for err in summary["errors"]:
            print(f"  ! {err}")
        if summary["errors"]:
            sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
