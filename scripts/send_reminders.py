"""Periodic notification housekeeping; run it every minute from cron or a scheduler.

Sends due appointment reminders, re-publishes appointment events that were
never delivered and, with ``--evict``, trims the notification ledger.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app import create_app
from app.events import redeliver_pending
from app.notifications import evict_ledger, send_due_reminders


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--evict", action="store_true", help="Also evict old ledger entries")
    parser.add_argument("--retention-days", type=int, default=None)
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        redelivered = redeliver_pending()
        reminders = send_due_reminders()
        print(f"Redelivered {redelivered} event(s), sent {reminders} reminder(s)")

        if args.evict:
            evicted = evict_ledger(retention_days=args.retention_days)
            print(f"Evicted {evicted} ledger entr{'y' if evicted == 1 else 'ies'}")


if __name__ == "__main__":
    main()
