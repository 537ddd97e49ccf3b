"""
Force-reset semi-annual leave counters.

Periods reset on their own: a new half-year simply has no usage rows yet.
Use this only to zero a period early, e.g. after a policy change.

Usage (from the project root, with .env loaded):

    python scripts/reset_semi_annual_balances.py --period 2025-H1 --actor-id 1
    python scripts/reset_semi_annual_balances.py --period 2025-H1 --actor-id 1 --user-id 42

Safe to run multiple times (idempotent).
"""

import argparse
from pathlib import Path

import sys


# Ensure app package is importable when script is run directly
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.core.config import settings  # noqa: E402
from app.core.leave_policy import LeavePolicy  # noqa: E402
from app.core.logging import log_leave_policy, setup_logging  # noqa: E402
from app.db.session import SessionLocal  # noqa: E402
from app.services import leave_service  # noqa: E402
from app.services.allocation_service import SemiAnnualPeriod  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description="Zero semi-annual vacation/weekend counters")
    parser.add_argument("--period", required=True, help='Period label, e.g. "2025-H1"')
    parser.add_argument("--actor-id", type=int, required=True, help="Admin user id recorded in the audit log")
    parser.add_argument("--user-id", type=int, default=None, help="Only reset this user")
    args = parser.parse_args()

    setup_logging()
    period = SemiAnnualPeriod.from_label(args.period)
    policy = LeavePolicy.from_settings(settings)
    log_leave_policy(policy)

    db = SessionLocal()
    try:
        rows = leave_service.reset_balances(db, policy, period, actor_id=args.actor_id, user_id=args.user_id)
        print(f"Reset {rows} balance row(s) for {period.label}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
