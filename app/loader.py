from datetime import date, datetime, timedelta, timezone
from typing import Optional

import structlog

from app.client import PayoutAPI
from app.errors import ValidationError
from app.models import DashboardSnapshot

logger = structlog.get_logger(__name__)

DATE_RANGES: dict[str, Optional[int]] = {
    "7d": 7,
    "30d": 30,
    "90d": 90,
    "all": None,
}


def resolve_start_date(date_range: str, today: date) -> Optional[date]:
    if date_range not in DATE_RANGES:
        raise ValidationError(
            "date_range", f"Unknown date range '{date_range}', expected one of {sorted(DATE_RANGES)}"
        )
    days = DATE_RANGES[date_range]
    return None if days is None else today - timedelta(days=days)


def load_snapshot(api: PayoutAPI, date_range: str, today: Optional[date] = None) -> DashboardSnapshot:
    """Fetch pending payouts and overview stats. Read-only."""
    start_date = resolve_start_date(date_range, today or date.today())
    pending = api.get_pending_payouts()
    stats = api.get_payment_stats(start_date)

    logger.info(
        "payout_snapshot_loaded",
        sellers=len(pending.pending_payouts),
        total_amount=str(pending.total_amount),
        date_range=date_range,
    )
    return DashboardSnapshot(
        pending=pending,
        stats=stats,
        date_range=date_range,
        loaded_at=datetime.now(timezone.utc),
    )
