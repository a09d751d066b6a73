"""
Operator session for the admin payout dashboard.

Holds the latest snapshot, the selection and the schedule form fields.
Selections live only as long as the session; nothing is persisted.
"""

from datetime import date
from typing import Callable, Optional, Union

import structlog

from app import orchestrator
from app.aggregates import calculate_totals
from app.client import PayoutAPI
from app.config import Settings, get_settings
from app.errors import (
    ConcurrentOperationError,
    InconsistentStateFailure,
    PartialFailure,
    PayoutError,
    TransportFailure,
    ValidationError,
)
from app.guard import InFlightGuard
from app.loader import load_snapshot, resolve_start_date
from app.models import (
    DashboardSnapshot,
    PayNowResult,
    PayoutSchedule,
    PendingPayoutSnapshot,
    ScheduleResult,
    ScheduleStatus,
    SelectionTotals,
    SellerSelection,
)
from app.selection import (
    SelectionState,
    deselect_all,
    drop_sellers,
    reconcile,
    select_all,
    stale_transaction_ids,
    toggle_seller,
    toggle_transaction,
)

logger = structlog.get_logger(__name__)


class PayoutDashboard:
    def __init__(
        self,
        api: PayoutAPI,
        settings: Optional[Settings] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.api = api
        self.settings = settings or get_settings()
        self._today = today or date.today
        self.date_range = self.settings.default_date_range
        self.snapshot: Optional[DashboardSnapshot] = None
        self.selection = SelectionState()
        self.scheduled_date: Union[str, date, None] = None
        self.notes = ""
        self.schedule_guard = InFlightGuard("create-schedule")
        self.pay_now_guard = InFlightGuard("pay-now")

    # ── loading ───────────────────────────────────────────────────────────────

    def load(self, date_range: Optional[str] = None) -> DashboardSnapshot:
        if date_range is not None:
            resolve_start_date(date_range, self._today())
            self.date_range = date_range
        snapshot = load_snapshot(self.api, self.date_range, self._today())

        stale = stale_transaction_ids(self.selection, snapshot.pending)
        if stale:
            logger.info("selection_reconciled", dropped=stale)
        self.selection = reconcile(self.selection, snapshot.pending)
        self.snapshot = snapshot
        return snapshot

    def refresh(self) -> DashboardSnapshot:
        return self.load()

    @property
    def pending(self) -> PendingPayoutSnapshot:
        if self.snapshot is None:
            self.load()
        return self.snapshot.pending

    def _refresh_after_write(self) -> bool:
        # the write already happened; a failed re-read must not hide its result
        try:
            self.load()
        except PayoutError as exc:
            logger.warning("snapshot_refresh_failed", code=exc.code, error=exc.message)
            return False
        return True

    # ── selection ─────────────────────────────────────────────────────────────

    def toggle_seller(self, seller_id: str) -> SellerSelection:
        self.selection = toggle_seller(self.selection, self.pending, seller_id)
        return self.selection.classify(seller_id)

    def toggle_transaction(self, seller_id: str, transaction_id: str) -> SellerSelection:
        self.selection = toggle_transaction(self.selection, self.pending, seller_id, transaction_id)
        return self.selection.classify(seller_id)

    def select_all(self) -> SelectionState:
        self.selection = select_all(self.selection, self.pending)
        return self.selection

    def deselect_all(self) -> SelectionState:
        self.selection = deselect_all(self.selection)
        return self.selection

    def totals(self) -> SelectionTotals:
        return calculate_totals(self.pending, self.selection)

    def set_schedule_fields(self, scheduled_date: Union[str, date, None], notes: Optional[str] = None) -> None:
        self.scheduled_date = scheduled_date
        if notes is not None:
            self.notes = notes

    # ── actions ───────────────────────────────────────────────────────────────

    def create_schedule(self) -> ScheduleResult:
        try:
            with self.schedule_guard.hold():
                return self._create_schedule()
        except ConcurrentOperationError as exc:
            return ScheduleResult(error=exc)

    def _ensure_loaded(self) -> Optional[TransportFailure]:
        if self.snapshot is not None:
            return None
        try:
            self.load()
        except TransportFailure as exc:
            logger.error("snapshot_load_failed", error=exc.message)
            return exc
        return None

    def _create_schedule(self) -> ScheduleResult:
        failure = self._ensure_loaded()
        if failure is not None:
            return ScheduleResult(error=failure)
        result = orchestrator.create_schedule(
            self.api, self.pending, self.selection, self.scheduled_date, self.notes
        )
        if result.ok:
            self.selection = SelectionState()
            self.scheduled_date = None
            self.notes = ""
            result.refreshed = self._refresh_after_write()
        elif isinstance(result.error, PartialFailure):
            # keep the rejected sellers selected so the operator can retry
            self.selection = drop_sellers(self.selection, result.error.succeeded_seller_ids)
            result.refreshed = self._refresh_after_write()
        return result

    def pay_now(self, seller_id: str, confirm: bool = False) -> PayNowResult:
        if not confirm:
            return PayNowResult(
                seller_id=seller_id,
                error=ValidationError("confirm", "Immediate payout must be confirmed"),
            )
        try:
            with self.pay_now_guard.hold():
                return self._pay_now(seller_id)
        except ConcurrentOperationError as exc:
            return PayNowResult(seller_id=seller_id, error=exc)

    def _pay_now(self, seller_id: str) -> PayNowResult:
        failure = self._ensure_loaded()
        if failure is not None:
            return PayNowResult(seller_id=seller_id, error=failure)
        result = orchestrator.pay_now(self.api, self.pending, seller_id, self._today())
        if result.ok:
            self.selection = SelectionState()
            result.refreshed = self._refresh_after_write()
        elif isinstance(result.error, InconsistentStateFailure):
            # a schedule exists unprocessed; re-read so the operator sees it
            result.refreshed = self._refresh_after_write()
        return result

    def list_schedules(self, status: Optional[ScheduleStatus] = None) -> list[PayoutSchedule]:
        schedules = self.api.list_payout_schedules()
        if status is None:
            return schedules
        return [s for s in schedules if s.status == status]
