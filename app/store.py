from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable, Optional

import structlog

from app.currency import ZERO, sum_money
from app.models import (
    CreateSchedulesRequest,
    CreateSchedulesResponse,
    LedgerEntry,
    PayableStatus,
    PaymentStats,
    PayoutSchedule,
    PendingPayout,
    PendingPayoutSnapshot,
    ProcessPayoutsRequest,
    ProcessPayoutsResponse,
    ScheduleStatus,
    Seller,
    SellerRejection,
    Transaction,
)

logger = structlog.get_logger(__name__)

_OPEN = (ScheduleStatus.SCHEDULED, ScheduleStatus.PROCESSING)


class DataStore:
    def __init__(self) -> None:
        self.sellers: dict[str, Seller] = {}
        self.entries: dict[str, LedgerEntry] = {}
        self.schedules: dict[str, PayoutSchedule] = {}

    # ── writes ────────────────────────────────────────────────────────────────

    def add_seller(self, seller: Seller) -> None:
        self.sellers[seller.id] = seller

    def add_transaction(self, txn: Transaction, commission_amount: Decimal = ZERO) -> None:
        self.entries[txn.id] = LedgerEntry(transaction=txn, commission_amount=commission_amount)

    def save_schedule(self, schedule: PayoutSchedule) -> None:
        self.schedules[schedule.id] = schedule

    def next_schedule_id(self) -> str:
        return f"PS-{len(self.schedules) + 1:04d}"

    def clear(self) -> None:
        self.sellers.clear()
        self.entries.clear()
        self.schedules.clear()

    # ── reads ─────────────────────────────────────────────────────────────────

    def get_seller(self, seller_id: str) -> Optional[Seller]:
        return self.sellers.get(seller_id)

    def list_sellers(self) -> list[Seller]:
        return list(self.sellers.values())

    def get_schedule(self, schedule_id: str) -> Optional[PayoutSchedule]:
        return self.schedules.get(schedule_id)

    def pending_entries(self, seller_id: str) -> list[LedgerEntry]:
        return sorted(
            (
                e for e in self.entries.values()
                if e.transaction.seller_id == seller_id and e.status == PayableStatus.PENDING
            ),
            key=lambda e: e.transaction.created_at,
        )

    def entries_for_schedule(self, schedule_id: str) -> list[LedgerEntry]:
        return [e for e in self.entries.values() if e.schedule_id == schedule_id]

    def open_whole_seller_schedule(self, seller_id: str) -> Optional[PayoutSchedule]:
        for schedule in self.schedules.values():
            if (
                schedule.seller_id == seller_id
                and schedule.status in _OPEN
                and schedule.transaction_ids is None
            ):
                return schedule
        return None


class MockPayoutAPI:
    """In-memory stand-in for the marketplace payout API.

    Explicit transaction lists are claimed when the schedule is created; a
    whole-seller schedule claims whatever is outstanding when it is processed.
    """

    def __init__(self, store: DataStore, today: Callable[[], date] = date.today):
        self.store = store
        self._today = today

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    # ── reads ─────────────────────────────────────────────────────────────────

    def get_pending_payouts(self) -> PendingPayoutSnapshot:
        payouts = []
        for seller in self.store.list_sellers():
            if self.store.open_whole_seller_schedule(seller.id):
                continue
            pending = self.store.pending_entries(seller.id)
            if not pending:
                continue
            txns = [e.transaction for e in pending]
            currencies = {t.currency for t in txns}
            payouts.append(PendingPayout(
                seller=seller,
                transactions=txns,
                total_amount=sum_money(t.amount for t in txns),
                transaction_count=len(txns),
                oldest_transaction=txns[0].created_at,
                currency=currencies.pop() if len(currencies) == 1 else None,
            ))
        return PendingPayoutSnapshot(
            pending_payouts=payouts,
            total_sellers=len(payouts),
            total_amount=sum_money(p.total_amount for p in payouts),
        )

    def get_payment_stats(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> PaymentStats:
        entries = [
            e for e in self.store.entries.values()
            if (start_date is None or e.transaction.created_at.date() >= start_date)
            and (end_date is None or e.transaction.created_at.date() <= end_date)
        ]
        return PaymentStats(
            total_payments=sum_money(e.transaction.amount + e.commission_amount for e in entries),
            total_commission=sum_money(e.commission_amount for e in entries),
            pending_payouts=sum_money(
                e.transaction.amount for e in entries if e.status != PayableStatus.PAID
            ),
            active_sellers=len({e.transaction.seller_id for e in entries}),
            recent_transactions=len(entries),
        )

    def list_payout_schedules(self) -> list[PayoutSchedule]:
        return sorted(self.store.schedules.values(), key=lambda s: s.id)

    # ── writes ────────────────────────────────────────────────────────────────

    def _create_one(
        self, seller_id: str, request: CreateSchedulesRequest
    ) -> tuple[Optional[PayoutSchedule], Optional[str]]:
        if self.store.get_seller(seller_id) is None:
            return None, "Seller not found"
        if self.store.open_whole_seller_schedule(seller_id):
            return None, "Seller already has an open payout schedule"

        pending = self.store.pending_entries(seller_id)
        explicit = (request.transaction_ids or {}).get(seller_id)
        if explicit is not None:
            wanted = set(explicit)
            chosen = [e for e in pending if e.transaction.id in wanted]
            if len(chosen) != len(wanted):
                return None, "Some transactions are not pending for this seller"
        else:
            chosen = pending
        if not chosen:
            return None, "No pending transactions"

        currencies = {e.transaction.currency for e in chosen}
        if len(currencies) > 1:
            return None, "Transactions use more than one currency"

        schedule = PayoutSchedule(
            id=self.store.next_schedule_id(),
            seller_id=seller_id,
            total_amount=sum_money(e.transaction.amount for e in chosen),
            currency=currencies.pop(),
            status=ScheduleStatus.SCHEDULED,
            scheduled_date=request.scheduled_date,
            notes=request.notes or None,
            created_at=self._now(),
            transaction_ids=[e.transaction.id for e in chosen] if explicit is not None else None,
        )
        self.store.save_schedule(schedule)
        if explicit is not None:
            for entry in chosen:
                entry.status = PayableStatus.SCHEDULED
                entry.schedule_id = schedule.id
        return schedule, None

    def create_payout_schedules(self, request: CreateSchedulesRequest) -> CreateSchedulesResponse:
        created, errors = [], []
        for seller_id in request.seller_ids:
            schedule, error = self._create_one(seller_id, request)
            if schedule is None:
                errors.append(SellerRejection(seller_id=seller_id, error=error))
            else:
                created.append(schedule)

        logger.info(
            "mock_schedules_created",
            created=len(created),
            rejected=len(errors),
            scheduled_date=str(request.scheduled_date),
        )
        return CreateSchedulesResponse(
            success=not errors,
            created_schedules=created,
            errors=errors,
            message=f"Created {len(created)} payout schedule(s)"
            + (f", {len(errors)} rejected" if errors else ""),
        )

    def _process_one(self, schedule_id: str, force: bool) -> tuple[Optional[PayoutSchedule], Optional[str]]:
        schedule = self.store.get_schedule(schedule_id)
        if schedule is None:
            return None, f"Schedule {schedule_id} not found"
        if schedule.status != ScheduleStatus.SCHEDULED:
            return None, f"Schedule {schedule_id} is {schedule.status.value}"
        if schedule.scheduled_date > self._today() and not force:
            return None, f"Schedule {schedule_id} is due {schedule.scheduled_date}"

        if schedule.transaction_ids is None:
            entries = self.store.pending_entries(schedule.seller_id)
        else:
            entries = self.store.entries_for_schedule(schedule_id)
        if not entries:
            self.store.save_schedule(schedule.model_copy(update={"status": ScheduleStatus.FAILED}))
            return None, f"Schedule {schedule_id} has nothing to pay"

        for entry in entries:
            entry.status = PayableStatus.PAID
            entry.schedule_id = schedule_id
        processed = schedule.model_copy(update={
            "status": ScheduleStatus.COMPLETED,
            "processed_date": self._now(),
            "total_amount": sum_money(e.transaction.amount for e in entries),
            "transaction_ids": [e.transaction.id for e in entries],
        })
        self.store.save_schedule(processed)
        return processed, None

    def process_payouts(self, request: ProcessPayoutsRequest) -> ProcessPayoutsResponse:
        processed, errors = [], []
        for schedule_id in request.payout_schedule_ids:
            schedule, error = self._process_one(schedule_id, request.force_process)
            if schedule is None:
                errors.append(error)
            else:
                processed.append(schedule)

        logger.info("mock_payouts_processed", processed=len(processed), failed=len(errors))
        return ProcessPayoutsResponse(
            success=not errors,
            processed_payouts=processed,
            errors=errors,
            message=f"Processed {len(processed)} payout(s)",
        )

