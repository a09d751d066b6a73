from datetime import date, datetime, timezone
from decimal import Decimal

from app.aggregates import calculate_totals, selected_currencies, seller_totals, summarize_schedules
from app.models import PayoutSchedule, ScheduleStatus, SellerSelection
from app.selection import SelectionState, select_all, toggle_seller, toggle_transaction
from tests.factories import payout, snapshot, two_seller_snapshot, txn

SNAP = two_seller_snapshot()


class TestSellerTotals:
    def test_unselected_seller_has_zero_selected(self):
        row = seller_totals(SNAP.get("S1"), SelectionState())
        assert row.total_amount == Decimal("150.00")
        assert row.selected_amount == Decimal("0.00")
        assert row.selection == SellerSelection.NONE

    def test_fully_selected_equals_total(self):
        state = toggle_seller(SelectionState(), SNAP, "S1")
        row = seller_totals(SNAP.get("S1"), state)
        assert row.selected_amount == row.total_amount
        assert row.selected_count == 2

    def test_partial_selection_after_single_deselect(self):
        state = toggle_seller(SelectionState(), SNAP, "S1")
        state = toggle_transaction(state, SNAP, "S1", "T1")
        row = seller_totals(SNAP.get("S1"), state)
        assert row.selection == SellerSelection.PARTIAL
        assert row.selected_amount == Decimal("50.00")

    def test_total_does_not_depend_on_selection(self):
        state = toggle_transaction(SelectionState(), SNAP, "S1", "T2")
        assert seller_totals(SNAP.get("S1"), state).total_amount == Decimal("150.00")


class TestCalculateTotals:
    def test_partial_batch_grand_total(self):
        state = toggle_transaction(SelectionState(), SNAP, "S1", "T1")
        totals = calculate_totals(SNAP, state)
        assert totals.grand_total_selected == Decimal("100.00")
        assert totals.selected_seller_count == 1

    def test_select_all_grand_total(self):
        totals = calculate_totals(SNAP, select_all(SelectionState(), SNAP))
        assert totals.grand_total_selected == Decimal("350.00")
        assert totals.selected_seller_count == 2

    def test_empty_snapshot(self):
        totals = calculate_totals(snapshot(), SelectionState())
        assert totals.sellers == []
        assert totals.grand_total_selected == Decimal("0.00")

    def test_decimal_sums_are_exact(self):
        snap = snapshot(payout("S1", *[txn(f"T{i}", "S1", "0.10") for i in range(10)]))
        totals = calculate_totals(snap, select_all(SelectionState(), snap))
        assert totals.grand_total_selected == Decimal("1.00")

    def test_stale_transaction_contributes_nothing(self):
        # selection made against the old snapshot, aggregates against the new one
        state = toggle_seller(SelectionState(), SNAP, "S1")
        refreshed = snapshot(payout("S1", txn("T1", "S1", 100)), SNAP.get("S2"))
        totals = calculate_totals(refreshed, state)
        row = totals.for_seller("S1")
        assert row.selected_amount == Decimal("100.00")
        assert row.selected_count == 1
        assert totals.grand_total_selected == Decimal("100.00")

    def test_seller_with_only_stale_ids_counts_as_unselected(self):
        state = toggle_transaction(SelectionState(), SNAP, "S1", "T2")
        refreshed = snapshot(payout("S1", txn("T1", "S1", 100)))
        row = calculate_totals(refreshed, state).for_seller("S1")
        assert row.selection == SellerSelection.NONE
        assert row.selected_amount == Decimal("0.00")


class TestSelectedCurrencies:
    def test_single_currency(self):
        state = select_all(SelectionState(), SNAP)
        assert selected_currencies(SNAP, state) == {"SEK"}

    def test_mixed_currencies_detected(self):
        snap = snapshot(payout("S1", txn("T1", "S1", 10)), payout("S3", txn("T4", "S3", 5, currency="EUR")))
        assert selected_currencies(snap, select_all(SelectionState(), snap)) == {"SEK", "EUR"}

    def test_nothing_selected(self):
        assert selected_currencies(SNAP, SelectionState()) == set()


def sched(id, amount, status):
    return PayoutSchedule(
        id=id,
        seller_id="S1",
        total_amount=Decimal(amount),
        currency="SEK",
        status=status,
        scheduled_date=date(2026, 3, 1),
        created_at=datetime(2026, 2, 1, 9, 0, tzinfo=timezone.utc),
    )


class TestScheduleSummary:
    def test_pending_counts_scheduled_and_processing(self):
        summary = summarize_schedules([
            sched("PS-1", "100.10", ScheduleStatus.SCHEDULED),
            sched("PS-2", "0.20", ScheduleStatus.PROCESSING),
            sched("PS-3", "50.00", ScheduleStatus.COMPLETED),
            sched("PS-4", "999.00", ScheduleStatus.FAILED),
            sched("PS-5", "5.00", ScheduleStatus.CANCELED),
        ])
        assert summary.schedule_count == 5
        assert summary.pending_amount == Decimal("100.30")
        assert summary.completed_amount == Decimal("50.00")

    def test_empty(self):
        summary = summarize_schedules([])
        assert summary.schedule_count == 0
        assert summary.pending_amount == Decimal("0.00")
        assert summary.completed_amount == Decimal("0.00")
