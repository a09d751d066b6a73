from app.currency import ZERO, sum_money
from app.models import (
    PayoutSchedule,
    PendingPayout,
    PendingPayoutSnapshot,
    ScheduleStatus,
    ScheduleSummary,
    SellerSelection,
    SellerTotals,
    SelectionTotals,
)
from app.selection import SelectionState


def seller_totals(payout: PendingPayout, state: SelectionState) -> SellerTotals:
    # only ids present in this payout count, so stale selections add nothing
    chosen = state.transaction_ids(payout.seller_id)
    selected = [t for t in payout.transactions if t.id in chosen]
    selection = state.classify(payout.seller_id) if selected else SellerSelection.NONE
    return SellerTotals(
        seller_id=payout.seller_id,
        seller_name=payout.seller.name,
        selection=selection,
        total_amount=sum_money(t.amount for t in payout.transactions),
        selected_amount=sum_money(t.amount for t in selected),
        transaction_count=len(payout.transactions),
        selected_count=len(selected),
    )


def calculate_totals(snapshot: PendingPayoutSnapshot, state: SelectionState) -> SelectionTotals:
    rows = [seller_totals(p, state) for p in snapshot.pending_payouts]
    return SelectionTotals(
        sellers=rows,
        grand_total_selected=sum_money(r.selected_amount for r in rows) if rows else ZERO,
        selected_seller_count=sum(1 for r in rows if r.selected_count),
    )


def summarize_schedules(schedules: list[PayoutSchedule]) -> ScheduleSummary:
    open_statuses = (ScheduleStatus.SCHEDULED, ScheduleStatus.PROCESSING)
    return ScheduleSummary(
        schedule_count=len(schedules),
        pending_amount=sum_money(s.total_amount for s in schedules if s.status in open_statuses),
        completed_amount=sum_money(
            s.total_amount for s in schedules if s.status == ScheduleStatus.COMPLETED
        ),
    )


def selected_currencies(snapshot: PendingPayoutSnapshot, state: SelectionState) -> set[str]:
    currencies = set()
    for payout in snapshot.pending_payouts:
        chosen = state.transaction_ids(payout.seller_id)
        currencies.update(t.currency for t in payout.transactions if t.id in chosen)
    return currencies
