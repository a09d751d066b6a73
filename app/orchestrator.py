"""
Turns a selection into payout schedules.

create_schedule submits a batch for a future date; pay_now creates a
schedule for one seller dated today and processes it straight away.
Anticipated failures come back in the result's ``error`` field.
"""

from datetime import date, datetime
from typing import Optional, Union

import structlog

from app.aggregates import selected_currencies
from app.client import PayoutAPI
from app.errors import (
    InconsistentStateFailure,
    PartialFailure,
    TransportFailure,
    ValidationError,
)
from app.models import (
    CreateSchedulesRequest,
    CreateSchedulesResponse,
    PayNowResult,
    PendingPayoutSnapshot,
    ProcessPayoutsRequest,
    ScheduleResult,
    SellerRejection,
    SellerSelection,
)
from app.selection import SelectionState

logger = structlog.get_logger(__name__)

PAY_NOW_NOTE = "Immediate payout"


def parse_scheduled_date(value: Union[str, date, None]) -> date:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("scheduled_date", "Please select a scheduled date")
    if isinstance(value, datetime):
        raise ValidationError("scheduled_date", "Scheduled date must be a calendar date without a time")
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(
            "scheduled_date", f"'{value}' is not a valid date (YYYY-MM-DD)"
        ) from None


def build_schedule_request(
    snapshot: PendingPayoutSnapshot,
    state: SelectionState,
    scheduled_date: Union[str, date, None],
    notes: Optional[str] = None,
) -> CreateSchedulesRequest:
    """
    Validate the selection and shape the create-payout-schedules payload.

    Fully selected sellers carry no transaction list: the payout API pays
    whatever they have outstanding when the schedule is processed.

    Raises:
        ValidationError: empty selection, missing/invalid date, mixed currencies
    """
    seller_ids = [s for s in snapshot.seller_ids() if state.classify(s) != SellerSelection.NONE]
    if not seller_ids:
        raise ValidationError("selection", "Please select at least one seller")
    when = parse_scheduled_date(scheduled_date)

    currencies = selected_currencies(snapshot, state)
    if len(currencies) > 1:
        raise ValidationError(
            "currency", f"Selected payouts mix currencies: {', '.join(sorted(currencies))}"
        )

    partial = {}
    for seller_id in seller_ids:
        if state.classify(seller_id) == SellerSelection.PARTIAL:
            chosen = state.transaction_ids(seller_id)
            payout = snapshot.get(seller_id)
            partial[seller_id] = [t.id for t in payout.transactions if t.id in chosen]

    return CreateSchedulesRequest(
        seller_ids=seller_ids,
        scheduled_date=when,
        notes=(notes or "").strip(),
        transaction_ids=partial or None,
    )


def split_outcome(
    request: CreateSchedulesRequest, response: CreateSchedulesResponse
) -> tuple[list[str], list[str], list[dict[str, str]]]:
    """Return (schedule ids, succeeded seller ids, failed [{seller_id, reason}])."""
    schedule_ids = [s.id for s in response.created_schedules]
    accepted = {s.seller_id for s in response.created_schedules}
    succeeded = [s for s in request.seller_ids if s in accepted]

    reasons = {e.seller_id: e.error for e in response.errors if isinstance(e, SellerRejection) and e.seller_id}
    loose = [e if isinstance(e, str) else e.error for e in response.errors
             if isinstance(e, str) or not e.seller_id]
    fallback = "; ".join(loose) or response.message or "Rejected by payout API"
    failed = [
        {"seller_id": s, "reason": reasons.get(s, fallback)}
        for s in request.seller_ids if s not in accepted
    ]
    return schedule_ids, succeeded, failed


def submit_schedule(api: PayoutAPI, request: CreateSchedulesRequest) -> ScheduleResult:
    try:
        response = api.create_payout_schedules(request)
    except TransportFailure as exc:
        logger.error("payout_schedule_submit_failed", sellers=len(request.seller_ids), error=exc.message)
        return ScheduleResult(error=exc)

    schedule_ids, succeeded, failed = split_outcome(request, response)
    if failed:
        logger.warning(
            "payout_schedule_partially_rejected",
            accepted=succeeded,
            rejected=[f["seller_id"] for f in failed],
        )
        return ScheduleResult(
            schedule_ids=schedule_ids,
            succeeded_seller_ids=succeeded,
            error=PartialFailure(succeeded, failed, schedule_ids),
        )

    logger.info(
        "payout_schedule_created",
        schedules=schedule_ids,
        sellers=len(succeeded),
        scheduled_date=str(request.scheduled_date),
    )
    return ScheduleResult(schedule_ids=schedule_ids, succeeded_seller_ids=succeeded)


def create_schedule(
    api: PayoutAPI,
    snapshot: PendingPayoutSnapshot,
    state: SelectionState,
    scheduled_date: Union[str, date, None],
    notes: Optional[str] = None,
) -> ScheduleResult:
    try:
        request = build_schedule_request(snapshot, state, scheduled_date, notes)
    except ValidationError as exc:
        logger.info("payout_schedule_invalid", field=exc.field)
        return ScheduleResult(error=exc)
    return submit_schedule(api, request)


def pay_now(
    api: PayoutAPI,
    snapshot: PendingPayoutSnapshot,
    seller_id: str,
    today: Optional[date] = None,
) -> PayNowResult:
    """
    Create a schedule for one seller dated today, then force-process it.

    If processing fails after the schedule exists, the result carries an
    InconsistentStateFailure naming the schedule; nothing is retried.
    """
    payout = snapshot.get(seller_id)
    if payout is None:
        return PayNowResult(
            seller_id=seller_id,
            error=ValidationError("seller_id", f"Seller '{seller_id}' has no pending payout"),
        )
    if len(payout.currencies()) > 1:
        return PayNowResult(
            seller_id=seller_id,
            error=ValidationError("currency", "Seller's pending payout mixes currencies"),
        )

    request = CreateSchedulesRequest(
        seller_ids=[seller_id],
        scheduled_date=today or date.today(),
        notes=PAY_NOW_NOTE,
    )
    try:
        response = api.create_payout_schedules(request)
    except TransportFailure as exc:
        logger.error("pay_now_create_failed", seller_id=seller_id, error=exc.message)
        return PayNowResult(seller_id=seller_id, error=exc)

    schedule_ids, succeeded, failed = split_outcome(request, response)
    if not schedule_ids:
        logger.warning("pay_now_rejected", seller_id=seller_id, failed=failed)
        return PayNowResult(seller_id=seller_id, error=PartialFailure(succeeded, failed))
    if len(schedule_ids) > 1:
        logger.error("pay_now_unexpected_schedules", seller_id=seller_id, schedules=schedule_ids)
        return PayNowResult(
            seller_id=seller_id,
            error=InconsistentStateFailure(schedule_ids, "expected exactly one schedule"),
        )

    schedule_id = schedule_ids[0]
    logger.info("pay_now_schedule_created", seller_id=seller_id, schedule_id=schedule_id)
    try:
        processed = api.process_payouts(
            ProcessPayoutsRequest(payout_schedule_ids=[schedule_id], force_process=True)
        )
    except TransportFailure as exc:
        logger.error("pay_now_process_failed", seller_id=seller_id, schedule_id=schedule_id, error=exc.message)
        return PayNowResult(
            seller_id=seller_id,
            schedule_id=schedule_id,
            error=InconsistentStateFailure([schedule_id], exc.message),
        )

    if not processed.success or schedule_id not in {p.id for p in processed.processed_payouts}:
        reason = "; ".join(processed.errors) or processed.message or "processing rejected"
        logger.error("pay_now_process_rejected", seller_id=seller_id, schedule_id=schedule_id, reason=reason)
        return PayNowResult(
            seller_id=seller_id,
            schedule_id=schedule_id,
            error=InconsistentStateFailure([schedule_id], reason),
        )

    logger.info("pay_now_processed", seller_id=seller_id, schedule_id=schedule_id)
    return PayNowResult(seller_id=seller_id, schedule_id=schedule_id, processed=True)
