import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from threading import Lock
from typing import Optional

import structlog
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.aggregates import summarize_schedules
from app.client import HttpPayoutAPI
from app.config import settings
from app.currency import format_currency
from app.dashboard import PayoutDashboard
from app.errors import PayoutError
from app.models import PayNowResult, ScheduleResult, ScheduleStatus
from app.store import DataStore, MockPayoutAPI

logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer() if settings.is_production
            else structlog.dev.ConsoleRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

store = DataStore()
if settings.use_mock_api:
    api = MockPayoutAPI(store)
else:
    api = HttpPayoutAPI(
        settings.payout_api_base_url,
        token=settings.payout_api_token,
        timeout=settings.request_timeout_seconds,
    )
dashboard = PayoutDashboard(api, settings)
# routes run in the threadpool; one request at a time touches the session
session_lock = Lock()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "application_starting",
        environment=settings.environment,
        mock_api=settings.use_mock_api,
    )
    # Auto-seed so the mock backend is immediately usable
    if settings.use_mock_api:
        from scripts.seed_data import seed
        store.clear()
        seed(store)
    yield
    logger.info("application_shutting_down")


app = FastAPI(
    title="Circular Marketplace Payout Console",
    version="1.0.0",
    description="Admin payout selection and scheduling for the circular-materials marketplace",
    lifespan=lifespan,
)


@app.exception_handler(PayoutError)
async def payout_error_handler(request: Request, exc: PayoutError):
    logger.warning("payout_error", path=request.url.path, code=exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "details": str(exc) if settings.debug else None,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        },
    )


# ── Views ────────────────────────────────────────────────────────────────────

def _dashboard_view() -> dict:
    pending = dashboard.pending
    totals = dashboard.totals()
    snapshot = dashboard.snapshot
    currency = settings.default_currency

    sellers = []
    for payout in pending.pending_payouts:
        row = totals.for_seller(payout.seller_id)
        chosen = dashboard.selection.transaction_ids(payout.seller_id)
        sellers.append({
            "seller": payout.seller.model_dump(),
            "selection": row.selection.value,
            "total_amount": str(row.total_amount),
            "selected_amount": str(row.selected_amount),
            "total_display": format_currency(row.total_amount, payout.currency or currency),
            "transaction_count": payout.transaction_count,
            "oldest_transaction": payout.oldest_transaction.isoformat(),
            "transactions": [
                {**t.model_dump(mode="json"), "selected": t.id in chosen}
                for t in payout.transactions
            ],
        })

    return {
        "date_range": snapshot.date_range,
        "loaded_at": snapshot.loaded_at.isoformat(),
        "stats": snapshot.stats.model_dump(mode="json"),
        "pending_payouts": sellers,
        "total_sellers": pending.total_sellers,
        "total_amount": str(pending.total_amount),
        "selected_seller_count": totals.selected_seller_count,
        "grand_total_selected": str(totals.grand_total_selected),
        "grand_total_display": format_currency(totals.grand_total_selected, currency),
        "scheduled_date": str(dashboard.scheduled_date) if dashboard.scheduled_date else None,
        "notes": dashboard.notes,
    }


def _result_response(result, body: dict) -> JSONResponse:
    if result.error is None:
        return JSONResponse(status_code=200, content=body)
    content = result.error.to_dict()
    content.update(body)
    return JSONResponse(status_code=result.error.status_code, content=content)


def _schedule_body(result: ScheduleResult) -> dict:
    return {
        "schedule_ids": result.schedule_ids,
        "succeeded_seller_ids": result.succeeded_seller_ids,
        "refreshed": result.refreshed,
    }


def _pay_now_body(result: PayNowResult) -> dict:
    return {
        "seller_id": result.seller_id,
        "schedule_id": result.schedule_id,
        "processed": result.processed,
        "refreshed": result.refreshed,
    }


# ── Dashboard ────────────────────────────────────────────────────────────────

@app.get("/health")
def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "mock_api": settings.use_mock_api,
    }


@app.get("/api/v1/payouts/dashboard", summary="Load pending payouts, stats and selection")
def get_dashboard(
    date_range: Optional[str] = Query(default=None, description="7d, 30d, 90d or all"),
):
    with session_lock:
        dashboard.load(date_range)
        return _dashboard_view()


# ── Selection ────────────────────────────────────────────────────────────────

@app.post("/api/v1/payouts/selection/sellers/{seller_id}/toggle", summary="Toggle a whole seller")
def toggle_seller(seller_id: str):
    with session_lock:
        dashboard.toggle_seller(seller_id)
        return _dashboard_view()


@app.post(
    "/api/v1/payouts/selection/sellers/{seller_id}/transactions/{transaction_id}/toggle",
    summary="Toggle one transaction of a seller",
)
def toggle_transaction(seller_id: str, transaction_id: str):
    with session_lock:
        dashboard.toggle_transaction(seller_id, transaction_id)
        return _dashboard_view()


@app.post("/api/v1/payouts/selection/select-all", summary="Select every pending seller")
def select_all():
    with session_lock:
        dashboard.select_all()
        return _dashboard_view()


@app.post("/api/v1/payouts/selection/deselect-all", summary="Clear the selection")
def deselect_all():
    with session_lock:
        dashboard.deselect_all()
        return _dashboard_view()


# ── Schedules ────────────────────────────────────────────────────────────────

class CreateScheduleBody(BaseModel):
    scheduled_date: Optional[str] = None
    notes: Optional[str] = None


class PayNowBody(BaseModel):
    confirm: bool = False


@app.post("/api/v1/payouts/schedules", summary="Schedule payouts for the current selection")
def create_schedule(body: CreateScheduleBody):
    with session_lock:
        dashboard.set_schedule_fields(body.scheduled_date, body.notes)
        result = dashboard.create_schedule()
    return _result_response(result, _schedule_body(result))


@app.get("/api/v1/payouts/schedules", summary="List payout schedules")
def list_schedules(
    status: Optional[ScheduleStatus] = Query(default=None, description="Filter by schedule status"),
):
    schedules = dashboard.list_schedules(status)
    return {
        "schedules": [s.model_dump(mode="json") for s in schedules],
        "summary": summarize_schedules(schedules).model_dump(mode="json"),
    }


@app.post("/api/v1/payouts/sellers/{seller_id}/pay-now", summary="Pay a seller immediately")
def pay_now(seller_id: str, body: PayNowBody):
    with session_lock:
        result = dashboard.pay_now(seller_id, confirm=body.confirm)
    return _result_response(result, _pay_now_body(result))


# ── Admin ─────────────────────────────────────────────────────────────────────

@app.post("/api/v1/admin/seed", summary="Re-seed the in-memory payout backend")
def reseed():
    if not settings.use_mock_api:
        raise HTTPException(404, "Seeding is only available with the in-memory backend")
    from scripts.seed_data import seed
    with session_lock:
        store.clear()
        seed(store)
        dashboard.deselect_all()
        dashboard.set_schedule_fields(None, "")
        dashboard.load()
    return {
        "status": "seeded",
        "sellers": len(store.sellers),
        "transactions": len(store.entries),
    }
