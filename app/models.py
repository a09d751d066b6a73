from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from enum import Enum
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Union

from app.errors import PayoutError


def _coerce_id(value):
    # the remote API hands out integer ids for sellers and schedules
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


class SellerSelection(str, Enum):
    NONE = "none"
    PARTIAL = "partial"
    FULL = "full"


class ScheduleStatus(str, Enum):
    SCHEDULED = "scheduled"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELED = "canceled"


class Seller(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str

    @field_validator("id", mode="before")
    @classmethod
    def coerce_ids(cls, value):
        return _coerce_id(value)


class Transaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    seller_id: str
    amount: Decimal
    currency: str
    created_at: datetime
    title: Optional[str] = None
    description: Optional[str] = None

    @field_validator("id", "seller_id", mode="before")
    @classmethod
    def coerce_ids(cls, value):
        return _coerce_id(value)


class PendingPayout(BaseModel):
    """Outstanding money owed to one seller, as reported by the payout API."""

    model_config = ConfigDict(frozen=True)

    seller: Seller
    transactions: list[Transaction]
    total_amount: Decimal
    transaction_count: int
    oldest_transaction: datetime
    currency: Optional[str] = None

    @model_validator(mode="after")
    def check_transactions(self):
        if not self.transactions:
            raise ValueError(f"seller {self.seller.id} has no outstanding transactions")
        if self.transaction_count != len(self.transactions):
            raise ValueError(
                f"seller {self.seller.id} reports {self.transaction_count} transactions "
                f"but lists {len(self.transactions)}"
            )
        foreign = [t.id for t in self.transactions if t.seller_id != self.seller.id]
        if foreign:
            raise ValueError(f"transactions {foreign} do not belong to seller {self.seller.id}")
        ids = [t.id for t in self.transactions]
        if len(set(ids)) != len(ids):
            raise ValueError(f"duplicate transaction ids for seller {self.seller.id}")
        return self

    @property
    def seller_id(self) -> str:
        return self.seller.id

    def transaction_ids(self) -> frozenset[str]:
        return frozenset(t.id for t in self.transactions)

    def currencies(self) -> set[str]:
        return {t.currency for t in self.transactions}


class PendingPayoutSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    pending_payouts: list[PendingPayout] = Field(default_factory=list)
    total_sellers: int = 0
    total_amount: Decimal = Decimal("0.00")

    @model_validator(mode="after")
    def check_unique_sellers(self):
        ids = [p.seller_id for p in self.pending_payouts]
        if len(set(ids)) != len(ids):
            raise ValueError("pending payouts list a seller more than once")
        return self

    def get(self, seller_id: str) -> Optional[PendingPayout]:
        for payout in self.pending_payouts:
            if payout.seller_id == seller_id:
                return payout
        return None

    def seller_ids(self) -> list[str]:
        return [p.seller_id for p in self.pending_payouts]


class PaymentStats(BaseModel):
    total_payments: Decimal
    total_commission: Decimal
    pending_payouts: Decimal
    active_sellers: int
    recent_transactions: int
    commission_rate_breakdown: dict[str, Decimal] = Field(default_factory=dict)


class PayoutSchedule(BaseModel):
    id: str
    seller_id: str
    total_amount: Decimal
    currency: str
    status: ScheduleStatus
    scheduled_date: date
    processed_date: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    # None means "everything the seller has outstanding when processed"
    transaction_ids: Optional[list[str]] = None

    @field_validator("id", "seller_id", mode="before")
    @classmethod
    def coerce_ids(cls, value):
        return _coerce_id(value)


class DashboardSnapshot(BaseModel):
    pending: PendingPayoutSnapshot
    stats: PaymentStats
    date_range: str
    loaded_at: datetime


# ── Wire payloads ────────────────────────────────────────────────────────────

class CreateSchedulesRequest(BaseModel):
    seller_ids: list[str]
    scheduled_date: date
    notes: str = ""
    transaction_ids: Optional[dict[str, list[str]]] = None


class SellerRejection(BaseModel):
    seller_id: Optional[str] = None
    error: str

    @field_validator("seller_id", mode="before")
    @classmethod
    def coerce_ids(cls, value):
        return _coerce_id(value)


class CreateSchedulesResponse(BaseModel):
    success: bool
    created_schedules: list[PayoutSchedule] = Field(default_factory=list)
    errors: list[Union[SellerRejection, str]] = Field(default_factory=list)
    message: str = ""


class ProcessPayoutsRequest(BaseModel):
    payout_schedule_ids: list[str]
    force_process: bool = False


class ProcessPayoutsResponse(BaseModel):
    success: bool
    processed_payouts: list[PayoutSchedule] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    message: str = ""


# ── Aggregates ───────────────────────────────────────────────────────────────

class SellerTotals(BaseModel):
    seller_id: str
    seller_name: str
    selection: SellerSelection
    total_amount: Decimal
    selected_amount: Decimal
    transaction_count: int
    selected_count: int


class SelectionTotals(BaseModel):
    sellers: list[SellerTotals]
    grand_total_selected: Decimal
    selected_seller_count: int

    def for_seller(self, seller_id: str) -> Optional[SellerTotals]:
        return next((s for s in self.sellers if s.seller_id == seller_id), None)


class ScheduleSummary(BaseModel):
    schedule_count: int
    # scheduled + processing
    pending_amount: Decimal
    completed_amount: Decimal


# ── Operation results ────────────────────────────────────────────────────────

class ScheduleResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    schedule_ids: list[str] = Field(default_factory=list)
    succeeded_seller_ids: list[str] = Field(default_factory=list)
    error: Optional[PayoutError] = None
    refreshed: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


class PayNowResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    seller_id: str
    schedule_id: Optional[str] = None
    processed: bool = False
    error: Optional[PayoutError] = None
    refreshed: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


# ── In-memory backend records ────────────────────────────────────────────────

class PayableStatus(str, Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    PAID = "paid"


class LedgerEntry(BaseModel):
    transaction: Transaction
    commission_amount: Decimal = Decimal("0.00")
    status: PayableStatus = PayableStatus.PENDING
    schedule_id: Optional[str] = None
