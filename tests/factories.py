"""
Test data builders shared by the test modules.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

from app.models import PendingPayout, PendingPayoutSnapshot, Seller, Transaction
from app.store import DataStore, MockPayoutAPI

JAN1  = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
JAN5  = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)
JAN10 = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)

TODAY = date(2026, 2, 1)


def seller(id: str) -> Seller:
    return Seller(id=id, name=f"Seller {id}", email=f"{id.lower()}@example.com")


def txn(id, seller_id, amount, currency="SEK", created_at=JAN1) -> Transaction:
    return Transaction(
        id=id,
        seller_id=seller_id,
        amount=Decimal(str(amount)),
        currency=currency,
        created_at=created_at,
        title=f"Auction lot {id}",
    )


def payout(seller_id: str, *txns: Transaction) -> PendingPayout:
    return PendingPayout(
        seller=seller(seller_id),
        transactions=list(txns),
        total_amount=sum((t.amount for t in txns), Decimal("0")),
        transaction_count=len(txns),
        oldest_transaction=min(t.created_at for t in txns),
    )


def snapshot(*payouts: PendingPayout) -> PendingPayoutSnapshot:
    return PendingPayoutSnapshot(
        pending_payouts=list(payouts),
        total_sellers=len(payouts),
        total_amount=sum((p.total_amount for p in payouts), Decimal("0")),
    )


def two_seller_snapshot() -> PendingPayoutSnapshot:
    """S1 owes T1=100 and T2=50, S2 owes T3=200."""
    return snapshot(
        payout("S1", txn("T1", "S1", 100), txn("T2", "S1", 50, created_at=JAN5)),
        payout("S2", txn("T3", "S2", 200)),
    )


def make_store() -> DataStore:
    s = DataStore()
    for sid in ("S1", "S2", "S3"):
        s.add_seller(seller(sid))
    s.add_transaction(txn("T1", "S1", 100), commission_amount=Decimal("9.00"))
    s.add_transaction(txn("T2", "S1", 50, created_at=JAN5), commission_amount=Decimal("4.50"))
    s.add_transaction(txn("T3", "S2", 200), commission_amount=Decimal("18.00"))
    s.add_transaction(txn("T4", "S3", 75, currency="EUR", created_at=JAN10))
    return s


def make_api(store: DataStore = None) -> MockPayoutAPI:
    return MockPayoutAPI(store or make_store(), today=lambda: TODAY)
