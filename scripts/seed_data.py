"""
Deterministic demo data for the in-memory payout backend.

Produces:
  - 4 sellers of recovered materials
  - 3-6 settled auction sales each, spread over Jan 2026
  - Currencies: SEK for three sellers, EUR for the Finnish one
"""

import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from app.models import Seller, Transaction
from app.store import DataStore

SEED = 42
START = datetime(2026, 1, 1, tzinfo=timezone.utc)
END   = datetime(2026, 1, 31, 23, 59, 59, tzinfo=timezone.utc)

LOTS = [
    "Mixed plastics, 2 t",
    "Cardboard bales",
    "Copper cable scrap",
    "Aluminium offcuts",
    "Reclaimed oak beams",
    "HDPE regrind",
    "Glass cullet, clear",
    "Steel drums, cleaned",
]


def _rand_dt(rng: random.Random, lo: datetime = START, hi: datetime = END) -> datetime:
    delta = hi - lo
    secs = rng.randint(0, int(delta.total_seconds()))
    return lo + timedelta(seconds=secs)


def seed(store: DataStore) -> None:
    rng = random.Random(SEED)

    # ── sellers ──────────────────────────────────────────────────────────────
    sellers = [
        (Seller(id="4", name="Industrial Waste Solutions", email="contact@industrialwaste.se"), "SEK"),
        (Seller(id="7", name="Nordic Metal Recovery", email="payouts@nordicmetal.se"), "SEK"),
        (Seller(id="12", name="Gothenburg Timber Reuse", email="ekonomi@gbgtimber.se"), "SEK"),
        (Seller(id="15", name="Helsinki Polymer Loop", email="finance@polymerloop.fi"), "EUR"),
    ]

    # ── settled sales owed to each seller ────────────────────────────────────
    txn_no = 1
    for seller, currency in sellers:
        store.add_seller(seller)
        for _ in range(rng.randint(3, 6)):
            gross = Decimal(rng.randrange(50_000, 2_500_000)) / 100
            commission = (gross * Decimal("0.09")).quantize(Decimal("0.01"))
            store.add_transaction(
                Transaction(
                    id=f"TXN-{txn_no:04d}",
                    seller_id=seller.id,
                    amount=gross - commission,
                    currency=currency,
                    created_at=_rand_dt(rng),
                    title=f"Auction #{1000 + txn_no}: {rng.choice(LOTS)}",
                ),
                commission_amount=commission,
            )
            txn_no += 1


if __name__ == "__main__":
    s = DataStore()
    seed(s)
    print(f"Seeded {len(s.sellers)} sellers, {len(s.entries)} transactions")
