"""
Two-level payout selection.

SelectionState maps seller id -> selected transaction ids, together with the
authoritative seller classification (partial / full). Every transition is a
pure function returning a new state; the input state is never modified.

Invariants kept by every transition:
  - a seller has an entry iff its selected set is non-empty
  - the entry is FULL iff it equals the seller's current transaction ids,
    PARTIAL otherwise
  - selected ids always belong to the seller's current pending payout
"""

from typing import Iterable

import structlog
from pydantic import BaseModel, ConfigDict, Field

from app.models import PendingPayout, PendingPayoutSnapshot, SellerSelection

logger = structlog.get_logger(__name__)


class SelectionState(BaseModel):
    model_config = ConfigDict(frozen=True)

    selected: dict[str, frozenset[str]] = Field(default_factory=dict)
    classification: dict[str, SellerSelection] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.selected

    @property
    def selected_seller_ids(self) -> frozenset[str]:
        return frozenset(self.selected)

    @property
    def fully_selected(self) -> frozenset[str]:
        return frozenset(s for s, c in self.classification.items() if c == SellerSelection.FULL)

    @property
    def partially_selected(self) -> frozenset[str]:
        return frozenset(s for s, c in self.classification.items() if c == SellerSelection.PARTIAL)

    def classify(self, seller_id: str) -> SellerSelection:
        return self.classification.get(seller_id, SellerSelection.NONE)

    def transaction_ids(self, seller_id: str) -> frozenset[str]:
        return self.selected.get(seller_id, frozenset())


def _with_seller(state: SelectionState, payout: PendingPayout, ids: Iterable[str]) -> SelectionState:
    available = payout.transaction_ids()
    ids = frozenset(ids) & available
    selected = dict(state.selected)
    classification = dict(state.classification)
    if ids:
        selected[payout.seller_id] = ids
        classification[payout.seller_id] = (
            SellerSelection.FULL if ids == available else SellerSelection.PARTIAL
        )
    else:
        selected.pop(payout.seller_id, None)
        classification.pop(payout.seller_id, None)
    return SelectionState(selected=selected, classification=classification)


def toggle_seller(state: SelectionState, snapshot: PendingPayoutSnapshot, seller_id: str) -> SelectionState:
    """FULL -> nothing selected; NONE or PARTIAL -> every transaction selected.

    A seller missing from the snapshot leaves the state unchanged.
    """
    payout = snapshot.get(seller_id)
    if payout is None:
        logger.info("selection_toggle_ignored", seller_id=seller_id, reason="seller not pending")
        return state
    if state.classify(seller_id) == SellerSelection.FULL:
        return _with_seller(state, payout, ())
    return _with_seller(state, payout, payout.transaction_ids())


def toggle_transaction(
    state: SelectionState,
    snapshot: PendingPayoutSnapshot,
    seller_id: str,
    transaction_id: str,
) -> SelectionState:
    payout = snapshot.get(seller_id)
    if payout is None or transaction_id not in payout.transaction_ids():
        logger.info(
            "selection_toggle_ignored",
            seller_id=seller_id,
            transaction_id=transaction_id,
            reason="transaction not pending",
        )
        return state
    current = state.transaction_ids(seller_id)
    return _with_seller(state, payout, current ^ {transaction_id})


def select_all(state: SelectionState, snapshot: PendingPayoutSnapshot) -> SelectionState:
    if not snapshot.pending_payouts:
        return state
    result = SelectionState()
    for payout in snapshot.pending_payouts:
        result = _with_seller(result, payout, payout.transaction_ids())
    return result


def deselect_all(state: SelectionState) -> SelectionState:
    return SelectionState()


def all_selected(state: SelectionState, snapshot: PendingPayoutSnapshot) -> bool:
    seller_ids = snapshot.seller_ids()
    return bool(seller_ids) and all(state.classify(s) == SellerSelection.FULL for s in seller_ids)


def drop_sellers(state: SelectionState, seller_ids: Iterable[str]) -> SelectionState:
    drop = set(seller_ids)
    return SelectionState(
        selected={s: ids for s, ids in state.selected.items() if s not in drop},
        classification={s: c for s, c in state.classification.items() if s not in drop},
    )


def stale_transaction_ids(state: SelectionState, snapshot: PendingPayoutSnapshot) -> dict[str, list[str]]:
    """Selected ids that the snapshot no longer lists, keyed by seller."""
    stale = {}
    for seller_id, ids in state.selected.items():
        payout = snapshot.get(seller_id)
        available = payout.transaction_ids() if payout else frozenset()
        missing = ids - available
        if missing:
            stale[seller_id] = sorted(missing)
    return stale


def reconcile(state: SelectionState, snapshot: PendingPayoutSnapshot) -> SelectionState:
    """Intersect the selection with a freshly loaded snapshot."""
    result = SelectionState()
    for seller_id, ids in state.selected.items():
        payout = snapshot.get(seller_id)
        if payout is None:
            continue
        result = _with_seller(result, payout, ids)
    return result
