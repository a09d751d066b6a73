"""
Unit tests for HttpPayoutAPI. The requests session is mocked.
"""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import requests

from app.client import HttpPayoutAPI
from app.errors import RemoteDataError, TransportFailure
from app.models import CreateSchedulesRequest, ProcessPayoutsRequest, SellerRejection

PENDING_BODY = {
    "success": True,
    "pending_payouts": [
        {
            "seller": {"id": 4, "email": "contact@industrialwaste.se", "name": "Industrial Waste Solutions"},
            "total_amount": "1092.00",
            "transaction_count": 1,
            "oldest_transaction": "2024-01-13T12:30:00Z",
            "transactions": [
                {
                    "id": "txn_88",
                    "seller_id": 4,
                    "amount": "1092.00",
                    "currency": "SEK",
                    "created_at": "2024-01-13T12:30:00Z",
                },
            ],
        }
    ],
    "total_sellers": 1,
    "total_amount": "1092.00",
}


def response(status=200, body=None):
    r = MagicMock()
    r.status_code = status
    if isinstance(body, Exception):
        r.json.side_effect = body
    else:
        r.json.return_value = body
    return r


def client_returning(*responses, token=None):
    session = MagicMock()
    session.request.side_effect = list(responses)
    return HttpPayoutAPI("https://api.example.com/api/", token=token, timeout=5, session=session), session


class TestReads:
    def test_pending_payouts_parsed_with_string_ids(self):
        api, session = client_returning(response(body=PENDING_BODY), token="secret")
        snap = api.get_pending_payouts()

        payout = snap.get("4")
        assert payout.seller.name == "Industrial Waste Solutions"
        assert payout.transactions[0].amount == Decimal("1092.00")

        args, kwargs = session.request.call_args
        assert args == ("GET", "https://api.example.com/api/payments/admin/pending-payouts/")
        assert kwargs["timeout"] == 5
        assert kwargs["headers"]["Authorization"] == "Bearer secret"

    def test_count_mismatch_fails_loudly(self):
        body = {**PENDING_BODY, "pending_payouts": [{**PENDING_BODY["pending_payouts"][0], "transaction_count": 3}]}
        api, _ = client_returning(response(body=body))
        with pytest.raises(RemoteDataError):
            api.get_pending_payouts()

    def test_missing_amount_fails_loudly(self):
        entry = dict(PENDING_BODY["pending_payouts"][0])
        del entry["total_amount"]
        api, _ = client_returning(response(body={**PENDING_BODY, "pending_payouts": [entry]}))
        with pytest.raises(RemoteDataError):
            api.get_pending_payouts()

    def test_stats_sends_start_date(self):
        body = {
            "total_payments": "5687.50",
            "total_commission": "562.50",
            "pending_payouts": "1092.00",
            "active_sellers": 3,
            "recent_transactions": 12,
            "commission_rate_breakdown": {"9": "400.00"},
        }
        api, session = client_returning(response(body=body))
        stats = api.get_payment_stats(date(2026, 1, 1))
        assert stats.active_sellers == 3
        assert session.request.call_args.kwargs["params"] == {"start_date": "2026-01-01"}

    def test_non_json_body(self):
        api, _ = client_returning(response(body=ValueError("no json")))
        with pytest.raises(RemoteDataError):
            api.get_payment_stats()


class TestTransport:
    def test_timeout(self):
        session = MagicMock()
        session.request.side_effect = requests.Timeout()
        api = HttpPayoutAPI("https://api.example.com", session=session)
        with pytest.raises(TransportFailure, match="timed out"):
            api.get_pending_payouts()

    def test_connection_error(self):
        session = MagicMock()
        session.request.side_effect = requests.ConnectionError("refused")
        api = HttpPayoutAPI("https://api.example.com", session=session)
        with pytest.raises(TransportFailure):
            api.list_payout_schedules()

    def test_server_error(self):
        api, _ = client_returning(response(status=503, body={"detail": "down"}))
        with pytest.raises(TransportFailure, match="HTTP 503"):
            api.get_pending_payouts()


class TestWrites:
    def test_create_posts_partial_map(self):
        body = {
            "success": True,
            "created_schedules": [{
                "id": 31, "seller_id": 4, "total_amount": "100.00", "currency": "SEK",
                "status": "scheduled", "scheduled_date": "2026-03-01",
                "created_at": "2026-02-01T09:00:00Z",
            }],
            "errors": [],
            "message": "Created 1 payout schedules",
        }
        api, session = client_returning(response(body=body))
        result = api.create_payout_schedules(CreateSchedulesRequest(
            seller_ids=["4"], scheduled_date=date(2026, 3, 1), transaction_ids={"4": ["txn_88"]},
        ))

        assert result.created_schedules[0].id == "31"
        sent = session.request.call_args.kwargs["json"]
        assert sent == {
            "seller_ids": ["4"],
            "scheduled_date": "2026-03-01",
            "notes": "",
            "transaction_ids": {"4": ["txn_88"]},
        }

    def test_create_rejection_in_4xx_body_is_structured(self):
        body = {
            "success": False,
            "created_schedules": [],
            "errors": [{"seller_id": 4, "error": "already scheduled"}],
            "message": "Failed",
        }
        api, _ = client_returning(response(status=400, body=body))
        result = api.create_payout_schedules(CreateSchedulesRequest(
            seller_ids=["4"], scheduled_date=date(2026, 3, 1),
        ))
        assert result.errors == [SellerRejection(seller_id="4", error="already scheduled")]

    def test_process_4xx_without_success_flag_is_transport_failure(self):
        api, _ = client_returning(response(status=403, body={"detail": "forbidden"}))
        with pytest.raises(TransportFailure):
            api.process_payouts(ProcessPayoutsRequest(payout_schedule_ids=["31"], force_process=True))
