"""
Client for the marketplace payout API.

HttpPayoutAPI talks to the real admin endpoints; MockPayoutAPI in
app.store implements the same protocol in memory.
"""

from datetime import date
from typing import Any, Optional, Protocol

import pydantic
import requests
import structlog

from app.errors import RemoteDataError, TransportFailure
from app.models import (
    CreateSchedulesRequest,
    CreateSchedulesResponse,
    PaymentStats,
    PayoutSchedule,
    PendingPayoutSnapshot,
    ProcessPayoutsRequest,
    ProcessPayoutsResponse,
)

logger = structlog.get_logger(__name__)

_SCHEDULE_LIST = pydantic.TypeAdapter(list[PayoutSchedule])


class PayoutAPI(Protocol):
    def get_pending_payouts(self) -> PendingPayoutSnapshot: ...

    def get_payment_stats(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> PaymentStats: ...

    def list_payout_schedules(self) -> list[PayoutSchedule]: ...

    def create_payout_schedules(self, request: CreateSchedulesRequest) -> CreateSchedulesResponse: ...

    def process_payouts(self, request: ProcessPayoutsRequest) -> ProcessPayoutsResponse: ...


class HttpPayoutAPI:
    """requests-based client. Every call honours ``timeout`` (seconds)."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(
        self,
        operation: str,
        method: str,
        path: str,
        params: Optional[dict] = None,
        body: Optional[dict] = None,
        structured_errors: bool = False,
    ) -> Any:
        """
        Perform one call and return the decoded JSON body.

        Args:
            structured_errors: accept a 4xx whose body carries a ``success``
                flag; the payout endpoints report per-seller rejections that way

        Raises:
            TransportFailure: network error, timeout or unusable HTTP status
            RemoteDataError: body is not JSON
        """
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=body,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            logger.error("payout_api_timeout", operation=operation, timeout=self.timeout)
            raise TransportFailure(operation, f"timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            logger.error("payout_api_unreachable", operation=operation, error=str(exc))
            raise TransportFailure(operation, str(exc)) from exc

        status = response.status_code
        if status >= 400 and not (structured_errors and 400 <= status < 500):
            logger.error("payout_api_error_status", operation=operation, status=status)
            raise TransportFailure(operation, f"HTTP {status}")

        try:
            payload = response.json()
        except ValueError as exc:
            if status >= 400:
                raise TransportFailure(operation, f"HTTP {status}") from exc
            raise RemoteDataError(operation, "body is not JSON") from exc

        if status >= 400 and not (isinstance(payload, dict) and "success" in payload):
            logger.error("payout_api_error_status", operation=operation, status=status)
            raise TransportFailure(operation, f"HTTP {status}")
        return payload

    @staticmethod
    def _parse(operation: str, model, payload):
        try:
            if isinstance(model, pydantic.TypeAdapter):
                return model.validate_python(payload)
            return model.model_validate(payload)
        except pydantic.ValidationError as exc:
            logger.error("payout_api_bad_payload", operation=operation, errors=exc.error_count())
            raise RemoteDataError(operation, str(exc)) from exc

    def get_pending_payouts(self) -> PendingPayoutSnapshot:
        payload = self._request("pending-payouts", "GET", "/payments/admin/pending-payouts/")
        return self._parse("pending-payouts", PendingPayoutSnapshot, payload)

    def get_payment_stats(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> PaymentStats:
        params = {}
        if start_date:
            params["start_date"] = start_date.isoformat()
        if end_date:
            params["end_date"] = end_date.isoformat()
        payload = self._request("payment-stats", "GET", "/payments/admin/stats/", params=params)
        return self._parse("payment-stats", PaymentStats, payload)

    def list_payout_schedules(self) -> list[PayoutSchedule]:
        payload = self._request("list-payout-schedules", "GET", "/payments/admin/payout-schedules/")
        return self._parse("list-payout-schedules", _SCHEDULE_LIST, payload)

    def create_payout_schedules(self, request: CreateSchedulesRequest) -> CreateSchedulesResponse:
        payload = self._request(
            "create-payout-schedules",
            "POST",
            "/payments/admin/payout-schedules/",
            body=request.model_dump(mode="json", exclude_none=True),
            structured_errors=True,
        )
        return self._parse("create-payout-schedules", CreateSchedulesResponse, payload)

    def process_payouts(self, request: ProcessPayoutsRequest) -> ProcessPayoutsResponse:
        payload = self._request(
            "process-payouts",
            "POST",
            "/payments/admin/process-payouts/",
            body=request.model_dump(mode="json"),
            structured_errors=True,
        )
        return self._parse("process-payouts", ProcessPayoutsResponse, payload)
