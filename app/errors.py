"""
Error taxonomy for the payout console.

Orchestrator operations hand these back inside result objects rather than
raising them, except RemoteDataError, which propagates.
"""

from datetime import datetime, timezone
from typing import Any, Optional


class PayoutError(Exception):
    """
    Base class for every payout console error.

    Attributes:
        code: Error code (e.g., "VALIDATION_ERROR")
        message: Human-readable message
        status_code: HTTP status code used by the API layer
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp,
            }
        }


class ValidationError(PayoutError):
    """Local input check failed; nothing was sent to the payout API."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=422,
            details={"field": field},
        )


class PartialFailure(PayoutError):
    """The payout API accepted some sellers and rejected others."""

    def __init__(
        self,
        succeeded_seller_ids: list[str],
        failed: list[dict[str, str]],
        schedule_ids: Optional[list[str]] = None,
    ):
        self.succeeded_seller_ids = list(succeeded_seller_ids)
        self.failed = list(failed)
        self.schedule_ids = list(schedule_ids or [])
        super().__init__(
            code="PARTIAL_FAILURE",
            message=f"{len(self.failed)} seller(s) rejected, {len(self.succeeded_seller_ids)} accepted",
            status_code=207,
            details={
                "succeeded_seller_ids": self.succeeded_seller_ids,
                "failed": self.failed,
                "schedule_ids": self.schedule_ids,
            },
        )

    @property
    def failed_seller_ids(self) -> list[str]:
        return [f["seller_id"] for f in self.failed]


class TransportFailure(PayoutError):
    """The call to the payout API did not complete."""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        super().__init__(
            code="TRANSPORT_FAILURE",
            message=f"{operation} failed: {reason}",
            status_code=502,
            details={"operation": operation},
        )


class InconsistentStateFailure(PayoutError):
    """A payout schedule was created but could not be processed."""

    def __init__(self, schedule_ids: list[str], reason: str):
        self.schedule_ids = list(schedule_ids)
        super().__init__(
            code="SCHEDULE_CREATED_NOT_PROCESSED",
            message=f"Schedule created but not processed: {reason}",
            status_code=409,
            details={"schedule_ids": self.schedule_ids},
        )

    @property
    def schedule_id(self) -> Optional[str]:
        return self.schedule_ids[0] if self.schedule_ids else None


class ConcurrentOperationError(PayoutError):
    def __init__(self, action: str):
        self.action = action
        super().__init__(
            code="OPERATION_IN_FLIGHT",
            message=f"'{action}' is already in progress",
            status_code=409,
            details={"action": action},
        )


class RemoteDataError(PayoutError):
    """The payout API answered with data we cannot trust."""

    def __init__(self, operation: str, reason: str):
        super().__init__(
            code="REMOTE_DATA_ERROR",
            message=f"Unexpected response from {operation}: {reason}",
            status_code=502,
            details={"operation": operation},
        )
