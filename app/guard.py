from contextlib import contextmanager
from threading import Lock

import structlog

from app.errors import ConcurrentOperationError

logger = structlog.get_logger(__name__)


class InFlightGuard:
    """Single-slot token for one logical action.

    A second caller is turned away with ConcurrentOperationError instead of
    waiting, so a double click never submits twice.
    """

    def __init__(self, action: str):
        self.action = action
        self._lock = Lock()

    @property
    def in_flight(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def hold(self):
        if not self._lock.acquire(blocking=False):
            logger.warning("concurrent_operation_rejected", action=self.action)
            raise ConcurrentOperationError(self.action)
        try:
            yield
        finally:
            self._lock.release()
