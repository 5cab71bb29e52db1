"""CorrelationTracker for tying log lines to one logical operation."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from procexport.export.common.constants import CorrelationStatus

logger = logging.getLogger(__name__)


@dataclass
class CorrelationContext:
    """Tracking record for one operation instance."""

    id: str
    operation_type: str
    start_time: datetime
    end_time: Optional[datetime] = None
    status: CorrelationStatus = CorrelationStatus.ACTIVE

    @property
    def duration(self) -> Optional[timedelta]:
        if self.end_time is None:
            return None
        return self.end_time - self.start_time


class CorrelationTracker:
    """
    Generates correlation ids and tracks their lifecycle.

    Ids look like ``EXPORT_BATCH-20250131-142530-9f1c2ab4``. Each id has a
    single owner, so the lock only guards individual dict operations and is
    never held across unrelated operations.

    Instances are passed explicitly to the components that need them.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self._contexts: Dict[str, CorrelationContext] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def _new_id(self, operation_type: str, now: datetime) -> str:
        return f"{operation_type}-{now.strftime('%Y%m%d-%H%M%S')}-{uuid.uuid4().hex[:8]}"

    def begin(self, operation_type: str) -> str:
        """Record a new active operation and return its id."""
        operation_type = operation_type.upper()
        now = self._clock()
        while True:
            correlation_id = self._new_id(operation_type, now)
            with self._lock:
                if correlation_id not in self._contexts:
                    self._contexts[correlation_id] = CorrelationContext(
                        id=correlation_id,
                        operation_type=operation_type,
                        start_time=now,
                    )
                    break

        logger.debug(f"[{correlation_id}] Started {operation_type}")
        return correlation_id

    def complete(self, correlation_id: str, success: bool) -> None:
        """Mark an operation completed or failed. Unknown ids are ignored."""
        with self._lock:
            context = self._contexts.get(correlation_id)
            if context is None:
                return
            context.status = CorrelationStatus.COMPLETED if success else CorrelationStatus.FAILED
            context.end_time = self._clock()

        logger.debug(f"[{correlation_id}] Finished with status {context.status}")

    def sweep(self, max_age: timedelta) -> int:
        """Drop finished contexts that started more than ``max_age`` ago.

        Returns:
            Number of contexts removed
        """
        cutoff = self._clock() - max_age
        with self._lock:
            stale = [
                key
                for key, context in self._contexts.items()
                if context.status != CorrelationStatus.ACTIVE and context.start_time < cutoff
            ]
            for key in stale:
                del self._contexts[key]

        if stale:
            logger.debug(f"Swept {len(stale)} correlation contexts older than {max_age}")
        return len(stale)

    def get(self, correlation_id: str) -> Optional[CorrelationContext]:
        with self._lock:
            return self._contexts.get(correlation_id)

    def active_count(self) -> int:
        with self._lock:
            return sum(1 for c in self._contexts.values() if c.status == CorrelationStatus.ACTIVE)

    def __len__(self) -> int:
        with self._lock:
            return len(self._contexts)
