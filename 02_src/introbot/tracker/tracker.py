"""Tracker implementation for creating TraceEvents."""

import uuid
from typing import Protocol

from ..clock import Clock, SystemClock
from ..logging_config import get_logger
from ..models import TraceEvent
from ..storage import Storage

logger = get_logger(__name__)


class ITracker(Protocol):
    """Creating TraceEvents for dialog and matching milestones."""

    async def track(self, event_type: str, actor: str, data: dict) -> None:
        """Create TraceEvent and save to Storage."""
        ...


class Tracker:
    """Persists TraceEvents; a failing save is logged, never raised."""

    def __init__(self, storage: Storage, clock: Clock | None = None):
        self._storage = storage
        self._clock = clock or SystemClock()

    async def track(self, event_type: str, actor: str, data: dict) -> None:
        """Create TraceEvent and save to Storage."""
        trace_event = TraceEvent(
            id=str(uuid.uuid4()),
            event_type=event_type,
            actor=actor,
            data=data,
            timestamp=self._clock.now(),
        )
        try:
            await self._storage.save_trace_event(trace_event)
        except Exception as e:
            logger.error(f"Failed to track {event_type}: {e}", exc_info=True)
