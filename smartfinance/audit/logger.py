"""
Sync Event Logger

DESIGN DECISION: Every significant reconciliation step is logged.
This provides:
1. Traceability of what happened to the user's data and when
2. Debugging capability for sync problems
3. A short history the UI can show ("last synced at ...")

The event logger:
- Is synchronous; writing a log line never waits on the network
- Keeps a bounded in-memory history, oldest events dropped first
- Never raises into the caller
"""

from collections import deque
from typing import Optional

import structlog

from smartfinance.models.events import SyncEvent, SyncEventType, SyncSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class SyncEventLogger:
    """
    Central sync event log.

    Logs events both to:
    1. Structured local log (for debugging)
    2. In-memory history (for the UI)
    """

    def __init__(self, history_size: int = 200):
        """
        Initialize event logger.

        Args:
            history_size: Number of events kept in memory. 0 keeps none.
        """
        self._history: deque[SyncEvent] = deque(maxlen=history_size)
        self._logger = structlog.get_logger("smartfinance.sync")

    def log(self, event: SyncEvent) -> SyncEvent:
        """Record an event and return it."""
        log_dict = event.to_log_dict()

        if event.severity == SyncSeverity.ERROR:
            self._logger.error("sync_event", **log_dict)
        elif event.severity == SyncSeverity.WARNING:
            self._logger.warning("sync_event", **log_dict)
        elif event.severity == SyncSeverity.DEBUG:
            self._logger.debug("sync_event", **log_dict)
        else:
            self._logger.info("sync_event", **log_dict)

        self._history.append(event)
        return event

    def recent(
        self,
        limit: Optional[int] = None,
        event_type: Optional[SyncEventType] = None,
    ) -> list[SyncEvent]:
        """Most recent events first, optionally filtered by type."""
        events = [
            e for e in reversed(self._history)
            if event_type is None or e.event_type == event_type
        ]
        return events if limit is None else events[:limit]

    def last(self, event_type: SyncEventType) -> Optional[SyncEvent]:
        """The latest event of a type, e.g. the last successful push."""
        for event in reversed(self._history):
            if event.event_type == event_type:
                return event
        return None

    def clear(self) -> None:
        self._history.clear()
