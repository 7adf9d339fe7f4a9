"""
Audit Logger

DESIGN DECISION: Every ledger mutation is logged, accepted or rejected.
This provides:
1. Complete traceability of balance changes
2. Debugging capability when a mutation is refused
3. A hook for persisting history elsewhere

The audit logger:
- Is synchronous, like the ledger it observes
- Gracefully handles sink failures (never breaks a ledger operation)
- Keeps a short in-memory history of recent events
"""

import logging
from collections import deque
from typing import Callable, Optional

import structlog

from finance_tracker.models.audit import AuditEvent, AuditSeverity


AuditSink = Callable[[AuditEvent], None]


def configure_logging(level: str = "INFO", json_output: bool = True) -> None:
    """
    Configure structlog for the process.

    JSON output for machines, console rendering for a developer terminal.
    """
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper()))
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
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
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An optional sink (for persistence elsewhere)
    """

    def __init__(
        self,
        sink: Optional[AuditSink] = None,
        history_size: int = 200,
    ):
        """
        Initialize audit logger.

        Args:
            sink: Callable receiving every event. If None, only logs locally.
            history_size: How many recent events to keep in memory.
        """
        self._sink = sink
        self._history: deque[AuditEvent] = deque(maxlen=history_size)
        self._logger = structlog.get_logger("finance_tracker.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Forwards to the sink if configured.

        Returns True if the sink accepted the event (or no sink configured).
        """
        self._history.append(event)
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._sink is not None:
            try:
                self._sink(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_sink_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Most recent events, newest first."""
        if limit <= 0:
            return []
        events = list(self._history)[-limit:]
        events.reverse()
        return events
