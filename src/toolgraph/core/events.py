"""ExecutionEvent - structured events emitted while a graph runs.

The Orchestrator reports every node transition to an EventSink. Sinks
are fire-and-forget: whatever a sink does (or raises) never changes how
the graph is scheduled.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Protocol, runtime_checkable

from toolgraph.core.run_logging import log_complete, log_error, log_info, log_start, log_warning
from toolgraph.core.types import NodeStatus

EventType = Literal[
    "graph_start",
    "graph_complete",
    "graph_failed",
    "node_start",
    "node_complete",
    "node_failed",
    "node_retry",
    "node_skipped",
    "cache_hit",
]


@dataclass(frozen=True)
class ExecutionEvent:
    """Event emitted during graph execution.

    Attributes:
        event_type: Type of event.
        run_id: The graph run this event belongs to.
        caller_id: Identity of the caller that started the run.
        node_id: The node this event relates to (None for graph events).
        tool_name: The capability involved (None for graph events).
        status: Node status after this event (None for graph events).
        attempt: 1-indexed attempt number for invocation events.
        duration_ms: Elapsed time for completion and failure events.
        error: Error text for failure and retry events.
        data: Event-specific extras (input, mode, delay, ...).
        timestamp: When the event occurred.
    """

    event_type: EventType
    run_id: str
    caller_id: str
    node_id: str | None = None
    tool_name: str | None = None
    status: NodeStatus | None = None
    attempt: int | None = None
    duration_ms: float | None = None
    error: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "event_type": self.event_type,
            "run_id": self.run_id,
            "caller_id": self.caller_id,
            "node_id": self.node_id,
            "tool_name": self.tool_name,
            "status": self.status.name if self.status else None,
            "attempt": self.attempt,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "data": {k: str(v) for k, v in self.data.items()},
            "timestamp": self.timestamp.isoformat(),
        }


@runtime_checkable
class EventSink(Protocol):
    """Receiver of execution events.

    Implementations should return quickly; exceptions are logged and
    otherwise ignored by the Orchestrator.
    """

    def emit(self, event: ExecutionEvent) -> None:
        """Handle one event."""
        ...


class LoggingEventSink:
    """Event sink that writes events to a stdlib logger.

    Lines use the run logging format, keyed by caller id:
        [agent-1] node_retry: run=..., node=fetch, tool=WebSearch, attempt=1, error=...

    Args:
        logger: Logger to write to. Defaults to "toolgraph.events".
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("toolgraph.events")

    def emit(self, event: ExecutionEvent) -> None:
        fields: dict[str, Any] = {
            "run": event.run_id,
            "node": event.node_id,
            "tool": event.tool_name,
            "attempt": event.attempt,
            **event.data,
        }
        identifier = event.caller_id

        if event.event_type in ("node_failed", "graph_failed"):
            log_error(self.logger, identifier, event.event_type, event.error or "unknown error", **fields)
        elif event.event_type == "node_retry":
            log_warning(self.logger, identifier, event.event_type, error=event.error, **fields)
        elif event.event_type in ("node_complete", "graph_complete"):
            duration_s = (event.duration_ms or 0.0) / 1000
            log_complete(self.logger, identifier, event.event_type, duration_s, **fields)
        elif event.event_type in ("node_skipped", "cache_hit"):
            log_info(self.logger, identifier, event.event_type, **fields)
        else:
            log_start(self.logger, identifier, event.event_type, **fields)
