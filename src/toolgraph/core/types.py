"""Pure data types for toolgraph.core.

These are simple dataclasses and enums with no behavior coupling.
They can be passed around, compared, and serialized anywhere.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any


class ExecutionMode(Enum):
    """How an execution graph schedules its nodes."""

    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"


class NodeMode(Enum):
    """Whether a node always runs or is gated by a condition."""

    NORMAL = "normal"
    CONDITIONAL = "conditional"


class NodeStatus(Enum):
    """Per-node execution states.

    State transitions:
        PENDING -> CACHED
        PENDING -> RUNNING -> COMPLETED
        PENDING -> RUNNING -> RETRYING -> RUNNING
        PENDING -> RUNNING -> FAILED
        PENDING -> SKIPPED  (conditional nodes only)
    """

    PENDING = auto()
    RUNNING = auto()
    RETRYING = auto()
    CACHED = auto()  # Served from cache, capability not invoked
    COMPLETED = auto()
    FAILED = auto()  # Retries exhausted
    SKIPPED = auto()  # Condition evaluated false

    @property
    def is_terminal(self) -> bool:
        return self in (NodeStatus.CACHED, NodeStatus.COMPLETED, NodeStatus.FAILED, NodeStatus.SKIPPED)


@dataclass(frozen=True)
class Output:
    """Result of a capability invocation.

    Attributes:
        result: The result value.
        error: Optional error text reported by the capability itself.
        raw: Optional raw payload from the underlying capability.
    """

    result: Any
    error: str | None = None
    raw: Any = None

    @property
    def ok(self) -> bool:
        """True when the capability did not report an error."""
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary.

        Returns:
            Dict with result, error and raw fields.
        """
        return {
            "result": self.result,
            "error": self.error,
            "raw": self.raw,
        }

    def __repr__(self) -> str:
        max_len = 60
        preview = repr(self.result)
        if len(preview) > max_len:
            preview = preview[:max_len] + "..."
        error_str = f", error={self.error!r}" if self.error else ""
        return f"Output(result={preview}{error_str})"
