"""ExecutionContext - read-only view of a graph run.

ExecutionContext is what input functions, transforms and conditions see
while a graph is running:
- Identity of the caller that started the run
- Results of nodes that have already completed
- Output history per node id (across runs of the same Orchestrator)

The context never owns the results. The Orchestrator writes into the
underlying dict after a node settles; everything exposed here is a
read-only view or a copy.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from toolgraph.core.types import Output


@dataclass
class ExecutionContext:
    """Context passed to node input functions and transforms.

    Attributes:
        caller_id: Identity of the caller (agent) running the graph.
        run_id: Unique identifier for this graph run.

    Example:
        >>> def summarize_input(ctx: ExecutionContext) -> str:
        ...     previous = ctx.get_previous_result("search")
        ...     text = previous.result if previous else ""
        ...     return f"Summarize: {text}"
    """

    caller_id: str
    run_id: str | None = None
    _results: dict[str, Output] = field(default_factory=dict, repr=False)
    _history: dict[str, list[Output]] = field(default_factory=dict, repr=False)

    @property
    def results(self) -> Mapping[str, Output]:
        """Live read-only view of completed results, keyed by node id."""
        return MappingProxyType(self._results)

    @property
    def history(self) -> Mapping[str, list[Output]]:
        """Read-only view of raw outputs per node id."""
        return MappingProxyType(self._history)

    def get_previous_result(self, node_id: str) -> Output | None:
        """Get the result of a completed node.

        Args:
            node_id: The node id.

        Returns:
            The node's output, or None if it has not completed, was
            skipped, or failed.
        """
        return self._results.get(node_id)

    def get_all_results(self) -> dict[str, Output]:
        """Snapshot of all results completed so far.

        Returns:
            A new dict; later completions do not show up in it.
        """
        return dict(self._results)

    def get_history(self, node_id: str) -> list[Output]:
        """Raw outputs recorded for a node, oldest first.

        Args:
            node_id: The node id.

        Returns:
            A copy of the node's history (empty if none).
        """
        return list(self._history.get(node_id, ()))
