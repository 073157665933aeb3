"""Error types for graph construction and execution.

BuildError and DependencyCycleError are raised before any node runs.
CapabilityNotFoundError and CapabilityExecutionError are raised while a
node executes; parallel graphs catch them per node, sequential graphs
let them propagate.
"""

from __future__ import annotations


class ToolGraphError(Exception):
    """Base error for toolgraph."""


class BuildError(ToolGraphError, ValueError):
    """Graph or node configuration is invalid.

    Raised when:
    - A graph is built with zero nodes
    - Two nodes share an id
    - A node depends on an id that is not in the graph
    - A node's fields are malformed (blank id, missing condition, ...)
    """


class DependencyCycleError(ToolGraphError):
    """The dependency graph contains a cycle.

    Attributes:
        cycle: Node ids along the cycle, first id repeated at the end.
    """

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        super().__init__(f"Circular dependency detected: {' -> '.join(cycle)}")


class CapabilityNotFoundError(ToolGraphError, LookupError):
    """A node references a tool name that is not registered."""

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"Tool '{tool_name}' not found")


class CapabilityExecutionError(ToolGraphError):
    """A capability kept failing after all retry attempts.

    The last error raised by the capability is chained as ``__cause__``.

    Attributes:
        node_id: The node that failed.
        tool_name: The capability that was invoked.
        attempts: Number of invocations made.
    """

    def __init__(self, node_id: str, tool_name: str, attempts: int, error: BaseException) -> None:
        self.node_id = node_id
        self.tool_name = tool_name
        self.attempts = attempts
        super().__init__(
            f"Node '{node_id}' ({tool_name}) failed after {attempts} attempt(s): {error}"
        )


class ChainNotFoundError(ToolGraphError, LookupError):
    """No tool chain is registered under the requested name."""

    def __init__(self, chain_name: str) -> None:
        self.chain_name = chain_name
        super().__init__(f"Tool chain '{chain_name}' not found")
