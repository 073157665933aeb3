"""ToolNode - a single schedulable tool invocation."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from toolgraph.core.errors import BuildError
from toolgraph.core.types import NodeMode

if TYPE_CHECKING:
    from toolgraph.core.context import ExecutionContext
    from toolgraph.core.graph.policies import RetryPolicy
    from toolgraph.core.types import Output

    NodeInput = str | Callable[[ExecutionContext], str]
    Condition = Callable[[Mapping[str, Output]], bool]
    OutputTransform = Callable[[Output, ExecutionContext], Any]


@dataclass(frozen=True)
class ToolNode:
    """A node in an execution graph.

    Nodes are pure configuration - they name a capability and describe
    how and when to call it. They don't know about the registry or cache.

    Attributes:
        id: Unique identifier within the graph.
        tool_name: Name of the capability to invoke.
        input: Literal input string, or a function of the execution
            context evaluated right before the node runs.
        priority: Lower values run earlier among otherwise-ready nodes.
        depends_on: Ids of nodes that must settle before this one.
        mode: NORMAL, or CONDITIONAL to gate on ``condition``.
        condition: Predicate over results so far. Required iff CONDITIONAL.
        transform_output: Maps the raw output and context to the final result.
        retry_policy: How to retry failed invocations.

    Note:
        ``depends_on`` accepts any iterable and is stored as a frozenset.
        Invalid configurations raise BuildError on construction.
    """

    id: str
    tool_name: str
    input: NodeInput
    priority: int = 0
    depends_on: frozenset[str] = field(default_factory=frozenset)
    mode: NodeMode = NodeMode.NORMAL
    condition: Condition | None = field(default=None, repr=False)
    transform_output: OutputTransform | None = field(default=None, repr=False)
    retry_policy: RetryPolicy | None = None

    def __post_init__(self) -> None:
        """Validate node configuration."""
        if not isinstance(self.id, str) or not self.id.strip():
            raise BuildError("Node id cannot be empty")
        if not isinstance(self.tool_name, str) or not self.tool_name.strip():
            raise BuildError(f"Node '{self.id}' must name a tool")
        if not isinstance(self.input, str) and not callable(self.input):
            raise BuildError(
                f"Node '{self.id}' input must be a string or a callable, "
                f"got {type(self.input).__name__}"
            )

        if isinstance(self.depends_on, str):
            raise BuildError(f"Node '{self.id}' depends_on must be a collection of ids, not a string")
        if not isinstance(self.depends_on, frozenset):
            object.__setattr__(self, "depends_on", _freeze_ids(self.depends_on))
        if self.id in self.depends_on:
            raise BuildError(f"Node '{self.id}' cannot depend on itself")

        if self.mode is NodeMode.CONDITIONAL and self.condition is None:
            raise BuildError(f"Conditional node '{self.id}' requires a condition")
        if self.mode is NodeMode.NORMAL and self.condition is not None:
            raise BuildError(
                f"Node '{self.id}' has a condition but mode is not CONDITIONAL"
            )

    @property
    def is_conditional(self) -> bool:
        return self.mode is NodeMode.CONDITIONAL

    def resolve_input(self, context: ExecutionContext) -> str:
        """Resolve the node input against the current context.

        Args:
            context: The running graph's execution context.

        Returns:
            The literal input, or the input function's return value.
        """
        if callable(self.input):
            return self.input(context)
        return self.input

    def should_run(self, results: Mapping[str, Output]) -> bool:
        """Evaluate the node's condition.

        Args:
            results: Results completed so far.

        Returns:
            True for normal nodes, otherwise the condition's verdict.
        """
        if self.condition is None:
            return True
        return bool(self.condition(results))

    def __repr__(self) -> str:
        deps = sorted(self.depends_on)
        return f"ToolNode(id={self.id!r}, tool={self.tool_name!r}, priority={self.priority}, depends_on={deps})"


def _freeze_ids(ids: Iterable[str] | None) -> frozenset[str]:
    if ids is None:
        return frozenset()
    return frozenset(ids)
