"""Fluent builder for execution graphs.

GraphBuilder is the construction path for ExecutionGraph:

    graph = (
        GraphBuilder()
        .add_tool("btc", "WebSearch", "Bitcoin price analysis")
        .add_tool("eth", "WebSearch", "Ethereum price analysis")
        .add_dependent_tool(
            "compare",
            "LLM",
            lambda ctx: f"Compare {ctx.get_previous_result('btc')} and {ctx.get_previous_result('eth')}",
            depends_on=["btc", "eth"],
            priority=1,
        )
        .parallel(max_concurrency=2)
        .build()
    )

Every add method returns the builder. The order of calls does not matter;
only depends_on and priority decide when a node runs.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from toolgraph.core.errors import BuildError
from toolgraph.core.graph.graph import ExecutionGraph
from toolgraph.core.graph.node import ToolNode
from toolgraph.core.types import ExecutionMode, NodeMode

if TYPE_CHECKING:
    from toolgraph.core.context import ExecutionContext
    from toolgraph.core.graph.node import Condition, NodeInput, OutputTransform
    from toolgraph.core.graph.policies import RetryPolicy
    from toolgraph.core.types import Output


@dataclass(frozen=True)
class ChainLink:
    """One step of a sequential chain.

    Attributes:
        tool_name: Capability to invoke.
        input: Literal input, or a function of the previous step's result
            value (the first step's function receives None).
        transform_output: Optional function of the raw output.
    """

    tool_name: str
    input: str | Callable[[Any], str]
    transform_output: Callable[[Output], Any] | None = None


@dataclass(frozen=True)
class ParallelTool:
    """One independent tool call in a parallel graph.

    Attributes:
        tool_name: Capability to invoke.
        input: Literal input.
        id: Node id. Defaults to "parallel-<index>".
    """

    tool_name: str
    input: str
    id: str | None = None


class GraphBuilder:
    """Fluent API for building execution graphs.

    Example:
        >>> graph = (
        ...     GraphBuilder()
        ...     .add_tool("a", "Echo", "hello")
        ...     .add_dependent_tool(
        ...         "b",
        ...         "Echo",
        ...         lambda ctx: ctx.get_previous_result("a").result + " world",
        ...         depends_on=["a"],
        ...     )
        ...     .build()
        ... )
    """

    def __init__(self) -> None:
        self._nodes: dict[str, ToolNode] = {}
        self._mode = ExecutionMode.SEQUENTIAL
        self._max_concurrency: int | None = None

    def add_node(
        self,
        id: str,
        tool_name: str,
        input: NodeInput,
        *,
        priority: int = 0,
        depends_on: Iterable[str] = (),
        mode: NodeMode = NodeMode.NORMAL,
        condition: Condition | None = None,
        transform_output: OutputTransform | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> GraphBuilder:
        """Add a fully configured node.

        Args:
            id: Unique node id.
            tool_name: Capability to invoke.
            input: Literal input or function of the execution context.
            priority: Lower runs earlier among ready nodes.
            depends_on: Ids of nodes this one waits for.
            mode: NORMAL or CONDITIONAL.
            condition: Predicate over results so far (CONDITIONAL only).
            transform_output: Maps raw output and context to the final result.
            retry_policy: Retry configuration.

        Returns:
            Self for chaining.

        Raises:
            BuildError: If the id is already used or the node is malformed.
        """
        if id in self._nodes:
            raise BuildError(f"Node '{id}' already exists")

        self._nodes[id] = ToolNode(
            id=id,
            tool_name=tool_name,
            input=input,
            priority=priority,
            depends_on=frozenset(_as_ids(id, depends_on)),
            mode=mode,
            condition=condition,
            transform_output=transform_output,
            retry_policy=retry_policy,
        )
        return self

    def add_tool(self, id: str, tool_name: str, input: str, priority: int = 0) -> GraphBuilder:
        """Add a leaf node with a literal input."""
        return self.add_node(id, tool_name, input, priority=priority)

    def add_dependent_tool(
        self,
        id: str,
        tool_name: str,
        input_fn: Callable[[ExecutionContext], str],
        depends_on: Iterable[str],
        priority: int = 0,
    ) -> GraphBuilder:
        """Add a node whose input is computed from upstream results."""
        return self.add_node(id, tool_name, input_fn, priority=priority, depends_on=depends_on)

    def add_conditional_tool(
        self,
        id: str,
        tool_name: str,
        input: NodeInput,
        condition: Condition,
        depends_on: Iterable[str] = (),
        priority: int = 0,
    ) -> GraphBuilder:
        """Add a node that only runs when ``condition(results)`` is true."""
        return self.add_node(
            id,
            tool_name,
            input,
            priority=priority,
            depends_on=depends_on,
            mode=NodeMode.CONDITIONAL,
            condition=condition,
        )

    def add_transforming_tool(
        self,
        id: str,
        tool_name: str,
        input: NodeInput,
        transform_output: OutputTransform,
        depends_on: Iterable[str] = (),
        priority: int = 0,
    ) -> GraphBuilder:
        """Add a node whose result is post-processed by ``transform_output``."""
        return self.add_node(
            id,
            tool_name,
            input,
            priority=priority,
            depends_on=depends_on,
            transform_output=transform_output,
        )

    def add_retryable_tool(
        self,
        id: str,
        tool_name: str,
        input: NodeInput,
        retry_policy: RetryPolicy,
        depends_on: Iterable[str] = (),
        priority: int = 0,
    ) -> GraphBuilder:
        """Add a node that retries failed invocations per ``retry_policy``."""
        return self.add_node(
            id,
            tool_name,
            input,
            priority=priority,
            depends_on=depends_on,
            retry_policy=retry_policy,
        )

    def add_chain(self, prefix: str, tools: Sequence[ChainLink]) -> GraphBuilder:
        """Add a strictly sequential chain: prefix-0 >> prefix-1 >> ...

        A callable link input receives the previous step's result value.

        Args:
            prefix: Id prefix; nodes are named "<prefix>-<index>".
            tools: Chain steps in order. An empty sequence adds nothing.

        Returns:
            Self for chaining.
        """
        previous_id: str | None = None
        for i, link in enumerate(tools):
            node_id = f"{prefix}-{i}"
            self.add_node(
                node_id,
                link.tool_name,
                _chain_input(link.input, previous_id),
                depends_on=[previous_id] if previous_id else (),
                transform_output=_chain_transform(link.transform_output),
            )
            previous_id = node_id
        return self

    def sequential(self) -> GraphBuilder:
        """Run nodes one at a time (default)."""
        self._mode = ExecutionMode.SEQUENTIAL
        self._max_concurrency = None
        return self

    def parallel(self, max_concurrency: int | None = None) -> GraphBuilder:
        """Run independent nodes concurrently, level by level.

        Args:
            max_concurrency: Max nodes in flight per batch. None = unbounded.
        """
        if max_concurrency is not None and max_concurrency < 1:
            raise BuildError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self._mode = ExecutionMode.PARALLEL
        self._max_concurrency = max_concurrency
        return self

    def build(self) -> ExecutionGraph:
        """Build the immutable execution graph.

        Returns:
            The ExecutionGraph.

        Raises:
            BuildError: If no nodes were added or a dependency is unknown.
        """
        if not self._nodes:
            raise BuildError("Cannot build an empty execution graph")

        return ExecutionGraph(
            nodes=tuple(self._nodes.values()),
            mode=self._mode,
            max_concurrency=self._max_concurrency,
        )

    @staticmethod
    def single_tool(tool_name: str, input: str, id: str = "single-tool") -> ExecutionGraph:
        """Create a graph with one tool call."""
        return GraphBuilder().add_tool(id, tool_name, input).build()

    @staticmethod
    def sequential_chain(tools: Sequence[ChainLink], prefix: str = "chain") -> ExecutionGraph:
        """Create a graph that is a single sequential chain."""
        return GraphBuilder().add_chain(prefix, tools).build()

    @staticmethod
    def parallel_graph(
        tools: Sequence[ParallelTool], max_concurrency: int | None = None
    ) -> ExecutionGraph:
        """Create a graph of independent tool calls run in parallel."""
        builder = GraphBuilder().parallel(max_concurrency)
        for i, tool in enumerate(tools):
            builder.add_tool(tool.id or f"parallel-{i}", tool.tool_name, tool.input)
        return builder.build()

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"GraphBuilder(mode={self._mode.value}, nodes={list(self._nodes)})"


def _as_ids(node_id: str, depends_on: Iterable[str]) -> list[str]:
    if isinstance(depends_on, str):
        raise BuildError(f"Node '{node_id}' depends_on must be a collection of ids, not a string")
    return list(depends_on)


def _chain_input(
    link_input: str | Callable[[Any], str], previous_id: str | None
) -> NodeInput:
    if not callable(link_input):
        return link_input

    def resolve(context: ExecutionContext) -> str:
        if previous_id is None:
            return link_input(None)
        previous = context.get_previous_result(previous_id)
        return link_input(previous.result if previous else None)

    return resolve


def _chain_transform(
    transform: Callable[[Output], Any] | None,
) -> OutputTransform | None:
    if transform is None:
        return None
    return lambda output, context: transform(output)
