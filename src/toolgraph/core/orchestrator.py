"""Orchestrator - runs execution graphs against registered capabilities.

The Orchestrator turns an ExecutionGraph into a results map:
- Sequential graphs run one node at a time in dependency order and stop
  at the first failure.
- Parallel graphs run level by level; within a level, batches of at most
  max_concurrency nodes run concurrently. A failing node is logged and
  left out of the results; everything else keeps going.

Every node goes through the same protocol: resolve input, consult the
cache, invoke the capability (retrying per its RetryPolicy), store the raw
output in the cache and history, then apply the node's transform.

The registry, cache and event sink are owned by the instance and shared by
all runs and all callers. The results map belongs to a single run.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping
from types import MappingProxyType
from typing import Any

from toolgraph.core.cache import OutputCache
from toolgraph.core.config import OrchestratorConfig
from toolgraph.core.context import ExecutionContext
from toolgraph.core.errors import CapabilityExecutionError
from toolgraph.core.events import EventSink, EventType, ExecutionEvent, LoggingEventSink
from toolgraph.core.graph.graph import ExecutionGraph
from toolgraph.core.graph.node import ToolNode
from toolgraph.core.graph.ordering import group_by_level, topological_order
from toolgraph.core.graph.policies import RetryPolicy
from toolgraph.core.registry import Capability, CapabilityRegistry
from toolgraph.core.run_logging import generate_run_id, log_error, log_warning, truncate
from toolgraph.core.types import ExecutionMode, NodeStatus, Output

logger = logging.getLogger(__name__)

NO_RETRY = RetryPolicy(max_retries=0)


class Orchestrator:
    """Scheduler that executes tool graphs.

    Args:
        registry: Capability registry. A new empty one if not given.
        cache: Output cache. Built from config (TTL, clock) if not given.
        event_sink: Receiver of execution events. Defaults to a
            LoggingEventSink when ``config.log_events`` is true.
        config: Settings. Defaults to OrchestratorConfig().
        default_tools: Capabilities to register up front.
        clock: Monotonic clock in seconds, used for the cache and timings.
        sleep: Awaitable sleep used between retries.

    Example:
        >>> orchestrator = Orchestrator(default_tools=[FunctionCapability("Echo", lambda s: s)])
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
        >>> results = await orchestrator.execute_graph(graph, "agent-1")
        >>> results["b"].result
        'hello world'
    """

    def __init__(
        self,
        registry: CapabilityRegistry | None = None,
        cache: OutputCache | None = None,
        event_sink: EventSink | None = None,
        config: OrchestratorConfig | None = None,
        default_tools: Iterable[Capability] = (),
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.config = config or OrchestratorConfig()
        self.registry = registry if registry is not None else CapabilityRegistry()
        self.cache = cache if cache is not None else OutputCache(self.config.cache_ttl_ms, clock=clock)
        if event_sink is None and self.config.log_events:
            event_sink = LoggingEventSink()
        self.event_sink = event_sink
        self._clock = clock
        self._sleep = sleep
        self._history: dict[str, list[Output]] = {}

        for tool in default_tools:
            self.register_tool(tool)

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def register_tool(self, capability: Capability) -> None:
        """Register a capability so nodes can reference it by name."""
        self.registry.register(capability)

    def get_tool(self, name: str) -> Capability | None:
        """Get a registered capability by name, or None."""
        return self.registry.get(name)

    def get_tools(self) -> list[Capability]:
        """All registered capabilities."""
        return self.registry.list()

    # ------------------------------------------------------------------
    # History and cache
    # ------------------------------------------------------------------

    @property
    def history(self) -> Mapping[str, list[Output]]:
        """Raw outputs per node id, across all runs of this instance."""
        return MappingProxyType(self._history)

    def clear_history(self) -> None:
        self._history.clear()

    def clear_cache(self) -> None:
        self.cache.clear()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def plan(self, graph: ExecutionGraph) -> list[list[str]]:
        """Describe how a graph would be scheduled, without running it.

        Args:
            graph: The graph to plan.

        Returns:
            Batches of node ids in execution order. Sequential graphs
            yield one id per batch. Conditional nodes are included;
            whether they run is decided at execution time.

        Raises:
            DependencyCycleError: If the graph has a cycle.
        """
        if graph.mode is ExecutionMode.SEQUENTIAL:
            return [[node.id] for node in topological_order(graph.nodes)]

        batches: list[list[str]] = []
        for level in group_by_level(graph.nodes):
            size = self._batch_size(graph, len(level))
            for i in range(0, len(level), size):
                batches.append([node.id for node in level[i : i + size]])
        return batches

    async def execute_graph(self, graph: ExecutionGraph, caller_id: str) -> dict[str, Output]:
        """Execute a graph.

        Args:
            graph: The graph to run.
            caller_id: Identity of the caller (agent) running the graph.

        Returns:
            Dict of node id -> Output for every node that completed.
            Skipped nodes are absent; in parallel mode failed nodes are
            absent too.

        Raises:
            DependencyCycleError: If the graph has a cycle (nothing runs).
            CapabilityNotFoundError: Sequential mode, a node names an
                unregistered tool.
            CapabilityExecutionError: Sequential mode, a node failed after
                exhausting its retries.
        """
        # Ordering raises on cycles before any node runs
        if graph.mode is ExecutionMode.SEQUENTIAL:
            order = topological_order(graph.nodes)
            levels: list[list[ToolNode]] = []
        else:
            order = []
            levels = group_by_level(graph.nodes)

        results: dict[str, Output] = {}
        context = ExecutionContext(
            caller_id=caller_id,
            run_id=generate_run_id(),
            _results=results,
            _history=self._history,
        )

        start_mono = self._clock()
        self._emit(
            "graph_start",
            context,
            data={"mode": graph.mode.value, "nodes": len(graph)},
        )

        try:
            if graph.mode is ExecutionMode.SEQUENTIAL:
                await self._run_sequential(order, context, results)
            else:
                await self._run_parallel(graph, levels, context, results)
        except Exception as e:
            self._emit(
                "graph_failed",
                context,
                duration_ms=(self._clock() - start_mono) * 1000,
                error=str(e),
                data={"completed": len(results)},
            )
            raise

        self._emit(
            "graph_complete",
            context,
            duration_ms=(self._clock() - start_mono) * 1000,
            data={"results": len(results), "nodes": len(graph)},
        )
        return dict(results)

    async def _run_sequential(
        self,
        order: list[ToolNode],
        context: ExecutionContext,
        results: dict[str, Output],
    ) -> None:
        """Run nodes one at a time; the first failure aborts the run."""
        for node in order:
            if not self._should_run(node, context):
                continue
            results[node.id] = await self._execute_node(node, context)

    async def _run_parallel(
        self,
        graph: ExecutionGraph,
        levels: list[list[ToolNode]],
        context: ExecutionContext,
        results: dict[str, Output],
    ) -> None:
        """Run level by level, in batches bounded by max_concurrency."""
        for level in levels:
            size = self._batch_size(graph, len(level))
            for i in range(0, len(level), size):
                batch = [node for node in level[i : i + size] if self._should_run(node, context)]
                if batch:
                    await asyncio.gather(*(self._settle(node, context, results) for node in batch))

    async def _settle(
        self,
        node: ToolNode,
        context: ExecutionContext,
        results: dict[str, Output],
    ) -> None:
        """Run one node of a parallel batch, isolating its failure."""
        try:
            results[node.id] = await self._execute_node(node, context)
        except Exception as e:
            log_warning(
                logger,
                context.caller_id,
                "node_isolated",
                run=context.run_id,
                node=node.id,
                tool=node.tool_name,
                error=truncate(str(e), max_length=200),
            )

    def _batch_size(self, graph: ExecutionGraph, level_size: int) -> int:
        bound = graph.max_concurrency or self.config.default_max_concurrency
        return max(1, bound or level_size)

    def _should_run(self, node: ToolNode, context: ExecutionContext) -> bool:
        """Evaluate a conditional node against the current results."""
        if node.should_run(context.results):
            return True
        self._emit("node_skipped", context, node, status=NodeStatus.SKIPPED)
        return False

    async def _execute_node(self, node: ToolNode, context: ExecutionContext) -> Output:
        """Execute a single node: input, cache, invoke with retry, transform.

        The cache stores raw capability outputs, so a cache hit is not
        returned as-is: it skips invocation, retries and history, but still
        goes through this node's ``transform_output``. Two nodes sharing a
        tool call can therefore apply different transforms to one entry.

        Raises:
            CapabilityNotFoundError: If the tool is not registered.
            CapabilityExecutionError: If retries are exhausted.
            Exception: Errors from the node's input function or transform.
        """
        start_mono = self._clock()

        try:
            capability = self.registry.require(node.tool_name)
            resolved_input = node.resolve_input(context)
        except Exception as e:
            self._emit(
                "node_failed",
                context,
                node,
                status=NodeStatus.FAILED,
                duration_ms=(self._clock() - start_mono) * 1000,
                error=str(e),
            )
            raise

        if self.config.cache_enabled:
            cached = self.cache.get(node.tool_name, resolved_input)
            if cached is not None:
                self._emit(
                    "cache_hit",
                    context,
                    node,
                    status=NodeStatus.CACHED,
                    data={"input": resolved_input},
                )
                return self._finalize(node, cached, context, start_mono)

        raw = await self._invoke_with_retry(node, capability, resolved_input, context, start_mono)

        if self.config.cache_enabled:
            self.cache.put(node.tool_name, resolved_input, raw)
        self._history.setdefault(node.id, []).append(raw)

        output = self._finalize(node, raw, context, start_mono)
        self._emit(
            "node_complete",
            context,
            node,
            status=NodeStatus.COMPLETED,
            duration_ms=(self._clock() - start_mono) * 1000,
            data={"result": output.result},
        )
        return output

    async def _invoke_with_retry(
        self,
        node: ToolNode,
        capability: Capability,
        resolved_input: str,
        context: ExecutionContext,
        start_mono: float,
    ) -> Output:
        """Invoke the capability, retrying per the node's policy."""
        policy = node.retry_policy or NO_RETRY
        attempt = 0

        while True:
            self._emit(
                "node_start",
                context,
                node,
                status=NodeStatus.RUNNING,
                attempt=attempt + 1,
                data={"input": resolved_input},
            )
            try:
                return await capability.execute(resolved_input)
            except Exception as e:
                if not policy.allows_retry(e, attempt):
                    self._emit(
                        "node_failed",
                        context,
                        node,
                        status=NodeStatus.FAILED,
                        attempt=attempt + 1,
                        duration_ms=(self._clock() - start_mono) * 1000,
                        error=str(e),
                    )
                    raise CapabilityExecutionError(node.id, node.tool_name, attempt + 1, e) from e

                delay = policy.get_delay_for_attempt(attempt)
                self._emit(
                    "node_retry",
                    context,
                    node,
                    status=NodeStatus.RETRYING,
                    attempt=attempt + 1,
                    error=str(e),
                    data={"delay_ms": int(delay * 1000)},
                )
                await self._sleep(delay)
                attempt += 1

    def _finalize(
        self,
        node: ToolNode,
        raw: Output,
        context: ExecutionContext,
        start_mono: float,
    ) -> Output:
        """Apply the node's transform, keeping the raw error and payload."""
        if node.transform_output is None:
            return raw
        try:
            transformed = node.transform_output(raw, context)
        except Exception as e:
            self._emit(
                "node_failed",
                context,
                node,
                status=NodeStatus.FAILED,
                duration_ms=(self._clock() - start_mono) * 1000,
                error=f"transform failed: {e}",
            )
            raise
        return Output(result=transformed, error=raw.error, raw=raw.raw)

    def _emit(
        self,
        event_type: EventType,
        context: ExecutionContext,
        node: ToolNode | None = None,
        **fields: Any,
    ) -> None:
        """Send an event to the sink. Sink failures never reach the caller."""
        if self.event_sink is None:
            return
        event = ExecutionEvent(
            event_type=event_type,
            run_id=context.run_id or "",
            caller_id=context.caller_id,
            node_id=node.id if node else None,
            tool_name=node.tool_name if node else None,
            **fields,
        )
        try:
            self.event_sink.emit(event)
        except Exception as e:
            log_error(logger, context.caller_id, "event_sink_failed", e, event=event_type)

    def __repr__(self) -> str:
        return f"Orchestrator(tools={self.registry.names()}, cache={self.cache!r})"
