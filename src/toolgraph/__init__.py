"""toolgraph - DAG scheduling for tool invocations.

toolgraph runs a graph of named tool calls with dependencies, either
sequentially or level by level with bounded concurrency, with per-node
caching, retries, conditional skipping and output transforms.

Key Concepts:
    Capability:     A named async tool, ``execute(input) -> Output``
    ToolNode:       One tool call with dependencies, priority and options
    ExecutionGraph: Immutable, validated set of nodes plus a mode
    Orchestrator:   Turns a graph into a results map

Quick Start:
    >>> from toolgraph import FunctionCapability, GraphBuilder, Orchestrator
    >>>
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

from toolgraph.__version__ import __version__
from toolgraph.core import (
    BuildError,
    Capability,
    CapabilityExecutionError,
    CapabilityNotFoundError,
    CapabilityRegistry,
    ChainLink,
    ChainNotFoundError,
    ChainRun,
    ChainStepRecord,
    DependencyCycleError,
    EventSink,
    ExecutionContext,
    ExecutionEvent,
    ExecutionGraph,
    ExecutionMode,
    FunctionCapability,
    GraphBuilder,
    LoggingEventSink,
    NodeMode,
    NodeStatus,
    Orchestrator,
    OrchestratorConfig,
    Output,
    OutputCache,
    ParallelTool,
    RetryPolicy,
    ToolGraphError,
    ToolNode,
    load_config,
)
from toolgraph.core.logging_config import configure_logging

__all__ = [
    "__version__",
    "configure_logging",
    "BuildError",
    "Capability",
    "CapabilityExecutionError",
    "CapabilityNotFoundError",
    "CapabilityRegistry",
    "ChainLink",
    "ChainNotFoundError",
    "ChainRun",
    "ChainStepRecord",
    "DependencyCycleError",
    "EventSink",
    "ExecutionContext",
    "ExecutionEvent",
    "ExecutionGraph",
    "ExecutionMode",
    "FunctionCapability",
    "GraphBuilder",
    "LoggingEventSink",
    "NodeMode",
    "NodeStatus",
    "Orchestrator",
    "OrchestratorConfig",
    "Output",
    "OutputCache",
    "ParallelTool",
    "RetryPolicy",
    "ToolGraphError",
    "ToolNode",
    "load_config",
]
