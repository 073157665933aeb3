"""Core - in-process DAG execution of tool invocations.

This module contains no knowledge of:
- Concrete tools (web search, LLM completion, ...)
- Agents, conversations, or memory
- Where events end up

Architecture:
    graph/          Nodes, retry policies, graph builder, dependency ordering
    registry        Capability protocol and name lookup
    cache           TTL cache of capability outputs
    context         Read-only view of a running graph
    events          Execution events and sinks
    orchestrator    The scheduler
    config          Orchestrator settings
    types           Pure data types

Example:
    >>> from toolgraph.core import FunctionCapability, GraphBuilder, Orchestrator
    >>>
    >>> async def main():
    ...     orchestrator = Orchestrator(default_tools=[FunctionCapability("Echo", lambda s: s)])
    ...     graph = GraphBuilder().add_tool("a", "Echo", "hello").build()
    ...     results = await orchestrator.execute_graph(graph, "agent-1")
    ...     print(results["a"].result)
"""

from toolgraph.core.cache import CacheEntry, OutputCache
from toolgraph.core.config import OrchestratorConfig, load_config
from toolgraph.core.context import ExecutionContext
from toolgraph.core.errors import (
    BuildError,
    CapabilityExecutionError,
    CapabilityNotFoundError,
    ChainNotFoundError,
    DependencyCycleError,
    ToolGraphError,
)
from toolgraph.core.events import EventSink, ExecutionEvent, LoggingEventSink
from toolgraph.core.graph import (
    ChainLink,
    ExecutionGraph,
    GraphBuilder,
    ParallelTool,
    RetryPolicy,
    ToolNode,
)
from toolgraph.core.orchestrator import Orchestrator
from toolgraph.core.registry import (
    Capability,
    CapabilityRegistry,
    ChainRun,
    ChainStepRecord,
    FunctionCapability,
)
from toolgraph.core.types import ExecutionMode, NodeMode, NodeStatus, Output

__all__ = [
    # Graph
    "ChainLink",
    "ExecutionGraph",
    "GraphBuilder",
    "ParallelTool",
    "RetryPolicy",
    "ToolNode",
    # Execution
    "Orchestrator",
    "OrchestratorConfig",
    "load_config",
    "ExecutionContext",
    "OutputCache",
    "CacheEntry",
    # Capabilities
    "Capability",
    "CapabilityRegistry",
    "ChainRun",
    "ChainStepRecord",
    "FunctionCapability",
    # Events
    "EventSink",
    "ExecutionEvent",
    "LoggingEventSink",
    # Types
    "ExecutionMode",
    "NodeMode",
    "NodeStatus",
    "Output",
    # Errors
    "ToolGraphError",
    "BuildError",
    "DependencyCycleError",
    "CapabilityNotFoundError",
    "CapabilityExecutionError",
    "ChainNotFoundError",
]
