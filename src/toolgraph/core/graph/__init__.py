"""Execution graph construction.

Pure graph data - no registry, no cache, no events.
Just nodes, dependencies, and the order they can run in.

Classes:
    ToolNode: A single tool invocation with dependencies.
    RetryPolicy: Retry configuration for a node.
    ExecutionGraph: Immutable, validated set of nodes.
    GraphBuilder: Fluent construction API.

Example:
    >>> from toolgraph.core.graph import GraphBuilder
    >>>
    >>> graph = (
    ...     GraphBuilder()
    ...     .add_tool("fetch", "WebSearch", "python 3.13 release")
    ...     .add_dependent_tool(
    ...         "summary",
    ...         "LLM",
    ...         lambda ctx: f"Summarize: {ctx.get_previous_result('fetch').result}",
    ...         depends_on=["fetch"],
    ...     )
    ...     .build()
    ... )
"""

from toolgraph.core.graph.builder import ChainLink, GraphBuilder, ParallelTool
from toolgraph.core.graph.graph import ExecutionGraph
from toolgraph.core.graph.node import ToolNode
from toolgraph.core.graph.ordering import (
    check_acyclic,
    dependency_levels,
    find_cycle,
    group_by_level,
    topological_order,
)
from toolgraph.core.graph.policies import RetryPolicy

__all__ = [
    "ChainLink",
    "ExecutionGraph",
    "GraphBuilder",
    "ParallelTool",
    "RetryPolicy",
    "ToolNode",
    "check_acyclic",
    "dependency_levels",
    "find_cycle",
    "group_by_level",
    "topological_order",
]
