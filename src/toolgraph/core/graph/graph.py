"""ExecutionGraph - immutable set of nodes plus scheduling settings."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from toolgraph.core.errors import BuildError
from toolgraph.core.graph.node import ToolNode
from toolgraph.core.types import ExecutionMode


@dataclass(frozen=True)
class ExecutionGraph:
    """Directed acyclic graph of tool nodes.

    Pure data - doesn't know about:
    - Capabilities (nodes reference tools by name)
    - Caching or retries at run time
    - How it will be executed

    Structural invariants are checked on construction; cycles are
    detected by the Orchestrator before anything runs.

    Attributes:
        nodes: Nodes in insertion order.
        mode: SEQUENTIAL or PARALLEL scheduling.
        max_concurrency: Max nodes in flight per batch (parallel only).
            None means unbounded.

    Example:
        >>> graph = (
        ...     GraphBuilder()
        ...     .add_tool("fetch", "WebSearch", "python asyncio")
        ...     .add_dependent_tool(
        ...         "summary",
        ...         "LLM",
        ...         lambda ctx: f"Summarize: {ctx.get_previous_result('fetch').result}",
        ...         depends_on=["fetch"],
        ...     )
        ...     .build()
        ... )
        >>> graph.node_ids()
        ['fetch', 'summary']
    """

    nodes: tuple[ToolNode, ...]
    mode: ExecutionMode = ExecutionMode.SEQUENTIAL
    max_concurrency: int | None = None

    def __post_init__(self) -> None:
        """Validate graph structure."""
        if not isinstance(self.nodes, tuple):
            object.__setattr__(self, "nodes", tuple(self.nodes))

        errors = self.validate()
        if errors:
            raise BuildError("; ".join(errors))

    def validate(self) -> list[str]:
        """Validate the graph.

        Checks for:
        - Empty graph
        - Duplicate node ids
        - Missing dependencies
        - Invalid concurrency bound

        Returns:
            List of error messages (empty if valid).
        """
        errors: list[str] = []

        if not self.nodes:
            errors.append("Cannot build an empty execution graph")

        seen: set[str] = set()
        for node in self.nodes:
            if node.id in seen:
                errors.append(f"Duplicate node id '{node.id}'")
            seen.add(node.id)

        for node in self.nodes:
            for dep_id in sorted(node.depends_on):
                if dep_id not in seen:
                    errors.append(f"Node '{node.id}' depends on unknown node '{dep_id}'")

        if self.max_concurrency is not None and self.max_concurrency < 1:
            errors.append(f"max_concurrency must be >= 1, got {self.max_concurrency}")

        return errors

    def get_node(self, node_id: str) -> ToolNode | None:
        """Get a node by id.

        Args:
            node_id: The node id.

        Returns:
            The node, or None if not found.
        """
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def node_ids(self) -> list[str]:
        """List all node ids in insertion order."""
        return [node.id for node in self.nodes]

    def __iter__(self) -> Iterator[ToolNode]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def __repr__(self) -> str:
        concurrency = f", max_concurrency={self.max_concurrency}" if self.max_concurrency else ""
        return f"ExecutionGraph(mode={self.mode.value}, nodes={self.node_ids()}{concurrency})"
