"""Tests for parallel execution in toolgraph.core.orchestrator."""

import asyncio
import logging

import pytest

from toolgraph.core.config import OrchestratorConfig
from toolgraph.core.errors import DependencyCycleError
from toolgraph.core.graph.builder import GraphBuilder, ParallelTool
from toolgraph.core.graph.policies import RetryPolicy
from toolgraph.core.orchestrator import Orchestrator
from toolgraph.core.registry import FunctionCapability
from toolgraph.core.types import Output


def boom(text):
    raise RuntimeError(f"boom: {text}")


class TestLevels:
    """Tests for level barriers."""

    @pytest.mark.asyncio
    async def test_dependent_sees_all_upstream_results(self, orchestrator, make_echo):
        """Test a level-1 node starts after every level-0 node settled."""
        slow = make_echo(name="Slow", delay=0.02)
        orchestrator.register_tool(slow)
        graph = (
            GraphBuilder()
            .add_tool("fast", "Echo", "fast")
            .add_tool("slow", "Slow", "slow")
            .add_dependent_tool(
                "join",
                "Echo",
                lambda ctx: f"{ctx.get_previous_result('fast').result}+{ctx.get_previous_result('slow').result}",
                depends_on=["fast", "slow"],
            )
            .parallel()
            .build()
        )

        results = await orchestrator.execute_graph(graph, "agent-1")

        assert results["join"].result == "fast+slow"

    @pytest.mark.asyncio
    async def test_unbounded_level_runs_concurrently(self, orchestrator, make_echo):
        """Test a level without a bound runs all nodes at once."""
        slow = make_echo(name="Slow", delay=0.01)
        orchestrator.register_tool(slow)
        graph = GraphBuilder.parallel_graph([ParallelTool("Slow", str(i)) for i in range(5)])

        results = await orchestrator.execute_graph(graph, "agent-1")

        assert len(results) == 5
        assert slow.max_in_flight == 5

    @pytest.mark.asyncio
    async def test_priority_within_level(self, orchestrator, echo):
        """Test batches follow ascending priority within a level."""
        graph = (
            GraphBuilder()
            .add_tool("c", "Echo", "c", priority=3)
            .add_tool("a", "Echo", "a", priority=1)
            .add_tool("b", "Echo", "b", priority=2)
            .parallel(max_concurrency=1)
            .build()
        )

        await orchestrator.execute_graph(graph, "agent-1")

        assert echo.calls == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_cycle_runs_nothing(self, orchestrator, echo):
        """Test a cyclic parallel graph raises before any invocation."""
        graph = (
            GraphBuilder()
            .add_dependent_tool("a", "Echo", lambda ctx: "a", depends_on=["b"])
            .add_dependent_tool("b", "Echo", lambda ctx: "b", depends_on=["a"])
            .add_tool("c", "Echo", "c")
            .parallel()
            .build()
        )

        with pytest.raises(DependencyCycleError):
            await orchestrator.execute_graph(graph, "agent-1")

        assert echo.calls == []

    def test_plan(self, orchestrator):
        """Test plan splits levels into batches."""
        graph = (
            GraphBuilder()
            .add_tool("a", "Echo", "a")
            .add_tool("b", "Echo", "b")
            .add_tool("c", "Echo", "c", priority=-1)
            .add_dependent_tool("d", "Echo", lambda ctx: "d", depends_on=["a", "b", "c"])
            .parallel(max_concurrency=2)
            .build()
        )

        assert orchestrator.plan(graph) == [["c", "a"], ["b"], ["d"]]


class TestConcurrencyBound:
    """Tests for max_concurrency batching."""

    @pytest.mark.asyncio
    async def test_bounded(self, orchestrator, make_echo):
        """Test at most max_concurrency nodes are in flight."""
        slow = make_echo(name="Slow", delay=0.01)
        orchestrator.register_tool(slow)
        graph = GraphBuilder.parallel_graph(
            [ParallelTool("Slow", str(i)) for i in range(5)], max_concurrency=2
        )

        results = await orchestrator.execute_graph(graph, "agent-1")

        assert len(results) == 5
        assert slow.max_in_flight <= 2
        assert sorted(slow.calls) == ["0", "1", "2", "3", "4"]

    @pytest.mark.asyncio
    async def test_default_bound_from_config(self, sink, make_echo):
        """Test config.default_max_concurrency applies when the graph sets none."""
        slow = make_echo(name="Slow", delay=0.01)
        orchestrator = Orchestrator(
            default_tools=[slow],
            event_sink=sink,
            config=OrchestratorConfig(default_max_concurrency=3),
        )
        graph = GraphBuilder.parallel_graph([ParallelTool("Slow", str(i)) for i in range(6)])

        await orchestrator.execute_graph(graph, "agent-1")

        assert slow.max_in_flight <= 3
        assert orchestrator.plan(graph) == [
            ["parallel-0", "parallel-1", "parallel-2"],
            ["parallel-3", "parallel-4", "parallel-5"],
        ]

    @pytest.mark.asyncio
    async def test_batch_settles_before_next_starts(self, orchestrator, sink):
        """Test a free slot is not refilled until the whole batch has settled."""
        timeline = []

        async def timed(text):
            timeline.append(("start", text))
            await asyncio.sleep(0.05 if text == "slow" else 0)
            timeline.append(("end", text))
            return Output(result=text)

        orchestrator.register_tool(FunctionCapability("Timed", timed))
        graph = (
            GraphBuilder()
            .add_tool("slow", "Timed", "slow", priority=0)
            .add_tool("fast", "Timed", "fast", priority=1)
            .add_tool("third", "Timed", "third", priority=2)
            .parallel(max_concurrency=2)
            .build()
        )

        results = await orchestrator.execute_graph(graph, "agent-1")

        assert set(results) == {"slow", "fast", "third"}
        assert timeline.index(("end", "fast")) < timeline.index(("end", "slow"))
        assert timeline.index(("start", "third")) > timeline.index(("end", "slow"))

        events = [(e.event_type, e.node_id) for e in sink.events]
        assert events.index(("node_start", "third")) > events.index(("node_complete", "slow"))


class TestIsolation:
    """Tests for per-node failure isolation."""

    @pytest.mark.asyncio
    async def test_failed_node_is_absent(self, orchestrator, sink):
        """Test one failing node does not stop its siblings."""
        orchestrator.register_tool(FunctionCapability("Boom", boom))
        graph = (
            GraphBuilder()
            .add_tool("x", "Boom", "x")
            .add_tool("y", "Echo", "y")
            .parallel()
            .build()
        )

        results = await orchestrator.execute_graph(graph, "agent-1")

        assert "x" not in results
        assert results["y"].result == "y"
        assert "node_failed" in sink.types("x")
        assert sink.types()[-1] == "graph_complete"

    @pytest.mark.asyncio
    async def test_dependent_of_failed_node_degrades(self, orchestrator):
        """Test dependents see None for a failed dependency."""
        orchestrator.register_tool(FunctionCapability("Boom", boom))
        graph = (
            GraphBuilder()
            .add_tool("x", "Boom", "x")
            .add_tool("y", "Echo", "y")
            .add_dependent_tool(
                "z",
                "Echo",
                lambda ctx: "degraded" if ctx.get_previous_result("x") is None else "full",
                depends_on=["x", "y"],
            )
            .parallel()
            .build()
        )

        results = await orchestrator.execute_graph(graph, "agent-1")

        assert results["z"].result == "degraded"

    @pytest.mark.asyncio
    async def test_dependent_input_error_is_isolated(self, orchestrator, caplog):
        """Test an input function that chokes on a missing result is isolated."""
        orchestrator.register_tool(FunctionCapability("Boom", boom))
        graph = (
            GraphBuilder()
            .add_tool("x", "Boom", "x")
            .add_tool("y", "Echo", "y")
            .add_dependent_tool(
                "z",
                "Echo",
                lambda ctx: ctx.get_previous_result("x").result,
                depends_on=["x", "y"],
            )
            .parallel()
            .build()
        )

        with caplog.at_level(logging.WARNING, logger="toolgraph.core.orchestrator"):
            results = await orchestrator.execute_graph(graph, "agent-1")

        assert set(results) == {"y"}
        assert sum("node_isolated" in r.getMessage() for r in caplog.records) == 2

    @pytest.mark.asyncio
    async def test_unknown_tool_is_isolated(self, orchestrator):
        """Test a node naming an unregistered tool is left out."""
        graph = (
            GraphBuilder()
            .add_tool("a", "Missing", "a")
            .add_tool("b", "Echo", "b")
            .parallel()
            .build()
        )

        results = await orchestrator.execute_graph(graph, "agent-1")

        assert set(results) == {"b"}

    @pytest.mark.asyncio
    async def test_retries_in_parallel(self, sink, make_echo, make_flaky, instant_sleep):
        """Test a retried node succeeds alongside its siblings."""
        flaky = make_flaky(failures=1)
        echo = make_echo()
        orchestrator = Orchestrator(default_tools=[flaky, echo], event_sink=sink, sleep=instant_sleep)
        graph = (
            GraphBuilder()
            .add_retryable_tool("a", "Flaky", "a", RetryPolicy(max_retries=1, delay_ms=0))
            .add_tool("b", "Echo", "b")
            .parallel()
            .build()
        )

        results = await orchestrator.execute_graph(graph, "agent-1")

        assert results["a"].result == "ok:a"
        assert flaky.calls == 2
        assert sink.types("a").count("node_retry") == 1


class TestConditions:
    """Tests for conditional nodes in parallel graphs."""

    @pytest.mark.asyncio
    async def test_condition_evaluated_before_batch(self, orchestrator, echo, sink):
        """Test conditions see results of earlier levels."""
        graph = (
            GraphBuilder()
            .add_tool("a", "Echo", "yes")
            .add_conditional_tool(
                "run",
                "Echo",
                "run",
                condition=lambda results: results["a"].result == "yes",
                depends_on=["a"],
            )
            .add_conditional_tool(
                "skip",
                "Echo",
                "skip",
                condition=lambda results: results["a"].result == "no",
                depends_on=["a"],
            )
            .parallel()
            .build()
        )

        results = await orchestrator.execute_graph(graph, "agent-1")

        assert set(results) == {"a", "run"}
        assert "skip" not in echo.calls
        assert sink.types("skip") == ["node_skipped"]


class TestDeepGraphs:
    """Tests for long dependency chains."""

    @pytest.mark.asyncio
    async def test_reversed_chain(self, orchestrator, echo):
        """Test a 1200-level chain added dependents-first runs level by level."""
        builder = GraphBuilder().parallel()
        for i in reversed(range(1200)):
            if i:
                builder.add_dependent_tool(
                    f"n{i}", "Echo", lambda ctx, i=i: f"v{i}", depends_on=[f"n{i - 1}"]
                )
            else:
                builder.add_tool("n0", "Echo", "v0")

        results = await orchestrator.execute_graph(builder.build(), "agent-1")

        assert len(results) == 1200
        assert echo.calls == [f"v{i}" for i in range(1200)]
