"""Capability registry - maps tool names to invocable capabilities.

A capability is anything with a name, a description, and an async
``execute(input) -> Output`` method. Concrete capabilities (web search,
LLM completion, ...) live outside this package; the registry only needs
the protocol.

Example:
    >>> registry = CapabilityRegistry()
    >>> registry.register(FunctionCapability("Echo", lambda text: Output(result=text)))
    >>> registry.require("Echo").name
    'Echo'
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, runtime_checkable

from toolgraph.core.errors import CapabilityNotFoundError, ChainNotFoundError
from toolgraph.core.run_logging import log_warning, truncate
from toolgraph.core.types import Output

logger = logging.getLogger(__name__)


@runtime_checkable
class Capability(Protocol):
    """Protocol for invocable tools.

    Example implementation:
        class WebSearch:
            name = "WebSearch"
            description = "Search the web"

            async def execute(self, input: str) -> Output:
                hits = await search_api(input)
                return Output(result=hits[0].snippet, raw=hits)
    """

    name: str
    description: str

    async def execute(self, input: str) -> Output:
        """Run the capability.

        Raising signals failure; the Orchestrator may retry.
        """
        ...


class FunctionCapability:
    """Wraps a sync or async callable as a capability.

    The callable receives the resolved input string. Returning an Output
    passes it through; any other value is wrapped as ``Output(result=value)``.

    Args:
        name: Tool name nodes refer to.
        fn: Sync or async callable accepting the input string.
        description: Human-readable description.

    Example:
        >>> upper = FunctionCapability("Upper", str.upper)
        >>> async def fetch(url: str) -> Output:
        ...     return Output(result=await http_get(url))
        >>> fetcher = FunctionCapability("Fetch", fetch, description="HTTP GET")
    """

    def __init__(self, name: str, fn: Callable[[str], Any], description: str = "") -> None:
        if not name or not name.strip():
            raise ValueError("Capability name cannot be empty")
        self.name = name
        self.description = description
        self.fn = fn

    async def execute(self, input: str) -> Output:
        result = self.fn(input)
        if asyncio.iscoroutine(result):
            result = await result
        if isinstance(result, Output):
            return result
        return Output(result=result)

    def __repr__(self) -> str:
        return f"FunctionCapability(name={self.name!r})"


@dataclass(frozen=True)
class ChainStepRecord:
    """Outcome of one capability in a tool chain run.

    Attributes:
        tool_name: The capability that ran.
        status: "success" or "failed".
        timestamp: Wall-clock time (seconds) when the step settled.
        error: Error text for failed steps.
    """

    tool_name: str
    status: Literal["success", "failed"]
    timestamp: float
    error: str | None = None


@dataclass(frozen=True)
class ChainRun:
    """Result of CapabilityRegistry.execute_chain().

    Attributes:
        results: Outputs of the steps that succeeded, in chain order.
        metadata: One record per step, failed steps included.
    """

    results: list[Output] = field(default_factory=list)
    metadata: list[ChainStepRecord] = field(default_factory=list)

    @property
    def failed(self) -> list[str]:
        """Tool names of the steps that failed."""
        return [record.tool_name for record in self.metadata if record.status == "failed"]


class CapabilityRegistry:
    """Name -> capability lookup shared by all nodes of an Orchestrator.

    Registering a name that already exists replaces the earlier capability.
    Named tool chains (register_chain / execute_chain) run a fixed list of
    capabilities on one input outside of any graph.
    """

    def __init__(self, capabilities: Iterable[Capability] = ()) -> None:
        self._capabilities: dict[str, Capability] = {}
        self._chains: dict[str, tuple[Capability, ...]] = {}
        for capability in capabilities:
            self.register(capability)

    def register(self, capability: Capability) -> None:
        """Register a capability under its name.

        Args:
            capability: The capability to register.

        Raises:
            TypeError: If the object does not implement the Capability protocol.
        """
        if not isinstance(capability, Capability):
            raise TypeError(
                f"{type(capability).__name__} does not implement Capability "
                "(needs name, description and async execute)"
            )
        if capability.name in self._capabilities:
            logger.debug("capability_replaced: name=%s", capability.name)
        self._capabilities[capability.name] = capability

    def unregister(self, name: str) -> Capability | None:
        """Remove a capability.

        Returns:
            The removed capability, or None if it was not registered.
        """
        return self._capabilities.pop(name, None)

    def get(self, name: str) -> Capability | None:
        """Get a capability by name, or None."""
        return self._capabilities.get(name)

    def require(self, name: str) -> Capability:
        """Get a capability by name.

        Raises:
            CapabilityNotFoundError: If no capability has that name.
        """
        capability = self._capabilities.get(name)
        if capability is None:
            raise CapabilityNotFoundError(name)
        return capability

    def register_chain(self, name: str, capabilities: Iterable[Capability]) -> None:
        """Register a named tool chain.

        A chain is a fixed list of capabilities that all receive the same
        input when the chain is executed. Chains hold the capability
        objects themselves, not names.

        Args:
            name: Chain name.
            capabilities: Capabilities to run, in order.

        Raises:
            ValueError: If the name is empty.
            TypeError: If an item does not implement the Capability protocol.
        """
        if not name or not name.strip():
            raise ValueError("Chain name cannot be empty")
        chain = tuple(capabilities)
        for capability in chain:
            if not isinstance(capability, Capability):
                raise TypeError(f"{type(capability).__name__} does not implement Capability")
        self._chains[name] = chain

    def chain_names(self) -> list[str]:
        """All registered chain names."""
        return list(self._chains)

    async def execute_chain(self, name: str, input: str) -> ChainRun:
        """Run every capability of a chain on the same input, one at a time.

        A failing step is recorded and logged; the remaining steps still run.

        Args:
            name: Chain name.
            input: Input passed to every step.

        Returns:
            ChainRun with the successful outputs and per-step metadata.

        Raises:
            ChainNotFoundError: If no chain has that name.
        """
        chain = self._chains.get(name)
        if chain is None:
            raise ChainNotFoundError(name)

        run = ChainRun()
        for capability in chain:
            try:
                output = await capability.execute(input)
            except Exception as e:
                log_warning(
                    logger,
                    name,
                    "chain_step_failed",
                    tool=capability.name,
                    error=truncate(str(e), max_length=200),
                )
                run.metadata.append(
                    ChainStepRecord(capability.name, "failed", time.time(), error=str(e))
                )
                continue
            run.results.append(output)
            run.metadata.append(ChainStepRecord(capability.name, "success", time.time()))
        return run

    def list(self) -> list[Capability]:
        """All registered capabilities in registration order."""
        return list(self._capabilities.values())

    def names(self) -> list[str]:
        """All registered names in registration order."""
        return list(self._capabilities)

    def __contains__(self, name: object) -> bool:
        return name in self._capabilities

    def __iter__(self) -> Iterator[Capability]:
        return iter(list(self._capabilities.values()))

    def __len__(self) -> int:
        return len(self._capabilities)

    def __repr__(self) -> str:
        return f"CapabilityRegistry({self.names()})"
