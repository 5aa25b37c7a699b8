"""
Pytest configuration and fixtures for the feeder project.
"""

import sys
import asyncio
from pathlib import Path
from typing import Dict, List, Optional

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest

from feeder.config import Settings
from feeder.environment.base import (
    Capability,
    Coordinates,
    Environment,
    FluidTank,
    ItemStack,
    ResourceNode,
)
from feeder.errors import TransientCallError
from feeder.execution.retry import RetryExecutor
from feeder.monitoring.metrics import FeederMetrics


# ============================================================================
# FAKE ENVIRONMENT
# ============================================================================

class FakeNode(ResourceNode):
    """In-memory resource node.

    Pushes move stacks/tanks into the destination node looked up in the
    shared registry. ``fail(method, n)`` makes the next ``n`` calls of
    ``method`` raise TransientCallError.
    """

    def __init__(
        self,
        name: str,
        tag: Optional[str] = None,
        coords: Optional[Coordinates] = None,
        items: Optional[List[ItemStack]] = None,
        tanks: Optional[List[FluidTank]] = None,
        capabilities: Capability = Capability.ALL,
        registry: Optional[Dict[str, "FakeNode"]] = None
    ):
        super().__init__(name, capabilities)
        self.tag = tag
        self.coords = coords
        self.items: Dict[int, ItemStack] = {s.slot: s for s in items or []}
        self.tanks: Dict[int, FluidTank] = {t.tank: t for t in tanks or []}
        self.registry = registry if registry is not None else {}
        self.registry[name] = self
        self.mode_parameter: Optional[int] = None
        self.calls: List[str] = []
        self.failures: Dict[str, int] = {}

    def fail(self, method: str, times: int) -> None:
        self.failures[method] = times

    def _hit(self, method: str) -> None:
        self.calls.append(method)
        if self.failures.get(method, 0) > 0:
            self.failures[method] -= 1
            raise TransientCallError(self.name, method, "block is updating")

    def receive_items(self, stack: ItemStack) -> None:
        slot = max(self.items, default=0) + 1
        self.items[slot] = ItemStack(slot, stack.name, stack.count, stack.label)

    def receive_fluid(self, tank: FluidTank) -> None:
        index = max(self.tanks, default=0) + 1
        self.tanks[index] = FluidTank(index, tank.name, tank.amount)

    async def identity_tag(self) -> Optional[str]:
        self._hit("getBlockId")
        return self.tag

    async def coordinates(self) -> Coordinates:
        self._hit("getCoords")
        return self.coords

    async def list_items(self) -> List[ItemStack]:
        self._hit("list")
        return [self.items[slot] for slot in sorted(self.items)]

    async def item_detail(self, slot: int) -> Optional[ItemStack]:
        self._hit("getItemDetail")
        return self.items.get(slot)

    async def list_tanks(self) -> List[FluidTank]:
        self._hit("tanks")
        return [self.tanks[index] for index in sorted(self.tanks)]

    async def push_items(self, destination: str, slot: int) -> int:
        self._hit("pushItems")
        await asyncio.sleep(0)
        stack = self.items.pop(slot, None)
        if stack is None:
            return 0
        self.registry[destination].receive_items(stack)
        return stack.count

    async def push_fluid(self, destination: str, tank: int) -> int:
        self._hit("pushFluid")
        await asyncio.sleep(0)
        contents = self.tanks.pop(tank, None)
        if contents is None:
            return 0
        self.registry[destination].receive_fluid(contents)
        return contents.amount

    async def set_mode_parameter(self, value: int) -> None:
        self._hit("setProgrammedCircuit")
        self.mode_parameter = value


class FakeEnvironment(Environment):
    """Environment over a dictionary of fake nodes."""

    def __init__(self):
        self.nodes: Dict[str, FakeNode] = {}
        self.absent = set()
        self.closed = False

    def add(self, name: str, **kwargs) -> FakeNode:
        return FakeNode(name, registry=self.nodes, **kwargs)

    async def node_names(self) -> List[str]:
        return list(self.nodes)

    async def is_present(self, name: str) -> bool:
        return name not in self.absent

    async def wrap(self, name: str) -> FakeNode:
        return self.nodes[name]

    async def close(self) -> None:
        self.closed = True


def item(slot: int, name: str = "minecraft:iron_ingot", count: int = 1, label: Optional[str] = None) -> ItemStack:
    return ItemStack(slot=slot, name=name, count=count, label=label)


def tank(index: int, name: str = "minecraft:water", amount: int = 1000) -> FluidTank:
    return FluidTank(tank=index, name=name, amount=amount)


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def environment():
    return FakeEnvironment()


@pytest.fixture
def registry():
    """Shared node registry for standalone fake nodes."""
    return {}


@pytest.fixture
def metrics():
    return FeederMetrics()


@pytest.fixture
def retry(metrics):
    """Retry executor with few attempts."""
    return RetryExecutor(max_attempts=5, metrics=metrics)


@pytest.fixture
def settings():
    """Default settings for the GregTech layout used throughout the tests."""
    return Settings(
        input_block_items="expatternprovider:ingredient_buffer",
        input_block_fluids="expatternprovider:ingredient_buffer",
        circuit_return_block="ae2:interface",
        output_block_items=r"^gtceu:.*input_bus.*$",
        output_block_fluids=r"^gtceu:.*input_hatch.*$",
        retry_attempts=5,
    )
