"""
Tests for feeder.controller and feeder.bootstrap.

These run the whole controller against the in-memory environment.
"""

import asyncio

import pytest
from structlog.testing import capture_logs

from conftest import FakeEnvironment, item, tank
from feeder.bootstrap import RunMode, initialize, run
from feeder.controller import ControlLoop, LoopState
from feeder.environment.base import Coordinates
from feeder.errors import MissingRoleError, PairingError


BUFFER = "expatternprovider:ingredient_buffer"
INTERFACE = "ae2:interface"
BUS = "gtceu:lv_input_bus"
HATCH = "gtceu:lv_input_hatch"
PAPER = "minecraft:paper"


@pytest.fixture
def unpaired(settings):
    return settings.model_copy(update={"output_pairing": False})


@pytest.fixture
def paired(settings):
    return settings.model_copy(update={
        "output_fluids_pairing_offset": settings.output_fluids_pairing_offset.model_copy(update={"y": 3})
    })


def build_layout(environment: FakeEnvironment, machines: int = 1):
    buffer = environment.add("buffer", tag=BUFFER, coords=Coordinates(10, 0, 0))
    interface = environment.add("interface", tag=INTERFACE, coords=Coordinates(11, 0, 0))
    for i in range(machines):
        environment.add(f"bus_{i}", tag=BUS, coords=Coordinates(i * 5, 0, 0))
        environment.add(f"hatch_{i}", tag=HATCH, coords=Coordinates(i * 5, 3, 0))
    return buffer, interface


# ============================================================================
# END TO END
# ============================================================================

class TestEndToEnd:
    """One cycle with markers, items and fluids."""

    @pytest.mark.asyncio
    async def test_unpaired_cycle_routes_each_class(self, environment, unpaired, metrics):
        buffer, interface = build_layout(environment)
        buffer.items = {
            1: item(1, "minecraft:iron_ingot", 64),
            2: item(2, "minecraft:coal", 8),
            3: item(3, PAPER, 1, label="C:4"),
        }
        buffer.tanks = {1: tank(1, "gtceu:oxygen", 1000)}

        loop = await initialize(unpaired, environment, metrics)
        result = await loop.run_once()

        bus, hatch = environment.nodes["bus_0"], environment.nodes["hatch_0"]
        assert sorted(s.name for s in bus.items.values()) == ["minecraft:coal", "minecraft:iron_ingot"]
        assert bus.mode_parameter == 4
        assert [s.name for s in interface.items.values()] == [PAPER]
        assert [t.name for t in hatch.tanks.values()] == ["gtceu:oxygen"]
        assert buffer.items == {} and buffer.tanks == {}
        assert result.dispatched == 2
        assert metrics.value("feeder_transfers_total", kind="items") == 2
        assert metrics.value("feeder_transfers_total", kind="marker") == 1
        assert metrics.value("feeder_transfers_total", kind="fluids") == 1
        assert metrics.value("feeder_cycles_total", outcome="dispatched") == 1

    @pytest.mark.asyncio
    async def test_paired_cycle_uses_one_output(self, environment, paired):
        buffer, _ = build_layout(environment, machines=2)
        buffer.items = {1: item(1)}
        buffer.tanks = {1: tank(1)}

        loop = await initialize(paired, environment)
        await loop.run_once()

        assert len(environment.nodes["bus_0"].items) == 1
        assert len(environment.nodes["hatch_0"].tanks) == 1
        assert environment.nodes["bus_1"].items == {}

    @pytest.mark.asyncio
    async def test_paired_round_robin_across_cycles(self, environment, paired):
        buffer, _ = build_layout(environment, machines=2)

        loop = await initialize(paired, environment)
        buffer.items = {1: item(1, "minecraft:sand")}
        await loop.run_once()
        # drain the first machine so both are idle again
        environment.nodes["bus_0"].items = {}
        buffer.items = {1: item(1, "minecraft:gravel")}
        await loop.run_once()

        assert environment.nodes["bus_0"].items == {}
        assert [s.name for s in environment.nodes["bus_1"].items.values()] == ["minecraft:gravel"]

    @pytest.mark.asyncio
    async def test_fluid_only_intake_triggers_paired_push(self, environment, paired):
        buffer, _ = build_layout(environment)
        buffer.tanks = {1: tank(1)}

        loop = await initialize(paired, environment)
        result = await loop.run_once()

        assert result.dispatched == 1
        assert len(environment.nodes["hatch_0"].tanks) == 1


# ============================================================================
# CONTROL LOOP
# ============================================================================

class TestControlLoop:
    """Loop cadence and idling."""

    @pytest.mark.asyncio
    async def test_idle_when_intake_empty(self, environment, paired, metrics):
        build_layout(environment)
        loop = await initialize(paired, environment, metrics)
        bus = environment.nodes["bus_0"]
        calls_before = len(bus.calls)

        result = await loop.run_once()

        assert result.idle
        assert len(bus.calls) == calls_before
        assert loop.state is LoopState.CHECK_INPUT
        assert metrics.value("feeder_cycles_total", outcome="idle") == 1

    @pytest.mark.asyncio
    async def test_busy_outputs_warn_and_idle(self, environment, paired):
        buffer, _ = build_layout(environment)
        environment.nodes["bus_0"].items = {1: item(1, "minecraft:stone")}
        buffer.items = {1: item(1)}
        loop = await initialize(paired, environment)

        with capture_logs() as logs:
            result = await loop.run_once()

        assert result.starved == 1
        assert result.dispatched == 0
        assert buffer.items != {}
        assert any(e["event"] == "no_available_output" for e in logs)

    @pytest.mark.asyncio
    async def test_unpaired_items_and_fluids_go_to_matching_outputs(self, environment, unpaired):
        buffer, _ = build_layout(environment, machines=2)
        environment.nodes["bus_0"].items = {1: item(1, "minecraft:stone")}
        buffer.items = {1: item(1)}
        buffer.tanks = {1: tank(1)}
        loop = await initialize(unpaired, environment)

        await loop.run_once()

        assert len(environment.nodes["bus_1"].items) == 1
        fluids = [environment.nodes[f"hatch_{i}"].tanks for i in range(2)]
        assert sum(len(t) for t in fluids) == 1

    @pytest.mark.asyncio
    async def test_run_forever_until_stopped(self, environment, paired):
        build_layout(environment)
        loop = await initialize(paired, environment)

        task = asyncio.create_task(loop.run_forever())
        while loop.cycles < 3:
            await asyncio.sleep(0)
        loop.stop()
        await asyncio.wait_for(task, timeout=1.0)

        assert loop.cycles >= 3


# ============================================================================
# BOOTSTRAP
# ============================================================================

class TestBootstrap:
    """Initialization and run modes."""

    @pytest.mark.asyncio
    async def test_initialize_returns_loop(self, environment, paired):
        build_layout(environment, machines=3)

        loop = await initialize(paired, environment)

        assert isinstance(loop, ControlLoop)
        assert len(loop.pool) == 3
        assert loop.pairing

    @pytest.mark.asyncio
    async def test_missing_return_inventory_is_fatal(self, environment, paired):
        build_layout(environment)
        del environment.nodes["interface"]

        with pytest.raises(MissingRoleError):
            await initialize(paired, environment)

    @pytest.mark.asyncio
    async def test_unmatched_pair_is_fatal(self, environment, paired):
        build_layout(environment)
        environment.nodes["hatch_0"].coords = Coordinates(0, 4, 0)

        with pytest.raises(PairingError):
            await initialize(paired, environment)

    @pytest.mark.asyncio
    async def test_single_mode(self, environment, paired):
        buffer, _ = build_layout(environment)
        buffer.items = {1: item(1)}

        loop = await run(paired, RunMode.SINGLE, environment=environment)

        assert loop.cycles == 1
        assert buffer.items == {}
        assert environment.closed

    @pytest.mark.asyncio
    async def test_bench_init_mode(self, environment, paired):
        buffer, _ = build_layout(environment)
        buffer.items = {1: item(1)}

        with capture_logs() as logs:
            loop = await run(paired, RunMode.BENCH_INIT, environment=environment)

        assert loop.cycles == 0
        assert buffer.items != {}
        assert any(e["event"] == "initialization_took" for e in logs)
        assert environment.closed
