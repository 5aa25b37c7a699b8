"""The control loop: check the intake, pick an output, dispatch."""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import structlog

from feeder.environment.base import ResourceNode
from feeder.execution.retry import RetryExecutor
from feeder.monitoring.metrics import FeederMetrics
from feeder.outputs.output import Output
from feeder.outputs.pool import OutputPool
from feeder.transfer.orchestrator import TransferOrchestrator


class LoopState(str, Enum):
    CHECK_INPUT = "check_input"
    SELECT_OUTPUT = "select_output"
    DISPATCH = "dispatch"


@dataclass
class CycleResult:
    """What one pass of the loop did."""
    dispatched: int = 0
    starved: int = 0

    @property
    def idle(self) -> bool:
        return self.dispatched == 0 and self.starved == 0


class ControlLoop:
    """Moves intake contents to available outputs until stopped.

    In pairing mode items and fluids travel together to one output; otherwise
    each resource class is routed independently and may end up at
    different outputs in the same cycle.
    """

    def __init__(
        self,
        pool: OutputPool,
        orchestrator: TransferOrchestrator,
        retry: RetryExecutor,
        intake_items: Optional[ResourceNode] = None,
        intake_fluids: Optional[ResourceNode] = None,
        pairing: bool = True,
        metrics: Optional[FeederMetrics] = None,
        logger=None
    ):
        self.pool = pool
        self.orchestrator = orchestrator
        self.retry = retry
        self.intake_items = intake_items
        self.intake_fluids = intake_fluids
        self.pairing = pairing
        self.metrics = metrics
        self.logger = logger or structlog.get_logger(__name__)
        self.state = LoopState.CHECK_INPUT
        self.cycles = 0
        self._running = False

    async def has_items_in_input(self) -> bool:
        if self.intake_items is None:
            return False
        items = await self.retry.call(self.intake_items.list_items, site=f"{self.intake_items.name}.list")
        return len(items) > 0

    async def has_fluids_in_input(self) -> bool:
        if self.intake_fluids is None:
            return False
        tanks = await self.retry.call(self.intake_fluids.list_tanks, site=f"{self.intake_fluids.name}.tanks")
        return any(tank.amount > 0 for tank in tanks)

    async def _select(self, resource: str, items: bool = False, fluids: bool = False) -> Optional[Output]:
        self.state = LoopState.SELECT_OUTPUT
        output = await self.pool.select(items=items, fluids=fluids)
        if output is None:
            self.logger.warning("no_available_output", resource=resource)
        return output

    async def _dispatch(self, push, output: Output, result: CycleResult) -> None:
        self.state = LoopState.DISPATCH
        self.logger.debug("push_started", output=str(output))
        started = time.perf_counter()
        await push(output)
        if self.metrics is not None:
            self.metrics.dispatch_duration.observe(time.perf_counter() - started)
        self.logger.debug("push_complete", output=str(output))
        result.dispatched += 1

    async def run_once(self) -> CycleResult:
        """Run exactly one cycle."""
        result = CycleResult()
        self.state = LoopState.CHECK_INPUT

        if self.pairing:
            if await self.has_items_in_input() or await self.has_fluids_in_input():
                output = await self._select("items+fluids")
                if output is None:
                    result.starved += 1
                else:
                    await self._dispatch(self.orchestrator.push_all, output, result)
        else:
            if await self.has_items_in_input():
                output = await self._select("items", items=True)
                if output is None:
                    result.starved += 1
                else:
                    await self._dispatch(self.orchestrator.push_items, output, result)
            self.state = LoopState.CHECK_INPUT
            if await self.has_fluids_in_input():
                output = await self._select("fluids", fluids=True)
                if output is None:
                    result.starved += 1
                else:
                    await self._dispatch(self.orchestrator.push_fluids, output, result)

        self.state = LoopState.CHECK_INPUT
        self.cycles += 1
        if self.metrics is not None:
            outcome = "dispatched" if result.dispatched else ("no_output" if result.starved else "idle")
            self.metrics.record_cycle(outcome)
        return result

    async def run_forever(self) -> None:
        """Poll the intake without pause until ``stop`` is called."""
        self._running = True
        self.logger.info("control_loop_started", pairing=self.pairing, outputs=len(self.pool))
        while self._running:
            await self.run_once()
            # yield to other tasks even when every remote call completed synchronously
            await asyncio.sleep(0)
        self.logger.info("control_loop_stopped", cycles=self.cycles)

    def stop(self) -> None:
        self._running = False
