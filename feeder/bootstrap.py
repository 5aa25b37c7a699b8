"""Wiring of the controller from settings."""

import time
from enum import Enum
from typing import Optional

import structlog

from feeder.config import Settings
from feeder.controller import ControlLoop
from feeder.discovery.classifier import ResourceClassifier
from feeder.discovery.roles import RoleBindings, build_matchers
from feeder.environment.base import Capability, Environment
from feeder.environment.bridge import BridgeEnvironment
from feeder.execution.retry import RetryExecutor
from feeder.monitoring.metrics import FeederMetrics
from feeder.outputs.pairing import OutputPairer
from feeder.outputs.pool import AllocationStrategy
from feeder.transfer.orchestrator import TransferOrchestrator


logger = structlog.get_logger(__name__)


class RunMode(str, Enum):
    DEFAULT = "default"  # loop forever
    SINGLE = "single"  # one cycle, for debugging
    BENCH_INIT = "benchinit"  # initialize only and report the time taken


def build_retry(settings: Settings, metrics: Optional[FeederMetrics] = None, log=None) -> RetryExecutor:
    return RetryExecutor(
        max_attempts=settings.retry_attempts,
        backoff=settings.retry_backoff,
        max_delay=settings.retry_max_delay,
        metrics=metrics,
        logger=log
    )


async def _report_bindings(bindings: RoleBindings, retry: RetryExecutor, log) -> None:
    for role, node in bindings.singular().items():
        if node is None:
            continue
        coords = None
        if node.supports(Capability.GET_COORDINATES):
            coords = await retry.call(node.coordinates, site=f"{node.name}.getCoords")
        log.info("role_bound", role=role.value, peripheral=node.name, coordinates=str(coords))


async def initialize(
    settings: Settings,
    environment: Environment,
    metrics: Optional[FeederMetrics] = None,
    log=None
) -> ControlLoop:
    """Discover nodes, build the output pool and return a ready control loop."""
    log = log or logger
    retry = build_retry(settings, metrics, log)

    classifier = ResourceClassifier(environment, build_matchers(settings), retry, logger=log)
    bindings = await classifier.discover_and_classify()

    strategy = AllocationStrategy.ROUND_ROBIN if settings.do_round_robin else AllocationStrategy.LINEAR
    pairer = OutputPairer(retry, settings.residual_item, strategy=strategy, logger=log)
    pool = await pairer.pair(
        bindings.output_items,
        bindings.output_fluids,
        settings.output_pairing,
        settings.pairing_offset
    )

    classifier.check_required(bindings)
    await _report_bindings(bindings, retry, log)

    orchestrator = TransferOrchestrator(
        retry,
        intake_items=bindings.intake_items,
        intake_fluids=bindings.intake_fluids,
        config_return=bindings.config_return,
        marker_item=settings.circuit_config_item if settings.set_circuit_config else None,
        metrics=metrics,
        logger=log
    )
    log.info("initialization_complete", outputs=len(pool), strategy=strategy.value)
    return ControlLoop(
        pool,
        orchestrator,
        retry,
        intake_items=bindings.intake_items,
        intake_fluids=bindings.intake_fluids,
        pairing=settings.output_pairing,
        metrics=metrics,
        logger=log
    )


async def run(
    settings: Settings,
    mode: RunMode = RunMode.DEFAULT,
    environment: Optional[Environment] = None,
    metrics: Optional[FeederMetrics] = None
) -> Optional[ControlLoop]:
    """Run the controller in ``mode``; returns the loop for single/benchinit runs."""
    environment = environment or BridgeEnvironment(settings.bridge_url, timeout=settings.bridge_timeout)
    try:
        started = time.perf_counter()
        loop = await initialize(settings, environment, metrics)
        if mode is RunMode.BENCH_INIT:
            logger.info("initialization_took", ms=int((time.perf_counter() - started) * 1000))
            return loop
        if mode is RunMode.SINGLE:
            await loop.run_once()
            return loop
        await loop.run_forever()
        return loop
    finally:
        await environment.close()
