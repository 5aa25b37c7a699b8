"""Dispatch of intake contents to a selected output."""

from typing import Optional

import structlog

from feeder.environment.base import Capability, ItemStack, ResourceNode
from feeder.errors import ConfigurationError
from feeder.execution.parallel import ParallelTaskGroup
from feeder.execution.retry import RetryExecutor
from feeder.monitoring.metrics import FeederMetrics
from feeder.outputs.output import Output
from feeder.transfer.tasks import (
    ConfigMarkerEvent,
    TransferKind,
    TransferTask,
    parse_marker_label,
)


class TransferOrchestrator:
    """Drains the intake nodes into one output per call.

    Every occupied slot or tank becomes one transfer and all transfers of a
    call run as a single concurrent batch. When ``marker_item`` is set, a
    slot holding that item with a ``C:{n}`` label is sent to the config
    return node while the output's mode parameter is set to ``n``.
    """

    def __init__(
        self,
        retry: RetryExecutor,
        intake_items: Optional[ResourceNode] = None,
        intake_fluids: Optional[ResourceNode] = None,
        config_return: Optional[ResourceNode] = None,
        marker_item: Optional[str] = None,
        metrics: Optional[FeederMetrics] = None,
        logger=None
    ):
        if marker_item is not None and config_return is None:
            raise ConfigurationError("Circuit configuration needs a return inventory")
        self.retry = retry
        self.intake_items = intake_items
        self.intake_fluids = intake_fluids
        self.config_return = config_return
        self.marker_item = marker_item
        self.metrics = metrics
        self.logger = logger or structlog.get_logger(__name__)

    async def _transfer(self, task: TransferTask) -> int:
        self.logger.debug(
            "pushing",
            kind=task.kind.value,
            amount=task.amount,
            name=task.name,
            destination=task.destination.name
        )
        moved = await self.retry.call(task.execute, site=task.site)
        if self.metrics is not None:
            self.metrics.record_transfer(task.kind.value)
        self.logger.debug("pushed", kind=task.kind.value, name=task.name, destination=task.destination.name)
        return moved

    async def push_items(self, output: Output) -> None:
        if output.items is None or self.intake_items is None:
            return
        source = self.intake_items
        items = await self.retry.call(source.list_items, site=f"{source.name}.list")

        group = ParallelTaskGroup()
        for item in items:
            group.enqueue(lambda item=item: self._route_slot(item, output))
        self.logger.debug("calling_item_pushes", count=group.size(), output=output.items_str())
        await group.run_all()

    async def _route_slot(self, item: ItemStack, output: Output) -> None:
        if self.marker_item is not None and item.name == self.marker_item:
            event = await self._read_marker(item, output)
            if event is not None:
                await self._apply_marker(event)
                return

        await self._transfer(TransferTask(
            kind=TransferKind.ITEMS,
            source=self.intake_items,
            index=item.slot,
            destination=output.items,
            name=item.name,
            amount=item.count
        ))

    async def _read_marker(self, item: ItemStack, output: Output) -> Optional[ConfigMarkerEvent]:
        source = self.intake_items
        label = item.label
        if source.supports(Capability.ITEM_DETAIL):
            detail = await self.retry.call(
                lambda: source.item_detail(item.slot), site=f"{source.name}.getItemDetail"
            )
            if detail is not None:
                label = detail.label
        value = parse_marker_label(label)
        if value is None:
            self.logger.warning(
                "circuit_label_unparsable",
                item=item.name,
                label=label,
                detail="treating it as a regular item"
            )
            return None
        return ConfigMarkerEvent(slot=item.slot, value=value, target=output)

    async def _apply_marker(self, event: ConfigMarkerEvent) -> None:
        machine = event.target.items

        async def set_parameter() -> None:
            await self.retry.call(
                lambda: machine.set_mode_parameter(event.value),
                site=f"{machine.name}.setProgrammedCircuit"
            )

        group = ParallelTaskGroup()
        group.enqueue(lambda: self._transfer(TransferTask(
            kind=TransferKind.MARKER,
            source=self.intake_items,
            index=event.slot,
            destination=self.config_return,
            name=self.marker_item,
        )))
        group.enqueue(set_parameter)
        await group.run_all()
        self.logger.debug("circuit_configuration_set", value=event.value, output=machine.name)

    async def push_fluids(self, output: Output) -> None:
        if output.fluids is None or self.intake_fluids is None:
            return
        source = self.intake_fluids
        tanks = await self.retry.call(source.list_tanks, site=f"{source.name}.tanks")

        group = ParallelTaskGroup()
        for tank in tanks:
            if tank.amount <= 0:
                continue
            task = TransferTask(
                kind=TransferKind.FLUIDS,
                source=source,
                index=tank.tank,
                destination=output.fluids,
                name=tank.name,
                amount=tank.amount
            )
            group.enqueue(lambda task=task: self._transfer(task))
        self.logger.debug("calling_fluid_pushes", count=group.size(), output=output.fluids_str())
        await group.run_all()

    async def push_all(self, output: Output) -> None:
        """Push items and fluids to ``output`` as two concurrent tasks."""
        group = ParallelTaskGroup()
        group.enqueue(lambda: self.push_items(output))
        group.enqueue(lambda: self.push_fluids(output))
        await group.run_all()
