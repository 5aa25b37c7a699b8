"""Grouping of output nodes into logical outputs."""

from typing import List, Optional, Sequence

import structlog

from feeder.environment.base import Capability, Coordinates, ResourceNode
from feeder.errors import PairingError
from feeder.execution.parallel import ParallelTaskGroup
from feeder.execution.retry import RetryExecutor
from feeder.outputs.output import Output
from feeder.outputs.pool import AllocationStrategy, OutputPool


class OutputPairer:
    """Builds the output pool from classified output nodes."""

    def __init__(
        self,
        retry: RetryExecutor,
        residual_item: str,
        strategy: AllocationStrategy = AllocationStrategy.ROUND_ROBIN,
        logger=None
    ):
        self.retry = retry
        self.residual_item = residual_item
        self.strategy = strategy
        self.logger = logger or structlog.get_logger(__name__)

    async def _coordinates(self, node: ResourceNode, required: bool) -> Optional[Coordinates]:
        if not node.supports(Capability.GET_COORDINATES):
            if required:
                raise PairingError(f"Peripheral {node.name} cannot report its coordinates")
            return None
        return await self.retry.call(node.coordinates, site=f"{node.name}.getCoords")

    async def _all_coordinates(self, nodes: Sequence[ResourceNode], required: bool) -> List[Optional[Coordinates]]:
        group = ParallelTaskGroup()
        for node in nodes:
            group.enqueue(lambda node=node: self._coordinates(node, required))
        return await group.run_all()

    async def pair(
        self,
        item_nodes: Sequence[ResourceNode],
        fluid_nodes: Sequence[ResourceNode],
        pairing_enabled: bool,
        offset: Coordinates = Coordinates(0, 0, 0)
    ) -> OutputPool:
        """Build and validate the pool.

        With pairing enabled each item node is matched with the fluid node
        found at ``item coordinates + offset``; otherwise every node becomes
        its own output, item outputs first.
        """
        self.logger.info("preparing_outputs", pairing=pairing_enabled)
        pool = OutputPool(
            self.retry,
            self.residual_item,
            strategy=self.strategy,
            require_pairs=pairing_enabled,
            logger=self.logger
        )

        if pairing_enabled:
            if len(item_nodes) != len(fluid_nodes):
                raise PairingError(
                    f"Number of item ({len(item_nodes)}) and fluid ({len(fluid_nodes)}) "
                    "peripherals must be equal when output pairing is enabled"
                )
            item_coords = await self._all_coordinates(item_nodes, required=True)
            fluid_coords = await self._all_coordinates(fluid_nodes, required=True)
            for item_node, coords in zip(item_nodes, item_coords):
                expected = coords + offset
                match = next(
                    (i for i, candidate in enumerate(fluid_coords) if candidate == expected),
                    None
                )
                if match is None:
                    raise PairingError(
                        f"Could not find matching fluid peripheral for item peripheral at "
                        f"coordinates {coords}. Expected fluid peripheral at coordinates {expected}"
                    )
                pool.add(Output(
                    items=item_node,
                    fluids=fluid_nodes[match],
                    items_coordinates=coords,
                    fluids_coordinates=fluid_coords[match]
                ))
        else:
            item_coords = await self._all_coordinates(item_nodes, required=False)
            for item_node, coords in zip(item_nodes, item_coords):
                pool.add(Output(items=item_node, items_coordinates=coords))
            fluid_coords = await self._all_coordinates(fluid_nodes, required=False)
            for fluid_node, coords in zip(fluid_nodes, fluid_coords):
                pool.add(Output(fluids=fluid_node, fluids_coordinates=coords))

        pool.validate()
        self.logger.info("outputs_prepared", count=len(pool))
        for i, output in enumerate(pool, start=1):
            self.logger.info("output_found", index=i, output=str(output))
        return pool
