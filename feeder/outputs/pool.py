"""Output pool and allocation policies."""

from enum import Enum
from typing import Iterator, List, Optional, Sequence

import structlog

from feeder.errors import DuplicateOutputError, EmptyPoolError, PairingError
from feeder.execution.retry import RetryExecutor
from feeder.outputs.output import Output


class AllocationStrategy(Enum):
    """How the pool picks among available outputs."""
    ROUND_ROBIN = "round_robin"  # Continue after the last selected output
    LINEAR = "linear"  # Always scan from the first output


class OutputPool:
    """Ordered outputs plus the allocation cursor.

    The cursor is only written by ``select*`` which the control loop calls
    between dispatch batches, never from inside one.
    """

    def __init__(
        self,
        retry: RetryExecutor,
        residual_item: str,
        strategy: AllocationStrategy = AllocationStrategy.ROUND_ROBIN,
        require_pairs: bool = False,
        logger=None
    ):
        self.retry = retry
        self.residual_item = residual_item
        self.strategy = strategy
        self.require_pairs = require_pairs
        self.logger = logger or structlog.get_logger(__name__)
        self.outputs: List[Output] = []
        self.last_selected_index = -1

    def add(self, output: Output) -> None:
        if self.require_pairs and not output.paired:
            raise PairingError(
                "When output pairing is enabled every output needs both an item and a fluid peripheral"
            )
        self.outputs.append(output)

    def __len__(self) -> int:
        return len(self.outputs)

    def __iter__(self) -> Iterator[Output]:
        return iter(self.outputs)

    def __getitem__(self, index: int) -> Output:
        return self.outputs[index]

    def validate(self) -> None:
        """No node may back two outputs, and the pool may not be empty."""
        seen_items = set()
        seen_fluids = set()
        for output in self.outputs:
            if output.items is not None:
                if output.items.name in seen_items:
                    raise DuplicateOutputError(f"Output item peripheral {output.items_str()} is duplicated")
                seen_items.add(output.items.name)
            if output.fluids is not None:
                if output.fluids.name in seen_fluids:
                    raise DuplicateOutputError(f"Output fluid peripheral {output.fluids_str()} is duplicated")
                seen_fluids.add(output.fluids.name)

        if not self.outputs:
            raise EmptyPoolError(
                "No output blocks found. Please make sure that output_block_items "
                "and output_block_fluids are set correctly"
            )

    async def is_available(self, output: Output) -> bool:
        """True when the output holds no fluid and nothing but residual items."""
        if output.fluids is not None:
            tanks = await self.retry.call(output.fluids.list_tanks, site=f"{output.fluids.name}.tanks")
            if any(tank.amount > 0 for tank in tanks):
                return False
        if output.items is not None:
            items = await self.retry.call(output.items.list_items, site=f"{output.items.name}.list")
            for item in items:
                if item.name != self.residual_item:
                    return False
        return True

    async def _first_available(self, indices: Sequence[int], items: bool, fluids: bool) -> Optional[int]:
        for i in indices:
            output = self.outputs[i]
            if not output.accepts(items=items, fluids=fluids):
                continue
            if await self.is_available(output):
                self.logger.debug("output_available", index=i, output=str(output))
                return i
        return None

    async def select_round_robin(self, items: bool = False, fluids: bool = False) -> Optional[Output]:
        """First available output strictly after the last selected one, wrapping.

        ``items``/``fluids`` restrict the scan to outputs that can take that
        resource class.
        """
        count = len(self.outputs)
        start = self.last_selected_index + 1
        if start >= count:
            start = 0

        index = await self._first_available(range(start, count), items, fluids)
        if index is None:
            index = await self._first_available(range(0, start), items, fluids)
        if index is None:
            return None
        self.last_selected_index = index
        return self.outputs[index]

    async def select_linear(self, items: bool = False, fluids: bool = False) -> Optional[Output]:
        """First available output from the start of the pool."""
        index = await self._first_available(range(len(self.outputs)), items, fluids)
        return None if index is None else self.outputs[index]

    async def select(self, items: bool = False, fluids: bool = False) -> Optional[Output]:
        if self.strategy is AllocationStrategy.ROUND_ROBIN:
            return await self.select_round_robin(items, fluids)
        return await self.select_linear(items, fluids)
