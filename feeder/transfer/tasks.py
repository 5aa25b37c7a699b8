"""Per-cycle transfer descriptors and marker label parsing."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from feeder.environment.base import ResourceNode
from feeder.errors import MarkerRangeError
from feeder.outputs.output import Output


MARKER_PATTERN = re.compile(r"C:(-?\d+)")
MODE_PARAMETER_MIN = -1
MODE_PARAMETER_MAX = 32


class TransferKind(str, Enum):
    ITEMS = "items"
    FLUIDS = "fluids"
    MARKER = "marker"


@dataclass(frozen=True)
class TransferTask:
    """Move whatever occupies ``index`` on ``source`` to ``destination``."""
    kind: TransferKind
    source: ResourceNode
    index: int
    destination: ResourceNode
    name: str = ""
    amount: int = 0

    async def execute(self) -> int:
        if self.kind is TransferKind.FLUIDS:
            return await self.source.push_fluid(self.destination.name, self.index)
        return await self.source.push_items(self.destination.name, self.index)

    @property
    def site(self) -> str:
        method = "pushFluid" if self.kind is TransferKind.FLUIDS else "pushItems"
        return f"{self.source.name}.{method}"


@dataclass(frozen=True)
class ConfigMarkerEvent:
    """A marker unit found in the intake that reprograms ``target``."""
    slot: int
    value: int
    target: Output


def parse_marker_label(label: Optional[str]) -> Optional[int]:
    """Extract the mode parameter from a ``C:{integer}`` label.

    Returns None when the label does not carry one. A value outside
    [-1, 32] raises MarkerRangeError; -1 clears the parameter.
    """
    if not label:
        return None
    match = MARKER_PATTERN.search(label)
    if match is None:
        return None
    value = int(match.group(1))
    if value < MODE_PARAMETER_MIN or value > MODE_PARAMETER_MAX:
        raise MarkerRangeError(value)
    return value
