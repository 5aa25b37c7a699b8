"""Logical output units."""

from dataclasses import dataclass
from typing import Optional

from feeder.environment.base import Coordinates, ResourceNode


@dataclass(frozen=True)
class Output:
    """An item node, a fluid node, or a paired item+fluid node.

    Availability is never stored; see ``OutputPool.is_available``.
    """
    items: Optional[ResourceNode] = None
    fluids: Optional[ResourceNode] = None
    items_coordinates: Optional[Coordinates] = None
    fluids_coordinates: Optional[Coordinates] = None

    def __post_init__(self):
        if self.items is None and self.fluids is None:
            raise ValueError("Output must have at least one peripheral")

    @property
    def paired(self) -> bool:
        return self.items is not None and self.fluids is not None

    def accepts(self, items: bool = False, fluids: bool = False) -> bool:
        """Whether this output has a node for every requested resource class."""
        return (not items or self.items is not None) and (not fluids or self.fluids is not None)

    @property
    def identity(self) -> str:
        return "".join(node.name for node in (self.items, self.fluids) if node is not None)

    def items_str(self) -> str:
        return f"Items: {self.items.name} ({self.items_coordinates})" if self.items else ""

    def fluids_str(self) -> str:
        return f"Fluids: {self.fluids.name} ({self.fluids_coordinates})" if self.fluids else ""

    def __str__(self) -> str:
        return ", ".join(part for part in (self.items_str(), self.fluids_str()) if part)
