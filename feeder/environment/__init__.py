"""Environment access: node interfaces and the HTTP bridge client."""

from feeder.environment.base import (
    Capability,
    Coordinates,
    Environment,
    FluidTank,
    ItemStack,
    ResourceNode,
)
from feeder.environment.bridge import BridgeEnvironment, BridgeNode

__all__ = [
    "Capability",
    "Coordinates",
    "Environment",
    "FluidTank",
    "ItemStack",
    "ResourceNode",
    "BridgeEnvironment",
    "BridgeNode",
]
