"""Interfaces for the external environment the controller drives."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Flag, auto
from typing import List, Optional


class Capability(Flag):
    """Operations a resource node can expose."""
    NONE = 0
    LIST_ITEMS = auto()
    LIST_TANKS = auto()
    PUSH_ITEMS = auto()
    PUSH_FLUID = auto()
    SET_MODE_PARAMETER = auto()
    GET_COORDINATES = auto()
    GET_IDENTITY_TAG = auto()
    ITEM_DETAIL = auto()
    ALL = (LIST_ITEMS | LIST_TANKS | PUSH_ITEMS | PUSH_FLUID |
           SET_MODE_PARAMETER | GET_COORDINATES | GET_IDENTITY_TAG | ITEM_DETAIL)


@dataclass(frozen=True)
class Coordinates:
    """Block position in the world."""
    x: int
    y: int
    z: int

    def __add__(self, other: "Coordinates") -> "Coordinates":
        return Coordinates(self.x + other.x, self.y + other.y, self.z + other.z)

    def __str__(self) -> str:
        return f"x={self.x}, y={self.y}, z={self.z}"


@dataclass(frozen=True)
class ItemStack:
    """An occupied inventory slot."""
    slot: int
    name: str
    count: int
    label: Optional[str] = None


@dataclass(frozen=True)
class FluidTank:
    """An occupied fluid tank."""
    tank: int
    name: str
    amount: int


class ResourceNode(ABC):
    """A remote endpoint exposing item/fluid storage.

    Every method is a remote call and may raise ``TransientCallError``;
    callers wrap them with the retry executor. Occupancy is never cached.
    """

    def __init__(self, name: str, capabilities: Capability):
        self.name = name
        self.capabilities = capabilities

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    @abstractmethod
    async def identity_tag(self) -> Optional[str]: ...

    @abstractmethod
    async def coordinates(self) -> Coordinates: ...

    @abstractmethod
    async def list_items(self) -> List[ItemStack]: ...

    @abstractmethod
    async def item_detail(self, slot: int) -> Optional[ItemStack]: ...

    @abstractmethod
    async def list_tanks(self) -> List[FluidTank]: ...

    @abstractmethod
    async def push_items(self, destination: str, slot: int) -> int: ...

    @abstractmethod
    async def push_fluid(self, destination: str, tank: int) -> int: ...

    @abstractmethod
    async def set_mode_parameter(self, value: int) -> None: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class Environment(ABC):
    """Enumerates and wraps the nodes attached to the controller."""

    @abstractmethod
    async def node_names(self) -> List[str]: ...

    @abstractmethod
    async def is_present(self, name: str) -> bool: ...

    @abstractmethod
    async def wrap(self, name: str) -> ResourceNode: ...

    async def close(self) -> None:
        """Release transport resources."""
        pass
