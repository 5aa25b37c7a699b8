"""HTTP peripheral bridge client.

The bridge exposes every peripheral attached to the in-game computer over a
small JSON API::

    GET  /peripherals                 -> {"names": [...]}
    GET  /peripherals/{name}          -> {"present": bool, "methods": [...]}
    POST /peripherals/{name}/call     {"method": str, "args": [...]}
                                      -> {"ok": true, "result": ...}
                                       | {"ok": false, "error": str}

Slot and tank indices are 1-based, as reported by the peripheral.
"""

import asyncio
from typing import Any, Dict, Iterable, List, Optional

import aiohttp
import structlog

from feeder.environment.base import (
    Capability,
    Coordinates,
    Environment,
    FluidTank,
    ItemStack,
    ResourceNode,
)
from feeder.errors import TransientCallError


logger = structlog.get_logger(__name__)

METHOD_CAPABILITIES: Dict[str, Capability] = {
    "list": Capability.LIST_ITEMS,
    "tanks": Capability.LIST_TANKS,
    "pushItems": Capability.PUSH_ITEMS,
    "pushFluid": Capability.PUSH_FLUID,
    "setProgrammedCircuit": Capability.SET_MODE_PARAMETER,
    "getCoords": Capability.GET_COORDINATES,
    "getBlockId": Capability.GET_IDENTITY_TAG,
    "getItemDetail": Capability.ITEM_DETAIL,
}


def capabilities_from_methods(methods: Iterable[str]) -> Capability:
    """Translate peripheral method names into a capability set."""
    caps = Capability.NONE
    for method in methods:
        caps |= METHOD_CAPABILITIES.get(method, Capability.NONE)
    return caps


def _indexed(raw: Any) -> List[tuple]:
    """Normalize a peripheral table (JSON list or object keyed by index) into (index, value) pairs."""
    if not raw:
        return []
    if isinstance(raw, dict):
        return sorted((int(key), value) for key, value in raw.items() if value)
    return [(i + 1, value) for i, value in enumerate(raw) if value]


class BridgeNode(ResourceNode):
    """A resource node reached through the HTTP bridge."""

    def __init__(self, bridge: "BridgeEnvironment", name: str, capabilities: Capability):
        super().__init__(name, capabilities)
        self._bridge = bridge

    async def _call(self, method: str, *args: Any) -> Any:
        return await self._bridge.call(self.name, method, list(args))

    async def identity_tag(self) -> Optional[str]:
        if not self.supports(Capability.GET_IDENTITY_TAG):
            return None
        return await self._call("getBlockId")

    async def coordinates(self) -> Coordinates:
        raw = await self._call("getCoords")
        return Coordinates(int(raw["x"]), int(raw["y"]), int(raw["z"]))

    async def list_items(self) -> List[ItemStack]:
        raw = await self._call("list")
        return [
            ItemStack(slot=slot, name=entry["name"], count=int(entry.get("count", 0)),
                      label=entry.get("displayName"))
            for slot, entry in _indexed(raw)
        ]

    async def item_detail(self, slot: int) -> Optional[ItemStack]:
        raw = await self._call("getItemDetail", slot)
        if not raw:
            return None
        return ItemStack(slot=slot, name=raw["name"], count=int(raw.get("count", 0)),
                         label=raw.get("displayName"))

    async def list_tanks(self) -> List[FluidTank]:
        raw = await self._call("tanks")
        return [
            FluidTank(tank=tank, name=entry["name"], amount=int(entry.get("amount", 0)))
            for tank, entry in _indexed(raw)
        ]

    async def push_items(self, destination: str, slot: int) -> int:
        return int(await self._call("pushItems", destination, slot) or 0)

    async def push_fluid(self, destination: str, tank: int) -> int:
        return int(await self._call("pushFluid", destination, tank) or 0)

    async def set_mode_parameter(self, value: int) -> None:
        await self._call("setProgrammedCircuit", value)


class BridgeEnvironment(Environment):
    """Environment backed by the HTTP peripheral bridge."""

    def __init__(self, base_url: str, timeout: float = 5.0,
                 session: Optional[aiohttp.ClientSession] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def _request(self, method: str, path: str, node: str, op: str,
                       payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        session = await self._get_session()
        try:
            async with session.request(method, f"{self.base_url}{path}", json=payload) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise TransientCallError(node, op, f"HTTP {response.status}: {error_text}")
                return await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransientCallError(node, op, str(e) or type(e).__name__) from e

    async def call(self, node: str, method: str, args: List[Any]) -> Any:
        """Invoke a peripheral method; a rejected call raises TransientCallError."""
        data = await self._request(
            "POST", f"/peripherals/{node}/call", node, method,
            {"method": method, "args": args},
        )
        if not data.get("ok", False):
            raise TransientCallError(node, method, data.get("error") or "call rejected")
        return data.get("result")

    async def node_names(self) -> List[str]:
        data = await self._request("GET", "/peripherals", "bridge", "getNames")
        return list(data.get("names", []))

    async def _describe(self, name: str) -> Dict[str, Any]:
        return await self._request("GET", f"/peripherals/{name}", name, "describe")

    async def is_present(self, name: str) -> bool:
        return bool((await self._describe(name)).get("present", False))

    async def wrap(self, name: str) -> BridgeNode:
        info = await self._describe(name)
        caps = capabilities_from_methods(info.get("methods", []))
        logger.debug("peripheral_wrapped", peripheral=name, methods=info.get("methods", []))
        return BridgeNode(self, name, caps)

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None
