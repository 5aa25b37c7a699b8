"""Roles a resource node can take and the predicates that assign them."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from feeder.environment.base import Capability, ResourceNode


class Role(str, Enum):
    """Functional classification of a resource node."""
    CONFIG_RETURN = "config_return"
    INTAKE_FLUIDS = "intake_fluids"
    INTAKE_ITEMS = "intake_items"
    OUTPUT_ITEMS = "output_items"
    OUTPUT_FLUIDS = "output_fluids"
    UNCLASSIFIED = "unclassified"

    @property
    def singular(self) -> bool:
        return self in (Role.CONFIG_RETURN, Role.INTAKE_FLUIDS, Role.INTAKE_ITEMS)


@dataclass(frozen=True)
class RoleMatcher:
    """A role expressed as a predicate over node identity tags."""
    role: Role
    predicate: Callable[[str], bool]
    required: Capability = Capability.NONE
    description: str = ""

    def matches(self, identity: str) -> bool:
        return self.predicate(identity)


def exact_role(role: Role, identity: str, required: Capability = Capability.NONE) -> RoleMatcher:
    return RoleMatcher(role, lambda tag: tag == identity, required, identity)


def pattern_role(role: Role, pattern: str, required: Capability = Capability.NONE) -> RoleMatcher:
    compiled = re.compile(pattern)
    return RoleMatcher(role, lambda tag: compiled.search(tag) is not None, required, pattern)


def build_matchers(settings) -> List[RoleMatcher]:
    """Role predicates in evaluation order for the given settings."""
    matchers: List[RoleMatcher] = []
    if settings.set_circuit_config and settings.circuit_return_block:
        matchers.append(exact_role(Role.CONFIG_RETURN, settings.circuit_return_block))
    if settings.input_block_fluids:
        matchers.append(exact_role(Role.INTAKE_FLUIDS, settings.input_block_fluids,
                                   Capability.LIST_TANKS))
    if settings.input_block_items:
        matchers.append(exact_role(Role.INTAKE_ITEMS, settings.input_block_items,
                                   Capability.LIST_ITEMS))
    if settings.output_block_items:
        required = Capability.LIST_ITEMS
        if settings.set_circuit_config:
            required |= Capability.SET_MODE_PARAMETER
        matchers.append(pattern_role(Role.OUTPUT_ITEMS, settings.output_block_items, required))
    if settings.output_block_fluids:
        matchers.append(pattern_role(Role.OUTPUT_FLUIDS, settings.output_block_fluids,
                                     Capability.LIST_TANKS))
    return matchers


@dataclass
class RoleBindings:
    """Result of classification."""
    config_return: Optional[ResourceNode] = None
    intake_fluids: Optional[ResourceNode] = None
    intake_items: Optional[ResourceNode] = None
    output_items: List[ResourceNode] = field(default_factory=list)
    output_fluids: List[ResourceNode] = field(default_factory=list)
    unclassified: List[ResourceNode] = field(default_factory=list)

    def get(self, role: Role) -> Optional[ResourceNode]:
        return getattr(self, role.value)

    def bind(self, role: Role, node: ResourceNode) -> None:
        if role.singular:
            setattr(self, role.value, node)
        else:
            getattr(self, role.value).append(node)

    def singular(self) -> Dict[Role, Optional[ResourceNode]]:
        return {
            Role.CONFIG_RETURN: self.config_return,
            Role.INTAKE_FLUIDS: self.intake_fluids,
            Role.INTAKE_ITEMS: self.intake_items,
        }
