"""Discovery and role classification of the nodes attached to the controller."""

from typing import List, Optional, Sequence, Tuple

import structlog

from feeder.discovery.roles import Role, RoleBindings, RoleMatcher
from feeder.environment.base import Capability, Environment, ResourceNode
from feeder.errors import CapabilityError, ConfigurationError, MissingRoleError
from feeder.execution.parallel import ParallelTaskGroup
from feeder.execution.retry import RetryExecutor


# Sides of the computer itself; they never carry an identity tag.
RESERVED_ADDRESSES = frozenset({"back", "left", "right", "top", "bottom"})


class ResourceClassifier:
    """Wraps every present node and assigns it roles by identity tag."""

    def __init__(
        self,
        environment: Environment,
        matchers: Sequence[RoleMatcher],
        retry: RetryExecutor,
        logger=None
    ):
        self.environment = environment
        self.matchers = list(matchers)
        self.retry = retry
        self.logger = logger or structlog.get_logger(__name__)

    async def discover_and_classify(self, names: Optional[Sequence[str]] = None) -> RoleBindings:
        """Probe ``names`` (all attached nodes by default) concurrently and classify them.

        Probing runs as one batch; classification then walks the nodes in
        enumeration order, so "first match wins" for singular roles is
        deterministic.
        """
        if names is None:
            names = await self.retry.call(self.environment.node_names, site="environment.node_names")

        probed: List[Optional[Tuple[ResourceNode, Optional[str]]]] = [None] * len(names)

        def probe_at(index: int, name: str):
            async def probe() -> None:
                probed[index] = await self._probe(name)
            return probe

        group = ParallelTaskGroup()
        for index, name in enumerate(names):
            group.enqueue(probe_at(index, name))
        await group.run_all()

        bindings = RoleBindings()
        for entry in probed:
            if entry is None:
                continue
            node, tag = entry
            if tag is None:
                if node.name not in RESERVED_ADDRESSES:
                    self.logger.warning("peripheral_without_block_id", peripheral=node.name)
                bindings.unclassified.append(node)
                continue
            self.classify_node(node, tag, bindings)

        self.logger.info(
            "peripherals_loaded",
            output_items=len(bindings.output_items),
            output_fluids=len(bindings.output_fluids),
            unclassified=len(bindings.unclassified)
        )
        return bindings

    async def _probe(self, name: str) -> Optional[Tuple[ResourceNode, Optional[str]]]:
        present = await self.retry.call(
            lambda: self.environment.is_present(name), site=f"{name}.isPresent"
        )
        if not present:
            return None
        node = await self.retry.call(lambda: self.environment.wrap(name), site=f"{name}.wrap")
        tag = None
        if node.supports(Capability.GET_IDENTITY_TAG):
            tag = await self.retry.call(node.identity_tag, site=f"{name}.getBlockId")
            self.logger.debug("peripheral_block_id", peripheral=name, block_id=tag)
        return node, tag

    def classify_node(self, node: ResourceNode, tag: str, bindings: RoleBindings) -> List[Role]:
        """Bind ``node`` to every role whose predicate accepts ``tag``."""
        roles: List[Role] = []
        for matcher in self.matchers:
            if not matcher.matches(tag):
                continue
            role = matcher.role
            if role.singular and bindings.get(role) is not None:
                self.logger.warning(
                    "role_already_bound",
                    role=role.value,
                    peripheral=node.name,
                    bound_to=bindings.get(role).name
                )
                continue
            self._require(node, matcher)
            bindings.bind(role, node)
            roles.append(role)
            self.logger.debug("peripheral_classified", peripheral=node.name, role=role.value)

        if any(r.singular for r in roles) and any(not r.singular for r in roles):
            raise ConfigurationError(
                f"Peripheral {node.name} ({tag}) matches both an input/return block "
                f"and an output pattern: {', '.join(r.value for r in roles)}"
            )
        if not roles:
            self.logger.debug("peripheral_classified", peripheral=node.name, role=Role.UNCLASSIFIED.value)
            bindings.unclassified.append(node)
        return roles

    def _require(self, node: ResourceNode, matcher: RoleMatcher) -> None:
        missing = matcher.required & ~node.capabilities
        if missing:
            raise CapabilityError(
                f"Peripheral {node.name} cannot act as {matcher.role.value}: "
                f"missing {missing}"
            )

    def check_required(self, bindings: RoleBindings) -> None:
        """Every configured singular role must have been bound."""
        for matcher in self.matchers:
            if matcher.role.singular and bindings.get(matcher.role) is None:
                raise MissingRoleError(
                    f"No peripheral found for {matcher.role.value} "
                    f"(looking for {matcher.description!r})"
                )
