"""Node discovery and role classification."""

from feeder.discovery.classifier import RESERVED_ADDRESSES, ResourceClassifier
from feeder.discovery.roles import (
    Role,
    RoleBindings,
    RoleMatcher,
    build_matchers,
    exact_role,
    pattern_role,
)

__all__ = [
    "RESERVED_ADDRESSES",
    "ResourceClassifier",
    "Role",
    "RoleBindings",
    "RoleMatcher",
    "build_matchers",
    "exact_role",
    "pattern_role",
]
