"""Error hierarchy for the feeder controller.

Everything that derives from :class:`FatalError` stops the controller.
Recoverable anomalies are logged as warnings and never raised.
"""

from typing import Optional


class FeederError(Exception):
    """Base class for all feeder errors."""
    pass


class TransientCallError(FeederError):
    """A single remote call was rejected by the environment."""

    def __init__(self, node: str, method: str, reason: str):
        super().__init__(f"{node}.{method} failed: {reason}")
        self.node = node
        self.method = method
        self.reason = reason


class FatalError(FeederError):
    """Raised when automation cannot continue."""
    pass


class ConfigurationError(FatalError):
    """Invalid or contradictory configuration."""
    pass


class MissingRoleError(FatalError):
    """A configured singular role was not bound to any node."""
    pass


class CapabilityError(FatalError):
    """A classified node lacks a capability its role requires."""
    pass


class PairingError(FatalError):
    """Item and fluid outputs could not be paired."""
    pass


class DuplicateOutputError(FatalError):
    """The same node appears in more than one output."""
    pass


class EmptyPoolError(FatalError):
    """No outputs were found."""
    pass


class MarkerRangeError(FatalError):
    """A marker label carries a mode parameter outside [-1, 32]."""

    def __init__(self, value: int):
        super().__init__(f"Circuit configuration number {value} is out of range [-1, 32]")
        self.value = value


class RetryExhaustedError(FatalError):
    """A remote call kept failing for every allowed attempt."""

    def __init__(self, site: str, attempts: int, last_error: Optional[BaseException]):
        super().__init__(
            f"Max retries ({attempts}) exceeded while calling {site}. "
            f"Last error: {last_error}"
        )
        self.site = site
        self.attempts = attempts
        self.last_error = last_error
