"""Retry wrapper for remote calls.

Nodes in the environment reject calls while they are updating their own
state, so every remote interaction goes through :class:`RetryExecutor`.
Retries are immediate by default; bounded exponential backoff is opt-in.
"""

from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_none,
)

from feeder.errors import FatalError, RetryExhaustedError
from feeder.monitoring.metrics import FeederMetrics


T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 60


class RetryExecutor:
    """Calls an async operation until it succeeds or attempts run out."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff: bool = False,
        initial_delay: float = 0.01,
        max_delay: float = 1.0,
        metrics: Optional[FeederMetrics] = None,
        logger=None
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.metrics = metrics
        self.logger = logger or structlog.get_logger(__name__)

    def _wait_strategy(self):
        if not self.backoff:
            return wait_none()
        return wait_exponential(multiplier=self.initial_delay, max=self.max_delay)

    def _on_retry(self, site: str) -> Callable[[RetryCallState], None]:
        def before_sleep(retry_state: RetryCallState) -> None:
            if self.metrics is not None:
                self.metrics.record_retry(site)
            if retry_state.attempt_number == 1:
                error = retry_state.outcome.exception() if retry_state.outcome else None
                self.logger.debug("remote_call_retrying", site=site, error=str(error))
        return before_sleep

    async def call(
        self,
        operation: Callable[[], Awaitable[T]],
        max_attempts: Optional[int] = None,
        site: Optional[str] = None
    ) -> T:
        """Run ``operation`` with retries.

        Any ``Exception`` other than a :class:`FatalError` counts as a failed
        attempt; cancellation propagates immediately. After ``max_attempts``
        failures a ``RetryExhaustedError`` is raised carrying the attempt
        count, the last failure and ``site``.
        """
        attempts = max_attempts if max_attempts is not None else self.max_attempts
        if attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        site = site or getattr(operation, "__qualname__", repr(operation))

        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=self._wait_strategy(),
            retry=retry_if_exception_type(Exception) & retry_if_not_exception_type(FatalError),
            before_sleep=self._on_retry(site),
            reraise=False,
        )
        result: Any = None
        try:
            async for attempt in retrying:
                with attempt:
                    result = await operation()
        except RetryError as e:
            last_error = e.last_attempt.exception()
            if self.metrics is not None:
                self.metrics.record_exhausted(site)
            raise RetryExhaustedError(site, e.last_attempt.attempt_number, last_error) from last_error
        return result
