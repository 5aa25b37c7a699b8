"""Fan-out primitive used wherever independent remote operations run together."""

import asyncio
from typing import Any, Awaitable, Callable, List


Operation = Callable[[], Awaitable[Any]]


class ParallelTaskGroup:
    """Collects zero-argument async operations and runs them concurrently.

    ``run_all`` is the only suspension point: it waits for every queued
    operation. If one of them raises, the wait aborts with that error;
    siblings that already started may still finish their side effects.
    """

    def __init__(self):
        self._operations: List[Operation] = []

    def enqueue(self, operation: Operation) -> None:
        self._operations.append(operation)

    def size(self) -> int:
        return len(self._operations)

    def __len__(self) -> int:
        return self.size()

    async def run_all(self) -> List[Any]:
        """Execute and clear the pending batch, returning results in enqueue order."""
        operations, self._operations = self._operations, []
        if not operations:
            return []
        return await asyncio.gather(*(operation() for operation in operations))
