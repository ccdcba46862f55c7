"""Cooperative cancellation token.

A token wraps a zero-argument predicate. Long-running provider calls poll
it at every suspension point (before network I/O, after each chunk, before
and during each backoff sleep) and raise ``OperationCancelledError`` as soon
as it returns True. Nothing is ever interrupted from the outside.
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from uuid import UUID, uuid4

from voicenotes.core.exceptions import OperationCancelledError


def _never() -> bool:
    return False


def _always() -> bool:
    return True


@dataclass(frozen=True)
class CancellationToken:
    """Immutable capsule around an ``is_cancelled`` predicate.

    Operations are cancelled by swapping their token for
    ``CancellationToken.cancelled()`` rather than by mutating a token.
    """

    predicate: Callable[[], bool] = _never
    id: UUID = field(default_factory=uuid4)

    @classmethod
    def cancelled(cls) -> "CancellationToken":
        """Return a token whose predicate is always true."""
        return cls(predicate=_always)

    @classmethod
    def linked(cls, source: Callable[[], "CancellationToken"]) -> "CancellationToken":
        """Return a token that reads whichever token ``source`` currently yields.

        The registry hands this to a running task so that replacing the
        operation's token is observed by the call already in flight.
        """
        return cls(predicate=lambda: source().is_cancelled)

    @property
    def is_cancelled(self) -> bool:
        return bool(self.predicate())

    def raise_if_cancelled(self) -> None:
        """Raise ``OperationCancelledError`` if cancellation was requested."""
        if self.is_cancelled:
            raise OperationCancelledError()

    async def sleep(self, delay: float, poll_interval: float = 0.05) -> None:
        """Sleep for ``delay`` seconds, aborting early on cancellation.

        Raises:
            OperationCancelledError: If the token fires before or during the
                sleep.
        """
        self.raise_if_cancelled()
        deadline = time.monotonic() + max(delay, 0.0)
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            await asyncio.sleep(min(poll_interval, remaining))
            self.raise_if_cancelled()
