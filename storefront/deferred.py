from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

RECOMMENDED_ERROR_MESSAGE = "There was a problem loading related products"


@dataclass(frozen=True)
class DeferredOutcome(Generic[T]):
    data: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Deferred(Generic[T]):
    """A value resolved out of band from the response that carries it.

    The wrapped coroutine starts running as soon as the handle is created.
    ``settle`` waits for it and reports failure as an outcome instead of
    raising, so only the consumer of this one value sees the error.
    """

    def __init__(self, key: str, awaitable: Awaitable[T], *, error_message: str) -> None:
        self.key = key
        self._error_message = error_message
        self._task: asyncio.Future[T] = asyncio.ensure_future(awaitable)
        self._task.add_done_callback(self._log_failure)

    def _log_failure(self, task: asyncio.Future[T]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(
                "Deferred value failed",
                extra={"deferred_key": self.key, "error": str(exc)},
                exc_info=exc,
            )

    @property
    def done(self) -> bool:
        return self._task.done()

    async def settle(self) -> DeferredOutcome[T]:
        try:
            return DeferredOutcome(data=await asyncio.shield(self._task))
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise
            return DeferredOutcome(error=self._error_message)
        except Exception:
            return DeferredOutcome(error=self._error_message)

    def as_payload(self, outcome: DeferredOutcome[Any]) -> dict[str, Any]:
        if outcome.ok:
            return {"deferred": self.key, "data": outcome.data}
        return {"deferred": self.key, "error": outcome.error}


def defer_recommendations(
    product_id: str,
    fetch: Callable[[str], Awaitable[T]],
) -> Deferred[T]:
    return Deferred("recommended", fetch(product_id), error_message=RECOMMENDED_ERROR_MESSAGE)
