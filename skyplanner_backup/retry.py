"""Bounded retry with linearly increasing delay, shared by every network call."""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from ._utils import logger


def _always(exc: BaseException) -> bool:
    return True


@dataclass(frozen=True)
class RetryPolicy:
    """Retry a coroutine up to ``max_attempts`` times.

    The n-th failed attempt waits ``delay * n`` seconds before the next one.
    The last error is re-raised unchanged once attempts are exhausted.
    """
    max_attempts: int = 3
    delay: float = 5.0

    def __post_init__(self):
        if self.max_attempts <= 0:
            raise ValueError(f"max_attempts must be positive, got {self.max_attempts}")
        if self.delay < 0:
            raise ValueError(f"delay must be non-negative, got {self.delay}")

    def retrying(
        self,
        label: str,
        should_retry: Optional[Callable[[BaseException], bool]] = None,
    ) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_incrementing(start=self.delay, increment=self.delay),
            retry=retry_if_exception(should_retry or _always),
            before_sleep=self._log_retry(label),
            reraise=True,
        )

    async def call(
        self,
        fn: Callable[..., Awaitable[Any]],
        *args,
        label: str = "",
        should_retry: Optional[Callable[[BaseException], bool]] = None,
        **kwargs,
    ) -> Any:
        """Await ``fn(*args, **kwargs)`` under this policy."""
        async for attempt in self.retrying(label or getattr(fn, "__name__", "call"), should_retry):
            with attempt:
                result = await fn(*args, **kwargs)
        return result

    def _log_retry(self, label: str) -> Callable[[RetryCallState], None]:
        def log(retry_state: RetryCallState) -> None:
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            sleep = retry_state.next_action.sleep if retry_state.next_action else 0
            logger.warning(
                f"{label}: attempt {retry_state.attempt_number}/{self.max_attempts} failed "
                f"({exc}), retrying in {sleep:.0f}s"
            )
        return log
