"""
Bounded retry strategy with exponential backoff.

Callers configure a :class:`RetryManager` and hand it the coroutine to
retry; nothing in the package retries with inline timers.
"""

import asyncio
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar

from .error_handler import CredentialNotReadyError, UpstreamUnavailableError
from .logger import logger


T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_factor: float = 2.0
    retryable_errors: Tuple[Type[Exception], ...] = field(
        default_factory=lambda: (CredentialNotReadyError, UpstreamUnavailableError)
    )


class RetryManager:
    """Executes coroutines with bounded retries and exponential backoff."""

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
    ):
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter

    @classmethod
    def from_config(cls, config: RetryConfig, jitter: bool = True) -> "RetryManager":
        return cls(
            max_retries=config.max_retries,
            base_delay=config.initial_delay,
            max_delay=config.max_delay,
            exponential_base=config.backoff_factor,
            jitter=jitter,
        )

    def _calculate_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (0-based), capped at max_delay."""

        delay = min(self.base_delay * (self.exponential_base ** attempt), self.max_delay)
        if self.jitter:
            delay *= random.uniform(0.8, 1.2)
        return delay

    async def execute(
        self,
        func: Callable[[], Awaitable[T]],
        exceptions: Tuple[Type[Exception], ...] = RetryConfig().retryable_errors,
        max_retries: Optional[int] = None,
    ) -> T:
        """
        Run ``func`` until it succeeds or the retry budget is spent.

        Args:
            func: Zero-argument coroutine function
            exceptions: Exception types that trigger a retry
            max_retries: Override for this call

        Returns:
            Whatever ``func`` returns

        Raises:
            The last retryable exception once all attempts fail, or any
            non-retryable exception immediately
        """
        retries = self.max_retries if max_retries is None else max_retries
        attempts = retries + 1

        for attempt in range(attempts):
            try:
                return await func()
            except exceptions as e:
                if attempt >= retries:
                    logger.error(f"All {attempts} attempts failed, giving up")
                    raise
                delay = self._calculate_delay(attempt)
                logger.warning(
                    f"Attempt {attempt + 1} failed: {e}. Retrying in {delay:.2f}s"
                )
                await asyncio.sleep(delay)

        raise RuntimeError("unreachable")  # pragma: no cover

    async def poll(
        self,
        check: Callable[[], Awaitable[Any]],
        max_retries: Optional[int] = None,
    ) -> bool:
        """
        Poll ``check`` until it returns a truthy value.

        Returns:
            True if the condition was met within the retry budget
        """
        retries = self.max_retries if max_retries is None else max_retries

        for attempt in range(retries + 1):
            if await check():
                return True
            if attempt < retries:
                await asyncio.sleep(self._calculate_delay(attempt))
        return False


__all__ = ["RetryConfig", "RetryManager"]
