"""
Confirmation polling for submitted transactions.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from .errors import ConfirmationError, ConfirmationTimeoutError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PollPolicy:
    """
    Retry policy for the confirmation loop.

    The defaults poll back-to-back with no timeout and no attempt cap,
    i.e. the loop only ends on confirmation or a transport error.
    """
    interval: float = 0.0
    timeout: Optional[float] = None
    max_attempts: Optional[int] = None

    def __post_init__(self):
        if self.interval < 0:
            raise ValueError(f"interval must be >= 0, got {self.interval}")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {self.timeout}")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")


@dataclass(frozen=True)
class ConfirmationResult:
    attempts: int
    elapsed_seconds: float


async def wait_for_confirmation(
    check: Callable[[], Awaitable[bool]],
    policy: PollPolicy,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
    started_at: Optional[float] = None
) -> ConfirmationResult:
    """
    Poll ``check`` until it reports the transaction as confirmed.

    Args:
        check: Coroutine function returning True once confirmed
        policy: Interval, timeout and attempt cap
        sleep: Awaitable sleep (injected so tests never wait on the wall clock)
        clock: Monotonic clock in seconds
        started_at: Clock reading the elapsed time is measured from
            (defaults to the moment polling starts)

    Returns:
        ConfirmationResult with the number of status checks and elapsed seconds

    Raises:
        ConfirmationTimeoutError: If the timeout or attempt cap is exhausted
        ConfirmationError: If a status check fails
    """
    start = clock() if started_at is None else started_at
    attempts = 0

    while True:
        attempts += 1
        try:
            confirmed = await check()
        except ConfirmationError:
            raise
        except Exception as e:
            logger.error(f"Confirmation check {attempts} failed: {e}")
            raise ConfirmationError(f"Failed to check transaction status: {e}") from e

        if confirmed:
            elapsed = clock() - start
            logger.debug(f"Confirmed after {attempts} status checks ({elapsed:.3f}s)")
            return ConfirmationResult(attempts=attempts, elapsed_seconds=elapsed)

        if policy.max_attempts is not None and attempts >= policy.max_attempts:
            raise ConfirmationTimeoutError(
                f"Transaction not confirmed after {attempts} status checks"
            )

        if policy.timeout is not None and clock() - start >= policy.timeout:
            raise ConfirmationTimeoutError(
                f"Transaction not confirmed within {policy.timeout}s ({attempts} status checks)"
            )

        # A zero interval still yields to the event loop
        await sleep(policy.interval)
