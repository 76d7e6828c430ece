import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from ..utils.config import RETRY_BASE_DELAY_MS, RETRY_MAX_ATTEMPTS, RETRY_MAX_DELAY_MS
from ..utils.error_codes import ErrorCodes, ErrorKind
from ..utils.logger import logger

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


class RetryExecutor:
    """
    Runs a remote operation with bounded retries and exponential backoff.

    The delay before attempt ``k`` (k >= 2) is ``base_delay_ms * 2 ** (k - 2)``,
    capped at ``max_delay_ms``. Permission and validation failures are terminal
    and end the loop immediately; everything retryable is tried again until
    ``max_attempts`` is spent, then the last error is raised.
    """

    def __init__(
        self,
        max_attempts: int = RETRY_MAX_ATTEMPTS,
        base_delay_ms: float = RETRY_BASE_DELAY_MS,
        max_delay_ms: float = RETRY_MAX_DELAY_MS,
        sleep: Sleep = asyncio.sleep,
    ):
        self.max_attempts = max_attempts
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self._sleep = sleep

    def delay_for_attempt(self, attempt: int, base_delay_ms: Optional[float] = None) -> float:
        """Backoff in milliseconds before ``attempt`` (1-based)."""
        if attempt < 2:
            return 0.0
        base = self.base_delay_ms if base_delay_ms is None else base_delay_ms
        return min(base * 2 ** (attempt - 2), self.max_delay_ms)

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        max_attempts: Optional[int] = None,
        base_delay_ms: Optional[float] = None,
        description: str = "operation",
    ) -> T:
        attempts_allowed = max(1, self.max_attempts if max_attempts is None else max_attempts)
        last_error: Optional[BaseException] = None

        for attempt in range(1, attempts_allowed + 1):
            if attempt > 1:
                delay_ms = self.delay_for_attempt(attempt, base_delay_ms)
                logger.debug(f"⏳ Waiting {delay_ms:.0f}ms before retrying {description}")
                await self._sleep(delay_ms / 1000)

            try:
                result = await operation()
                if attempt > 1:
                    logger.info(f"✅ {description} succeeded on attempt {attempt}")
                return result
            except Exception as e:
                last_error = e
                kind = ErrorCodes.classify(e)
                code = ErrorCodes.get_error_code(e)
                if kind is not ErrorKind.RETRYABLE:
                    logger.warning(f"⚠️ {description} failed with terminal error ({code}): {e}")
                    raise
                logger.warning(f"🔄 Attempt {attempt}/{attempts_allowed} for {description} failed ({code}): {e}")

        logger.error(f"❌ {description} failed after {attempts_allowed} attempts")
        raise last_error
