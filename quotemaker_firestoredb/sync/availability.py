import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional

from ..utils.config import (
    AVAILABILITY_CHECK_INTERVAL_SECONDS,
    CIRCUIT_FAILURE_THRESHOLD,
    CIRCUIT_OPEN_TIMEOUT_SECONDS,
    MAX_RECOVERY_ATTEMPTS,
    RECOVERY_BASE_DELAY_SECONDS,
    RECOVERY_MAX_DELAY_SECONDS,
)
from ..utils.error_codes import ErrorCodes, ErrorKind
from ..utils.logger import logger
from ..utils.time_now import TimeManager

Sleep = Callable[[float], Awaitable[None]]


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


class AvailabilityMonitor:
    """
    Circuit breaker in front of Firestore reads.

    After ``failure_threshold`` consecutive retryable failures the circuit opens and
    reads skip Firestore entirely. Once ``open_timeout`` seconds have passed the circuit
    is half-open: the next read is let through, a success closes the circuit and a
    failure opens it again. Permission and validation errors prove
    Firestore answered, so they never count as failures.

    ``start`` runs a connectivity check every ``check_interval`` seconds. While the
    circuit is open the checks come sooner, backing off from ``recovery_base_delay``
    up to ``recovery_max_delay`` for at most ``max_recovery_attempts`` attempts.
    """

    def __init__(
        self,
        datastore=None,
        failure_threshold: int = CIRCUIT_FAILURE_THRESHOLD,
        open_timeout: float = CIRCUIT_OPEN_TIMEOUT_SECONDS,
        check_interval: float = AVAILABILITY_CHECK_INTERVAL_SECONDS,
        recovery_base_delay: float = RECOVERY_BASE_DELAY_SECONDS,
        recovery_max_delay: float = RECOVERY_MAX_DELAY_SECONDS,
        max_recovery_attempts: int = MAX_RECOVERY_ATTEMPTS,
        clock: Callable[[], float] = TimeManager.monotonic,
        sleep: Sleep = asyncio.sleep,
    ):
        self.datastore = datastore
        self.failure_threshold = max(1, failure_threshold)
        self.open_timeout = open_timeout
        self.check_interval = check_interval
        self.recovery_base_delay = recovery_base_delay
        self.recovery_max_delay = recovery_max_delay
        self.max_recovery_attempts = max_recovery_attempts
        self._clock = clock
        self._sleep = sleep

        self._state = CircuitState.CLOSED
        self._opened_at: Optional[float] = None
        self._consecutive_failures = 0
        self.recovery_attempts = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> CircuitState:
        if self._state is CircuitState.OPEN and self._clock() - self._opened_at >= self.open_timeout:
            self._state = CircuitState.HALF_OPEN
            logger.info("🔌 Circuit breaker half-open, letting the next Firestore call through")
        return self._state

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def allow_request(self) -> bool:
        return self.state is not CircuitState.OPEN

    def record_success(self) -> None:
        previous = self._state
        self._consecutive_failures = 0
        self.recovery_attempts = 0
        self._state = CircuitState.CLOSED
        self._opened_at = None
        if previous is not CircuitState.CLOSED:
            logger.info("✅ Circuit breaker closed, Firestore is answering again")

    def record_failure(self, error: Optional[BaseException] = None) -> None:
        if error is not None and ErrorCodes.classify(error) is not ErrorKind.RETRYABLE:
            return
        self._consecutive_failures += 1
        state = self.state
        if state is CircuitState.HALF_OPEN or (
            state is CircuitState.CLOSED and self._consecutive_failures >= self.failure_threshold
        ):
            self._open()

    def _open(self) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()
        logger.warning(
            f"🚫 Circuit breaker open after {self._consecutive_failures} consecutive failures, "
            f"skipping Firestore for {self.open_timeout:.0f}s"
        )

    async def check(self) -> bool:
        """
        Ask Firestore directly, whatever the circuit state. A successful check closes
        the circuit; a failed one counts like a failed read.
        """
        if self.datastore is None:
            return False
        if self._state is not CircuitState.CLOSED:
            # a remembered "unreachable" answer would hide a recovery
            self.datastore.invalidate_availability()
        try:
            available = await self.datastore.is_available()
        except Exception as e:
            logger.warning(f"⚠️ Firestore availability check failed: {e}")
            available = False

        if available:
            self.record_success()
        else:
            self.record_failure()
        return available

    def recovery_delay(self, attempt: int) -> float:
        """Seconds before recovery ``attempt`` (1-based)."""
        return min(self.recovery_base_delay * 2 ** (max(attempt, 1) - 1), self.recovery_max_delay)

    def _next_delay(self) -> float:
        if self._state is not CircuitState.OPEN:
            return self.check_interval
        if self.recovery_attempts >= self.max_recovery_attempts:
            return self.check_interval
        self.recovery_attempts += 1
        return self.recovery_delay(self.recovery_attempts)

    # ------------------------------------------------------------------ #
    #  ─── Background checks ─────────────── #
    # ------------------------------------------------------------------ #
    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running or self.datastore is None:
            return
        self._task = asyncio.ensure_future(self._run())
        logger.info(f"👀 Checking Firestore availability every {self.check_interval:.0f}s")

    async def _run(self) -> None:
        while True:
            await self._sleep(self._next_delay())
            await self.check()

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
