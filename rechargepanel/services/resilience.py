"""
Circuit Breaker for ledger reads.

When the ledger keeps failing, stop hammering it: an open breaker fails reads
immediately with CircuitOpenError (a LedgerUnavailableError), so the
statistics service can fall back without waiting on timeouts.

No retries here. Retrying belongs to the transport.
"""

import asyncio
import time
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from rechargepanel.config import settings
from rechargepanel.errors import LedgerUnavailableError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "closed"       # Normal operation
    OPEN = "open"           # Rejecting all reads
    HALF_OPEN = "half_open" # Letting one trial call through


class CircuitOpenError(LedgerUnavailableError):
    """Raised when the breaker is open and rejects a read."""


class CircuitBreaker:
    """
    States: CLOSED → OPEN → HALF_OPEN → CLOSED

    - CLOSED: normal. `failure_threshold` failures inside `window_seconds` → OPEN
    - OPEN: reject immediately for `recovery_timeout` seconds
    - HALF_OPEN: one trial call, concurrent calls wait on it. Success → CLOSED; failure → OPEN
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        window_seconds: float = 60.0,
        recovery_timeout: float = 30.0,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.window_seconds = window_seconds
        self.recovery_timeout = recovery_timeout
        self._clock = clock or time.monotonic

        self._state = CircuitState.CLOSED
        self._failures: list[float] = []
        self._opened_at: float = 0.0
        self._trial: Optional[asyncio.Event] = None

    @property
    def state(self) -> CircuitState:
        if self._state == CircuitState.OPEN:
            if self._clock() - self._opened_at >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
                logger.info("circuit_half_open", breaker=self.name)
        return self._state

    async def call(
        self,
        fn: Callable[[], Awaitable[T]],
        failure_types: tuple[type[BaseException], ...] = (LedgerUnavailableError,),
        operation: str = "ledger_read",
    ) -> T:
        """
        Run `fn` through the breaker. Only `failure_types` count as failures.

        In HALF_OPEN the first call is a trial. Calls arriving while it is
        in flight wait for its outcome: they proceed once it closes the
        breaker and are rejected if it reopens. A cancelled trial hands the
        slot to the next waiter.
        """
        while True:
            state = self.state
            if state == CircuitState.OPEN:
                logger.warning("circuit_open_rejected", breaker=self.name, operation=operation)
                raise CircuitOpenError(
                    f"Circuit breaker '{self.name}' is open", operation=operation
                )
            if state == CircuitState.HALF_OPEN and self._trial is not None:
                await self._trial.wait()
                continue
            break

        trial: Optional[asyncio.Event] = None
        if state == CircuitState.HALF_OPEN:
            trial = self._trial = asyncio.Event()
            logger.info("circuit_trial_started", breaker=self.name, operation=operation)

        try:
            result = await fn()
        except failure_types:
            self._on_failure()
            raise
        finally:
            if trial is not None:
                if self._trial is trial:
                    self._trial = None
                trial.set()
        self._on_success()
        return result

    def _on_success(self) -> None:
        if self._state != CircuitState.CLOSED:
            logger.info("circuit_closed", breaker=self.name)
        self._state = CircuitState.CLOSED
        self._failures.clear()

    def _on_failure(self) -> None:
        now = self._clock()

        if self._state == CircuitState.HALF_OPEN:
            self._state = CircuitState.OPEN
            self._opened_at = now
            logger.warning("circuit_reopened", breaker=self.name)
            return

        cutoff = now - self.window_seconds
        self._failures = [t for t in self._failures if t > cutoff]
        self._failures.append(now)

        if len(self._failures) >= self.failure_threshold:
            self._state = CircuitState.OPEN
            self._opened_at = now
            logger.warning(
                "circuit_opened",
                breaker=self.name,
                failures=len(self._failures),
                threshold=self.failure_threshold,
            )

    def reset(self) -> None:
        """Manually reset the circuit breaker."""
        self._state = CircuitState.CLOSED
        self._failures.clear()
        if self._trial is not None:
            self._trial.set()
            self._trial = None


def ledger_breaker() -> CircuitBreaker:
    """A breaker configured from settings, one per adapter instance."""
    return CircuitBreaker(
        name="ledger",
        failure_threshold=settings.ledger_breaker_threshold,
        recovery_timeout=settings.ledger_breaker_recovery_seconds,
    )
