"""
Per-provider circuit breakers.

States:
- CLOSED: Normal operation, attempts pass through
- OPEN: Too many consecutive failures, attempts are suppressed until
  open_until

There is no isolated half-open trial call: once open_until passes, the breaker
closes with a zeroed failure count and every caller is let through. Many
callers arriving right at expiry may all hit the provider at once.
"""

import logging
import threading
import time
from typing import Callable, Dict, Iterable, Optional, Any

from .config import CircuitBreakerConfig

logger = logging.getLogger(__name__)


class CircuitBreakerState:
    """Breaker state for one provider, guarded by its own lock."""

    CLOSED = "closed"
    OPEN = "open"

    def __init__(self, provider: str):
        self.provider = provider
        self.consecutive_failures = 0
        self.open = False
        self.open_until = 0.0
        self.lock = threading.Lock()

    @property
    def state(self) -> str:
        return self.OPEN if self.open else self.CLOSED


class CircuitBreakerRegistry:
    """
    Holds one CircuitBreakerState per provider.

    Usage:
        breakers = CircuitBreakerRegistry(["ALPHA_VANTAGE", "FINNHUB"])
        if breakers.allow_attempt("FINNHUB"):
            ok = call_provider()
            breakers.record_outcome("FINNHUB", ok)
    """

    def __init__(
        self,
        providers: Iterable[str] = (),
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._config = config or CircuitBreakerConfig()
        self._clock = clock
        self._states: Dict[str, CircuitBreakerState] = {
            p.upper(): CircuitBreakerState(p.upper()) for p in providers
        }
        # Only taken when an unseen provider has to be registered
        self._registry_lock = threading.Lock()

    @property
    def failure_threshold(self) -> int:
        return self._config.failure_threshold

    @property
    def open_seconds(self) -> int:
        return self._config.open_seconds

    def _state_for(self, provider: str) -> CircuitBreakerState:
        key = provider.upper()
        state = self._states.get(key)
        if state is None:
            with self._registry_lock:
                state = self._states.setdefault(key, CircuitBreakerState(key))
        return state

    def allow_attempt(self, provider: str) -> bool:
        """False while the provider's breaker is open."""
        state = self._state_for(provider)
        now = self._clock()
        with state.lock:
            if state.open and now < state.open_until:
                logger.debug(
                    f"[CircuitBreaker] {state.provider} open for another "
                    f"{state.open_until - now:.1f}s, skipping"
                )
                return False
            if state.open:
                state.open = False
                state.consecutive_failures = 0
                state.open_until = 0.0
                logger.info(f"[CircuitBreaker] {state.provider} CLOSED - open window elapsed")
            return True

    def record_outcome(self, provider: str, success: bool) -> None:
        state = self._state_for(provider)
        with state.lock:
            if success:
                if state.open or state.consecutive_failures:
                    logger.info(f"[CircuitBreaker] {state.provider} reset after success")
                state.consecutive_failures = 0
                state.open = False
                state.open_until = 0.0
                return

            state.consecutive_failures += 1
            if not state.open and state.consecutive_failures >= self._config.failure_threshold:
                state.open = True
                state.open_until = self._clock() + self._config.open_seconds
                logger.warning(
                    f"[CircuitBreaker] {state.provider} OPEN - {state.consecutive_failures} "
                    f"consecutive failures, suppressing for {self._config.open_seconds}s"
                )

    def is_open(self, provider: str) -> bool:
        state = self._state_for(provider)
        with state.lock:
            return state.open and self._clock() < state.open_until

    def reset(self, provider: str) -> None:
        state = self._state_for(provider)
        with state.lock:
            state.consecutive_failures = 0
            state.open = False
            state.open_until = 0.0

    def get_status(self) -> Dict[str, Dict[str, Any]]:
        """Per provider: open, consecutive_failures, remaining_open_ms."""
        now = self._clock()
        status = {}
        for name, state in list(self._states.items()):
            with state.lock:
                is_open = state.open and now < state.open_until
                remaining_ms = int(max(0.0, state.open_until - now) * 1000) if is_open else 0
                status[name] = {
                    'open': is_open,
                    'consecutive_failures': state.consecutive_failures,
                    'remaining_open_ms': remaining_ms,
                }
        return status
