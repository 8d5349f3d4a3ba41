"""
Circuit breaker for football-data.org calls.

Uses pybreaker. The HTTP call itself is async, so the breaker guards the
synchronous response check that follows it: server failures (5xx) count
towards ``fail_max`` and an open breaker rejects further responses until
``reset_timeout`` has passed.

Circuit Breaker States:
- CLOSED: Requests pass through normally
- OPEN: Requests fail immediately (after fail_max failures)
- HALF_OPEN: One request allowed to test if service has recovered
"""
from typing import Any, Callable

from pybreaker import CircuitBreaker, CircuitBreakerError, CircuitBreakerListener

from lappeleken.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_FAIL_MAX = 5  # Number of failures before opening circuit
DEFAULT_RESET_TIMEOUT = 60  # Seconds before attempting to close circuit


class StateChangeLogger(CircuitBreakerListener):
    """Log every breaker transition; opening is a warning."""

    def state_change(self, cb, old_state, new_state):
        old_name = old_state.name if old_state else None
        message = f"Circuit breaker '{cb.name}': {old_name} -> {new_state.name}"
        if new_state.name == "open":
            logger.warning(message)
        else:
            logger.info(message)


football_data_breaker = CircuitBreaker(
    fail_max=DEFAULT_FAIL_MAX,
    reset_timeout=DEFAULT_RESET_TIMEOUT,
    name="football_data_api",
    listeners=[StateChangeLogger()],
)


def guarded_call(breaker: CircuitBreaker, func: Callable, *args, **kwargs) -> Any:
    """
    Run a synchronous callable through the breaker.

    Raises:
        CircuitBreakerError: the breaker is open (or just opened)
    """
    return breaker.call(func, *args, **kwargs)


def get_breaker_state(breaker: CircuitBreaker) -> str:
    """State string: 'closed', 'open', or 'half-open'."""
    return breaker.current_state


def get_all_breaker_states() -> dict[str, str]:
    """Current state of every breaker, keyed by name."""
    return {football_data_breaker.name: get_breaker_state(football_data_breaker)}


__all__ = [
    "CircuitBreakerError",
    "football_data_breaker",
    "guarded_call",
    "get_breaker_state",
    "get_all_breaker_states",
]
