"""Circuit breaker for the external renderer and loudness tool.

When ffmpeg is missing, hanging or crashing, every render or measurement
would otherwise pay the full subprocess timeout before failing. The breaker
counts consecutive failures and, once tripped, rejects calls immediately
until a cool-down has passed:

    CLOSED     calls pass through; failures are counted
    OPEN       calls are rejected with CircuitOpenError
    HALF_OPEN  after the cool-down one probe call is allowed;
               success closes the circuit, failure re-opens it

State machine::

    CLOSED ──(N failures)──→ OPEN ──(cool-down)──→ HALF_OPEN
      ↑                                               │
      └──────────────(success)───────────────────────┘
                              └──(failure)──→ OPEN

Loudness measurement treats CircuitOpenError like any other collaborator
outage and falls back to the internal meter; rendering fails fast.

Usage::

    breaker = CircuitBreaker(name="ffmpeg", failure_threshold=3)
    result = breaker.call(subprocess.run, args, timeout=60)
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from infrastructure.metrics import record_circuit_rejected, record_circuit_trip

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(Exception):
    """A call was rejected because the circuit is OPEN.

    Args:
        name: Breaker name.
        reset_in_seconds: Seconds until the next probe is allowed.
    """

    def __init__(self, name: str, reset_in_seconds: float) -> None:
        """Initialize with breaker name and time-to-probe."""
        self.name = name
        self.reset_in_seconds = reset_in_seconds
        super().__init__(
            f"Circuit '{name}' is open; next probe in ~{reset_in_seconds:.0f}s"
        )


@dataclass
class CircuitStats:
    """Counters kept for the status snapshot."""

    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    rejected_calls: int = 0
    state_changes: list[tuple[str, float]] = field(default_factory=list)


class CircuitBreaker:
    """Thread-safe consecutive-failure circuit breaker.

    Args:
        name: Label used in logs, metrics and errors.
        failure_threshold: Consecutive failures that open the circuit.
        reset_timeout_seconds: Cool-down before a HALF_OPEN probe.
        success_threshold: Probe successes needed to close again.
        exceptions: Exception types counted as failures. Others propagate
            without touching the failure count.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 3,
        reset_timeout_seconds: float = 30.0,
        success_threshold: int = 1,
        exceptions: tuple[type[Exception], ...] = (Exception,),
    ) -> None:
        """Start CLOSED with zeroed counters."""
        if failure_threshold < 1 or success_threshold < 1:
            raise ValueError("failure_threshold and success_threshold must be >= 1")
        self.name = name
        self._failure_threshold = failure_threshold
        self._reset_timeout = reset_timeout_seconds
        self._success_threshold = success_threshold
        self._tracked_exceptions = exceptions

        self._state = CircuitState.CLOSED
        self._failures = 0
        self._probe_successes = 0
        self._opened_at = 0.0
        self._lock = threading.Lock()
        self.stats = CircuitStats()

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    def _set_state(self, new_state: CircuitState) -> None:
        """Change state; caller holds the lock."""
        if new_state == self._state:
            return
        logger.warning(
            "Circuit '%s': %s -> %s", self.name, self._state.value, new_state.value
        )
        self._state = new_state
        self.stats.state_changes.append((new_state.value, time.time()))

    def _trip(self, exc: Exception) -> None:
        """Open the circuit; caller holds the lock."""
        self._opened_at = time.time()
        self._probe_successes = 0
        self._set_state(CircuitState.OPEN)
        record_circuit_trip(self.name)
        logger.error(
            "Circuit '%s' tripped after %d consecutive failures: %s",
            self.name,
            self._failures,
            exc,
        )

    def _admit(self) -> None:
        """Reject or admit a call; caller holds the lock."""
        self.stats.total_calls += 1
        if self._state != CircuitState.OPEN:
            return
        waited = time.time() - self._opened_at
        if waited >= self._reset_timeout:
            self._probe_successes = 0
            self._set_state(CircuitState.HALF_OPEN)
            return
        self.stats.rejected_calls += 1
        record_circuit_rejected(self.name)
        raise CircuitOpenError(self.name, max(0.0, self._reset_timeout - waited))

    def call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run ``func`` through the breaker.

        Raises:
            CircuitOpenError: The circuit is OPEN and the cool-down has not passed.
            Exception: Whatever ``func`` raises (tracked types count as failures).
        """
        with self._lock:
            self._admit()

        try:
            result = func(*args, **kwargs)
        except self._tracked_exceptions as exc:
            with self._lock:
                self._failures += 1
                self.stats.failed_calls += 1
                if self._state == CircuitState.HALF_OPEN or (
                    self._failures >= self._failure_threshold
                ):
                    self._trip(exc)
            raise

        with self._lock:
            self._failures = 0
            self.stats.successful_calls += 1
            if self._state == CircuitState.HALF_OPEN:
                self._probe_successes += 1
                if self._probe_successes >= self._success_threshold:
                    self._set_state(CircuitState.CLOSED)
                    logger.info("Circuit '%s' closed; collaborator recovered", self.name)
        return result

    def reset(self) -> None:
        """Force the circuit CLOSED and clear failure counts."""
        with self._lock:
            self._failures = 0
            self._probe_successes = 0
            self._set_state(CircuitState.CLOSED)

    def status(self) -> dict[str, Any]:
        """Snapshot for health endpoints."""
        with self._lock:
            return {
                "name": self.name,
                "state": self._state.value,
                "consecutive_failures": self._failures,
                "failure_threshold": self._failure_threshold,
                "reset_timeout_seconds": self._reset_timeout,
                "stats": {
                    "total": self.stats.total_calls,
                    "success": self.stats.successful_calls,
                    "failed": self.stats.failed_calls,
                    "rejected": self.stats.rejected_calls,
                },
            }
