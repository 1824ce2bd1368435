"""Prometheus metrics for the mix/master engine.

Metrics:
    mixmaster_operations_total              Counter by operation and status (ok/error)
    mixmaster_operation_latency_seconds     Histogram of engine operation latency
    mixmaster_loudness_fallbacks_total      Internal-meter fallbacks by reason
    mixmaster_collaborator_failures_total   Failed side-effect or collaborator calls
    mixmaster_circuit_breaker_trips_total   Times a circuit breaker opened
    mixmaster_circuit_breaker_rejected_total  Calls rejected while a circuit was open

All collectors live on a private registry so tests can create engines
repeatedly without duplicate-registration errors.

Usage::

    from infrastructure.metrics import LatencyTimer, record_operation

    with LatencyTimer() as t:
        profile = analyze_spectrum(sample)
    record_operation(operation="analyze_spectrum", status="ok", latency_seconds=t.elapsed)
"""

from __future__ import annotations

import time

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

operations_total = Counter(
    "mixmaster_operations_total",
    "Engine operations by operation name and status",
    ["operation", "status"],
    registry=REGISTRY,
)

operation_latency_seconds = Histogram(
    "mixmaster_operation_latency_seconds",
    "Engine operation latency in seconds",
    ["operation"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 120.0],
    registry=REGISTRY,
)

loudness_fallbacks_total = Counter(
    "mixmaster_loudness_fallbacks_total",
    "Loudness measurements served by the internal approximation",
    ["reason"],
    registry=REGISTRY,
)

collaborator_failures_total = Counter(
    "mixmaster_collaborator_failures_total",
    "Failed calls to external collaborators",
    ["collaborator"],
    registry=REGISTRY,
)

circuit_breaker_trips_total = Counter(
    "mixmaster_circuit_breaker_trips_total",
    "Number of times a circuit breaker tripped to OPEN",
    ["breaker_name"],
    registry=REGISTRY,
)

circuit_breaker_rejected_total = Counter(
    "mixmaster_circuit_breaker_rejected_total",
    "Calls rejected because a circuit was OPEN",
    ["breaker_name"],
    registry=REGISTRY,
)


# ---------------------------------------------------------------------------
# Recording helpers
# ---------------------------------------------------------------------------


def record_operation(*, operation: str, status: str, latency_seconds: float) -> None:
    """Record one completed engine operation.

    Args:
        operation: Engine method name, e.g. ``"measure_loudness"``.
        status: ``"ok"`` or ``"error"``.
        latency_seconds: Wall-clock duration.
    """
    operations_total.labels(operation=operation, status=status).inc()
    operation_latency_seconds.labels(operation=operation).observe(latency_seconds)


def record_loudness_fallback(reason: str) -> None:
    """Count one internal-meter fallback.

    The reason is truncated to keep label cardinality bounded.
    """
    loudness_fallbacks_total.labels(reason=_label(reason)).inc()


def record_collaborator_failure(collaborator: str) -> None:
    collaborator_failures_total.labels(collaborator=collaborator).inc()


def record_circuit_trip(breaker_name: str) -> None:
    circuit_breaker_trips_total.labels(breaker_name=breaker_name).inc()


def record_circuit_rejected(breaker_name: str) -> None:
    circuit_breaker_rejected_total.labels(breaker_name=breaker_name).inc()


def _label(reason: str) -> str:
    head = reason.split(":", 1)[0].strip().lower()
    return head[:48] or "unknown"


def get_metrics_response() -> tuple[bytes, str]:
    """Prometheus text exposition of the engine registry.

    Returns:
        Tuple of (body_bytes, content_type).
    """
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST


class LatencyTimer:
    """Context manager measuring wall-clock time.

    Usage::

        with LatencyTimer() as t:
            run()
        print(t.elapsed, t.elapsed_ms)
    """

    def __init__(self) -> None:
        """Initialize timer."""
        self._start: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> LatencyTimer:
        self._start = time.perf_counter()
        return self

    def __exit__(self, *_: object) -> None:
        self.elapsed = time.perf_counter() - self._start

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed * 1000.0
