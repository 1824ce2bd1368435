"""Infrastructure layer: resilience and observability for the mix/master engine.

Modules:
    circuit_breaker  Circuit breaker around the external ffmpeg renderer.
    retry            Exponential backoff retry for transient persistence errors.
    metrics          Prometheus metrics registry and latency timer.
"""
