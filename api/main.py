from fastapi import FastAPI
from fastapi.responses import Response

from api.deps import get_ffmpeg_breaker
from api.routes.mix_master import router as mix_master_router
from infrastructure.metrics import get_metrics_response

app = FastAPI(title="Mix/Master Decision Engine")

app.include_router(mix_master_router)


@app.get("/health")
def health() -> dict[str, object]:
    """Return a liveness check with the renderer circuit state."""
    return {"status": "ok", "renderer": get_ffmpeg_breaker().status()}


@app.get("/metrics")
def metrics() -> Response:
    """Prometheus metrics endpoint.

    Returns metrics in Prometheus text exposition format.
    """
    body, content_type = get_metrics_response()
    return Response(content=body, media_type=content_type)
