from __future__ import annotations

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from restroom_api.cache import DatasetCache
from restroom_api.dependencies import get_dataset_cache, get_lookup_metrics, get_settings
from restroom_api.errors import ApiError, RateLimitExceededError, UpstreamUnavailableError
from restroom_api.middleware import ObservabilityMiddleware
from restroom_api.observability import (
    CompositeApiMetricsCollector,
    InMemoryApiMetricsCollector,
    PrometheusApiMetricsCollector,
)
from restroom_api.response import error_response, success_response
from restroom_api.routers.restrooms import router as restrooms_router
from restroom_api.services.providers import to_iso8601
from restroom_api.telemetry import configure_logging, configure_otel, configure_probe_access_log_filter


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="How Far From Potty API", version="0.1.0")
    configure_logging(settings.LOG_LEVEL)
    configure_otel(service_name=settings.SERVICE_NAME)
    configure_probe_access_log_filter()
    app.state.api_metrics = InMemoryApiMetricsCollector()
    app.state.prom_metrics = PrometheusApiMetricsCollector()
    app.state.composite_metrics = CompositeApiMetricsCollector(
        [app.state.api_metrics, app.state.prom_metrics]
    )
    app.add_middleware(ObservabilityMiddleware, collector=app.state.composite_metrics)
    app.include_router(restrooms_router)

    @app.get("/healthz")
    async def healthz() -> dict:
        return success_response({"status": "ok"}, meta={})

    @app.get("/readyz")
    async def readyz(cache: DatasetCache = Depends(get_dataset_cache)) -> dict:
        snapshot = cache.peek()
        uk_dataset = {
            "record_count": len(snapshot.records),
            "cached_at": to_iso8601(snapshot.fetched_at) if snapshot.fetched_at else None,
        }
        return success_response({"status": "ready", "uk_dataset": uk_dataset}, meta={})

    @app.get("/metrics")
    async def metrics() -> Response:
        payload = app.state.prom_metrics.render() + get_lookup_metrics().render()
        return Response(content=payload, media_type="text/plain; version=0.0.4")

    @app.exception_handler(ApiError)
    async def handle_api_error(_: Request, exc: ApiError) -> JSONResponse:
        details: dict[str, object] = {}
        headers = {"Cache-Control": "no-store"}
        if isinstance(exc, UpstreamUnavailableError):
            details = {"provider": exc.provider, "upstream_status": exc.upstream_status}
        elif isinstance(exc, RateLimitExceededError):
            details = {"retry_after_seconds": exc.retry_after_seconds}
            headers["Retry-After"] = str(exc.retry_after_seconds)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(exc.code, exc.message, **details),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        message = "; ".join(err["msg"] for err in exc.errors())
        return JSONResponse(
            status_code=422,
            content=error_response("VALIDATION_ERROR", message),
        )

    return app


app = create_app()
