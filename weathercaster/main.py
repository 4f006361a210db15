"""Application entry point and FastAPI app factory."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
import sys
from pathlib import Path

import httpx
import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .config.settings import Settings, settings
from .controllers import assets, broadcast, weather
from .middleware import StructuredLoggingMiddleware, TelemetryMiddleware
from .publishing import build_publishing_pipeline, default_publish_options
from .services.broadcast import BroadcastService
from .services.encoder import MediaEncoder
from .services.mux import create_media_platform
from .services.speech import SpeechSynthesizer
from .services.weather import WeatherClient
from .views import HealthResponse

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _configure_logging() -> None:
    """Stream logs to stdout and a rotating file; publishing also gets its own file."""

    logging.getLogger().handlers.clear()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    log_path = Path(settings.log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=1_000_000,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root_logger = logging.getLogger()
    root_logger.addHandler(stdout_handler)
    root_logger.addHandler(file_handler)
    root_logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)

    middleware_logger = logging.getLogger("weathercaster.middleware.structured")
    middleware_logger.handlers.clear()
    middleware_stdout = logging.StreamHandler(sys.stdout)
    middleware_stdout.setFormatter(logging.Formatter("%(message)s"))
    middleware_logger.addHandler(middleware_stdout)
    middleware_logger.setLevel(logging.INFO)
    middleware_logger.propagate = False

    # Upload and readiness events, kept apart for troubleshooting Mux issues.
    publishing_log_path = Path(settings.publishing_log_file)
    publishing_log_path.parent.mkdir(parents=True, exist_ok=True)
    publishing_handler = RotatingFileHandler(
        publishing_log_path,
        maxBytes=500_000,
        backupCount=5,
        encoding="utf-8",
    )
    publishing_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    )
    for name in ("weathercaster.publishing", "weathercaster.services.mux"):
        publishing_logger = logging.getLogger(name)
        publishing_logger.handlers.clear()
        publishing_logger.addHandler(publishing_handler)
        publishing_logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)

    noisy_loggers = [
        "botocore",
        "boto3",
        "urllib3",
        "httpx",
        "httpcore",
    ]
    for name in noisy_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


async def _start_services(app: FastAPI, config: Settings) -> None:
    """Build the long-lived collaborators shared by every request."""

    client = httpx.AsyncClient(follow_redirects=True)
    platform = create_media_platform(client, config.mux)
    pipeline = build_publishing_pipeline(
        platform,
        client,
        publishing=config.publishing,
        mux=config.mux,
    )
    weather_client = WeatherClient(client, config.weather)

    app.state.http_client = client
    app.state.platform = platform
    app.state.pipeline = pipeline
    app.state.weather_client = weather_client
    app.state.broadcast_service = BroadcastService(
        weather=weather_client,
        speech=SpeechSynthesizer(config.polly),
        encoder=MediaEncoder(config.media),
        pipeline=pipeline,
        media=config.media,
        options=default_publish_options(config.mux),
    )

    problem = await platform.check_health()
    if problem:
        logger.warning("Mux platform not ready: %s", problem)
    logger.info(
        "Publishing pipeline ready transport=%s max_concurrent=%s",
        config.mux.transport,
        config.publishing.max_concurrent,
    )


async def _stop_services(app: FastAPI) -> None:
    pipeline = getattr(app.state, "pipeline", None)
    if pipeline is not None:
        await pipeline.close()
    client = getattr(app.state, "http_client", None)
    if client is not None:
        await client.aclose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    _configure_logging()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        description="Weather forecast narration and Mux video publishing API",
    )

    app.add_middleware(TelemetryMiddleware)
    app.add_middleware(StructuredLoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    app.include_router(broadcast.router)
    app.include_router(assets.router)
    app.include_router(weather.router)

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        """Root endpoint."""

        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "status": "operational",
        }

    @app.get("/health", response_model=HealthResponse, include_in_schema=False)
    async def health_check(request: Request) -> HealthResponse:
        """Health check including the Mux credential check."""

        checks: dict[str, str] = {}
        platform = getattr(request.app.state, "platform", None)
        if platform is None:
            checks["mux"] = "not initialised"
        else:
            checks["mux"] = await platform.check_health() or "ok"

        pipeline = getattr(request.app.state, "pipeline", None)
        if pipeline is not None:
            limiter = pipeline.limiter
            checks["publishing"] = (
                f"active={limiter.active_count}/{limiter.max_concurrent} "
                f"waiting={limiter.waiting_count}"
            )

        return HealthResponse(
            status="healthy" if checks.get("mux") == "ok" else "degraded",
            service=settings.app_name,
            version=settings.app_version,
            checks=checks,
        )

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Expose application metrics for Prometheus scraping."""

        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request, exc):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    @app.on_event("startup")
    async def startup_event() -> None:
        await _start_services(app, settings)

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        await _stop_services(app)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "weathercaster.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
