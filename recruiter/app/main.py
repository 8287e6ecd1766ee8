from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from recruiter.app.api.generation import router as generation_router
from recruiter.app.core.config import Settings, settings
from recruiter.app.core.http_client import init_http_client
from recruiter.app.core.logging import get_log_context, get_logger, setup_logging
from recruiter.app.exceptions import (
    PayloadTooLargeError,
    RecruiterException,
    UpstreamError,
    ValidationError,
)
from recruiter.app.middleware.rate_limit import AdmissionGate, RateLimitMiddleware
from recruiter.app.middleware.request_id import RequestIdMiddleware, get_request_id
from recruiter.app.middleware.request_size import BodyTooLargeError, RequestSizeLimitMiddleware
from recruiter.app.providers.openai import OpenAIProvider
from recruiter.app.services.generation import GenerationClient
from recruiter.app.services.recruiting import RecruitingService


_HTTP_ERROR_CODES = {
    404: "not_found",
    405: "method_not_allowed",
}


def _format_validation_errors(exc: RequestValidationError) -> list[str]:
    details = []
    for error in exc.errors():
        message = str(error.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            details.append(message[len("Value error, "):])
            continue
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        details.append(f"{'.'.join(loc)}: {message}" if loc else message)
    return details


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        app_settings: Settings to use instead of the environment-loaded ones

    Returns:
        Configured FastAPI application instance
    """
    cfg = app_settings or settings
    setup_logging(cfg)
    logger = get_logger(__name__)

    gate = AdmissionGate(
        max_requests=cfg.rate_limit_max_requests,
        window_seconds=cfg.rate_limit_window_seconds,
        sweep_interval=cfg.rate_limit_sweep_interval_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Open the shared HTTP client, build the service, run the sweep."""
        async with init_http_client(cfg) as http_client:
            if cfg.generation_configured:
                provider = OpenAIProvider(
                    base_url=cfg.openai_base_url,
                    api_key=cfg.openai_api_key,
                    organization=cfg.openai_organization,
                    http_client=http_client,
                    timeout=cfg.generation_timeout,
                )
                app.state.recruiting_service = RecruitingService(
                    GenerationClient.from_settings(provider, cfg)
                )
            else:
                logger.warning(
                    "OPENAI_API_KEY is not set; generation endpoints will answer 503"
                )

            await gate.start()
            logger.info(
                "Application startup complete",
                extra={"model": cfg.model, "generation_configured": cfg.generation_configured},
            )

            try:
                yield
            finally:
                await gate.stop()
                app.state.recruiting_service = None

        logger.info("Application shutdown complete")

    app = FastAPI(
        title="Recruiter MT",
        description="Job posting and interview kit generation",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = cfg
    app.state.admission_gate = gate
    app.state.recruiting_service = None

    # Order matters: last added = first executed
    app.add_middleware(
        RateLimitMiddleware,
        gate=gate,
        path_prefix="/api",
        trust_forwarded_for=cfg.rate_limit_trust_forwarded_for,
    )
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(RequestSizeLimitMiddleware, max_body_size=cfg.max_body_size)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials="*" not in cfg.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
        ],
        max_age=600,
    )

    app.include_router(generation_router)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "ok" if app.state.recruiting_service is not None else "degraded",
            "generation_configured": cfg.generation_configured,
            "model": cfg.model,
            "rate_limit": {
                "limit": gate.max_requests,
                "window_seconds": gate.window_seconds,
                "tracked_identities": gate.tracked_identities,
            },
        }

    def _error_response(request: Request, exc: RecruiterException, **content: Any) -> JSONResponse:
        body: dict[str, Any] = {
            "error": exc.error_code,
            "message": exc.public_message,
            "request_id": get_request_id(request),
        }
        body.update(content)
        if cfg.debug:
            body["detail"] = exc.message
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Report malformed input as HTTP 400 with a list of problems."""
        error = ValidationError(_format_validation_errors(exc))
        return _error_response(request, error, details=error.details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # FastAPI re-raises body read failures as a generic 400.
        if isinstance(exc.__cause__, BodyTooLargeError):
            return _error_response(request, PayloadTooLargeError(cfg.max_body_size))

        content: dict[str, Any] = {
            "error": _HTTP_ERROR_CODES.get(exc.status_code, "http_error"),
            "message": str(exc.detail),
            "request_id": get_request_id(request),
        }
        return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

    @app.exception_handler(RecruiterException)
    async def recruiter_exception_handler(request: Request, exc: RecruiterException) -> JSONResponse:
        """Map service errors to their categorized responses.

        Upstream bodies and causes are logged here and only exposed to the
        client in debug mode.
        """
        log_extra = get_log_context(
            request_id=get_request_id(request),
            path=request.url.path,
            status_code=exc.status_code,
            error_code=exc.error_code,
        )
        if isinstance(exc, UpstreamError):
            log_extra["upstream_status"] = exc.status
        logger.error(f"{type(exc).__name__}: {exc.message}", extra=log_extra)
        return _error_response(request, exc)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Last-resort handler; never returns tracebacks to the client."""
        request_id = get_request_id(request)
        logger.exception(
            f"Unhandled exception [request_id={request_id}]",
            extra=get_log_context(request_id=request_id, exception_type=type(exc).__name__),
        )

        content: dict[str, Any] = {
            "error": "internal_error",
            "message": "An unexpected error occurred",
            "request_id": request_id,
        }
        if cfg.debug:
            content["detail"] = str(exc)
            content["exception_type"] = type(exc).__name__
        return JSONResponse(status_code=500, content=content)

    return app


# Create the application instance
app = create_app()
