"""FastAPI application factory"""

import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from coop_lending.api.middleware import RequestIDMiddleware, MetricsMiddleware
from coop_lending.api.v1 import loans, payments, reports
from coop_lending.domain.exceptions import (
    AuthorizationError,
    DirectoryAPIError,
    DomainException,
    LoanCodeExhaustedError,
    NotFoundError,
    StateError,
    ValidationError,
)
from coop_lending.infrastructure.observability.logging import setup_logging
from coop_lending.config import settings

# Setup structured logging
setup_logging(settings.log_level)

ERROR_STATUS_CODES = {
    ValidationError: 422,
    NotFoundError: 404,
    AuthorizationError: 403,
    StateError: 409,
    LoanCodeExhaustedError: 503,
    DirectoryAPIError: 503,
}


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Map domain errors to HTTP status codes with the message verbatim"""
    status_code = ERROR_STATUS_CODES.get(type(exc), 500)
    request_id = getattr(request.state, "request_id", "unknown")
    if status_code >= 500:
        logging.error(f"{type(exc).__name__}: {exc}", extra={"request_id": request_id})
    else:
        logging.warning(f"{type(exc).__name__}: {exc}", extra={"request_id": request_id})
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Cooperative Micro-Loan Service",
        description="Loan origination, daily repayment ledger and portfolio reporting",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(DomainException, domain_exception_handler)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(loans.router, prefix="/v1", tags=["loans"])
    app.include_router(payments.router, prefix="/v1", tags=["payments"])
    app.include_router(reports.router, prefix="/v1", tags=["reports"])

    return app


app = create_app()
