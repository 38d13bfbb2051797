"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from invoice_gateway.api.middleware import MetricsMiddleware, RequestIDMiddleware
from invoice_gateway.api.v1 import audit, invoices, late_charges
from invoice_gateway.config import settings
from invoice_gateway.infrastructure.database.session import init_db
from invoice_gateway.infrastructure.observability.logging import setup_logging

setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Invoice Gateway",
        description="Credit card invoice, installment and late-charge reconciliation service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # last added = first executed
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.on_event("startup")
    def create_tables() -> None:
        init_db()

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(invoices.router, prefix="/v1", tags=["invoices"])
    app.include_router(late_charges.router, prefix="/v1", tags=["late-charges"])
    app.include_router(audit.router, prefix="/v1", tags=["audit"])

    return app


app = create_app()
