"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from installment_ledger.api.middleware import RequestIDMiddleware, MetricsMiddleware
from installment_ledger.api.v1 import customers, invoices
from installment_ledger.infrastructure.observability.logging import setup_logging
from installment_ledger.config import settings

setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Installment Ledger",
        description="Invoicing, installment credit and customer statement service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # last added = first executed
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(customers.router, prefix="/v1", tags=["customers"])
    app.include_router(invoices.router, prefix="/v1", tags=["invoices"])

    return app


app = create_app()
