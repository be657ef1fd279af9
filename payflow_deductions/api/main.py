"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from payflow_deductions.api.middleware import RequestIDMiddleware, MetricsMiddleware
from payflow_deductions.api.sessions import DraftSessionStore
from payflow_deductions.api.v1 import drafts, reference
from payflow_deductions.infrastructure.observability.logging import setup_logging
from payflow_deductions.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Payflow Deduction Drafts",
        description="Deduction request and affordability assessment wizard service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.drafts = DraftSessionStore()

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(drafts.router, prefix="/v1", tags=["drafts"])
    app.include_router(reference.router, prefix="/v1", tags=["reference"])

    return app


app = create_app()
