"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from pos_planner.api.middleware import RequestIDMiddleware, MetricsMiddleware
from pos_planner.api.v1 import checkout, directory, plan, receipts
from pos_planner.infrastructure.observability.logging import setup_logging
from pos_planner.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="POS Transaction Planner",
        description="Payment plan, installment schedule and checkout service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

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
    app.include_router(plan.router, prefix="/v1", tags=["plans"])
    app.include_router(checkout.router, prefix="/v1", tags=["checkout"])
    app.include_router(receipts.router, prefix="/v1", tags=["receipts"])
    app.include_router(directory.router, prefix="/v1", tags=["directory"])

    return app


app = create_app()
