"""FastAPI application factory"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from creator_wallet.api.errors import register_exception_handlers
from creator_wallet.api.middleware import MetricsMiddleware, RequestIDMiddleware
from creator_wallet.api.v1 import billing, boxes, coupons, creator, rewards, sales, wallet
from creator_wallet.config import settings
from creator_wallet.infrastructure.database.session import init_db
from creator_wallet.infrastructure.observability.logging import setup_logging

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.auto_create_schema:
        init_db()
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Creator Wallet",
        description="Company wallets, creator payouts, rewards and sales attribution",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(wallet.router, prefix="/v1", tags=["wallet"])
    app.include_router(boxes.router, prefix="/v1", tags=["boxes"])
    app.include_router(billing.router, prefix="/v1", tags=["billing"])
    app.include_router(creator.router, prefix="/v1", tags=["creator"])
    app.include_router(rewards.router, prefix="/v1", tags=["rewards"])
    app.include_router(coupons.router, prefix="/v1", tags=["coupons"])
    app.include_router(sales.router, prefix="/v1", tags=["sales"])

    return app


app = create_app()
