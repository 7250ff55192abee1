"""
Name: FastAPI Application Entry Point

Responsibilities:
  - Build the FastAPI application (create_app) with metadata and lifespan
  - Configure request context middleware and RFC7807 exception handlers
  - Mount the audit administration router
  - Expose health check and metrics endpoints

Collaborators:
  - RequestContextMiddleware: Request ID and logging context
  - audit_routes.router: integrity verification, chain status and export
  - infrastructure.db.pool: pool lifecycle (skipped in test env)

Notes:
  - The host application authenticates; it either sets request.state.actor
    or passes an actor_resolver(request) -> Actor | None to create_app().
  - /healthz follows Kubernetes health check convention
  - /metrics exposes Prometheus metrics
"""

from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request, Response

from ..container import get_audit_log_repository, is_test_env
from ..crosscutting.config import get_settings
from ..crosscutting.logger import logger
from ..crosscutting.metrics import get_metrics_response
from ..crosscutting.middleware import RequestContextMiddleware
from ..domain.permissions import Actor
from ..infrastructure.db.pool import close_pool, init_pool
from .audit_routes import router as audit_router
from .exception_handlers import register_exception_handlers

ActorResolver = Callable[[Request], Optional[Actor]]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle. Validates settings and initializes pool."""
    settings = get_settings()
    use_db = not is_test_env()

    if use_db:
        init_pool(
            database_url=settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            statement_timeout_ms=settings.db_statement_timeout_ms,
        )

    try:
        logger.info(
            "Hotel core API starting up",
            extra={
                "app_env": settings.app_env,
                "db_pool_min": settings.db_pool_min_size,
                "db_pool_max": settings.db_pool_max_size,
                "permission_cache_ttl_seconds": settings.permission_cache_ttl_seconds,
            },
        )
        yield
    finally:
        if use_db:
            close_pool()
        logger.info("Hotel core API shutting down")


def create_app(actor_resolver: Optional[ActorResolver] = None) -> FastAPI:
    app = FastAPI(
        title="Hotel Inventory Core",
        version="0.1.0",
        lifespan=lifespan,
        openapi_tags=[
            {
                "name": "audit",
                "description": "Audit chain integrity and export (requires audit permissions)",
            },
        ],
    )
    app.state.actor_resolver = actor_resolver

    app.add_middleware(RequestContextMiddleware)
    app.include_router(audit_router)
    register_exception_handlers(app)

    @app.get("/healthz")
    def healthz(request: Request):
        """
        Health check.

        Returns:
            ok: True if the audit store answered
            db: "connected" or "disconnected"
            request_id: Correlation ID for this request
        """
        db_status = "disconnected"
        try:
            get_audit_log_repository().read_head()
            db_status = "connected"
        except Exception as e:
            logger.warning("Health check: DB unavailable", extra={"error": str(e)})

        return {
            "ok": db_status == "connected",
            "db": db_status,
            "request_id": getattr(request.state, "request_id", None),
        }

    @app.get("/metrics")
    def metrics() -> Response:
        body, content_type = get_metrics_response()
        return Response(content=body, media_type=content_type)

    return app


app = create_app()
