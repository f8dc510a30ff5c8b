"""
FastAPI Application Entry Point

Integrates:
  - Messenger webhook (subscription handshake + event delivery)
  - Health checks
  - Request logging middleware

Run: uvicorn main:app --host 0.0.0.0 --port 8445
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config import Config
from infra import InfraBootstrap, bootstrap_infrastructure
from transport.messenger.webhook import router as messenger_router

# Setup logging
logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(bootstrap: Optional[InfraBootstrap] = None) -> FastAPI:
    """
    Build the application.

    Args:
        bootstrap: Pre-built infrastructure. When omitted it is created from
            the environment at startup, and missing secrets abort startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        if app.state.bootstrap is None:
            app.state.bootstrap = bootstrap_infrastructure()
        logger.info("=" * 60)
        logger.info("Messenger bot starting up...")
        logger.info(f"Environment: {Config.ENVIRONMENT}")
        logger.info(f"Infrastructure: {app.state.bootstrap!r}")
        logger.info("=" * 60)

        yield

        # Shutdown
        logger.info("Messenger bot shutting down...")
        await app.state.bootstrap.shutdown()

    app = FastAPI(
        title="Messenger Bot",
        description="Messenger webhook bridged to a conversational action engine",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.bootstrap = bootstrap

    # Middleware for logging
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests."""
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(f"Request error: {str(e)}", exc_info=True)
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal server error"},
            )
        logger.info(f"{response.status_code} {request.method} {request.url.path}")
        return response

    # Include routers
    app.include_router(messenger_router)

    # Health check endpoints
    @app.get("/health/live")
    async def health_live():
        """Liveness probe."""
        return {"status": "alive"}

    @app.get("/health/ready")
    async def health_ready(request: Request):
        """Readiness probe: infrastructure built and configuration valid."""
        infra = request.app.state.bootstrap
        if infra is None:
            return JSONResponse(
                status_code=503,
                content={"status": "not_ready", "reason": "infrastructure not initialized"},
            )
        return {
            "status": "ready",
            "sessions": len(infra.sessions),
            "pending_dispatches": infra.orchestrator.pending,
        }

    @app.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Messenger Bot",
            "version": "1.0.0",
            "status": "running",
            "endpoints": {
                "webhook_verify": "GET /webhook",
                "webhook_events": "POST /webhook",
                "health_live": "GET /health/live",
                "health_ready": "GET /health/ready",
            },
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=Config.HOST,
        port=Config.PORT,
    )
