"""
FastAPI application for IntelliBrowse.

Usage:
    # Development server with auto-reload
    uvicorn intellibrowse.api.main:app --reload --host 0.0.0.0 --port 3001

    # Debug mode (verbose logging)
    LOG_LEVEL=DEBUG uvicorn intellibrowse.api.main:app --reload --port 3001
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import config
from ..tracing import init_tracing_client, shutdown_tracing
from .routes import agent, health


def configure_logging():
    """Configure logging based on the configured log level."""
    log_level = getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("intellibrowse").setLevel(log_level)


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    logger.info("Starting IntelliBrowse API server")

    logger.info("=" * 60)
    logger.info("AGENT CONFIGURATION")
    logger.info(f"  Base URL: {config.model.base_url}")
    logger.info(f"  Model: {config.model.model}")
    logger.info(f"  Temperature: {config.model.temperature}")
    logger.info(f"  Reasoning effort: {config.model.reasoning_effort}")
    logger.info(f"  Max turns: {config.agent.max_turns}")
    logger.info(f"  Session TTL: {config.sessions.ttl_seconds}s")

    logger.info("-" * 60)
    logger.info("COLLABORATORS")
    logger.info(f"  Browser: {'mock' if config.browser.use_mock else config.browser.service_url}")
    logger.info(f"  Screen parser: {config.screen_parser.endpoint}")

    logger.info("-" * 60)
    logger.info("LANGFUSE OBSERVABILITY")
    tracing_client = init_tracing_client(
        public_key=config.langfuse.public_key,
        secret_key=config.langfuse.secret_key,
        host=config.langfuse.host,
        debug=config.langfuse.debug,
    )
    if tracing_client.enabled:
        logger.info("  Status: ENABLED")
        logger.info(f"  Host: {config.langfuse.host or 'https://cloud.langfuse.com'}")
    else:
        logger.info("  Status: DISABLED")
        if tracing_client.error:
            logger.info(f"  Reason: {tracing_client.error}")
    logger.info("=" * 60)

    yield

    logger.info("Shutting down IntelliBrowse API server")
    await agent.shutdown_agent_service()
    shutdown_tracing()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="IntelliBrowse API",
        description="Autonomous web agent: give it an instruction, it browses and answers.",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(agent.router, tags=["Agent"])

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Log validation errors before returning 400 response."""
        logger.warning(
            f"Validation error on {request.method} {request.url.path}: {exc.errors()}"
        )
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Invalid request", "detail": jsonable_encoder(exc.errors())},
        )

    return app


app = create_app()


def run_server():
    """Run the server using uvicorn."""
    import uvicorn

    uvicorn.run(
        "intellibrowse.api.main:app",
        host=config.server.host,
        port=config.server.port,
        reload=config.server.reload,
        workers=1 if config.server.reload else config.server.workers,
    )


if __name__ == "__main__":
    run_server()
