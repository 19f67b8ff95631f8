"""Main entry point for the MCP client node service."""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from mcp_client_node import __version__
from mcp_client_node.api.routes import router
from mcp_client_node.core.config import settings
from mcp_client_node.core.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan management
    Handles startup and shutdown procedures
    """
    setup_logging()
    logger.info(
        "Starting MCP client node",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL,
    )
    yield
    logger.info("MCP client node stopped")


def create_app() -> FastAPI:
    """Create the FastAPI application"""
    app = FastAPI(
        title="MCP Client Node",
        description="Executes MCP tool, prompt and resource operations over stdio, SSE or HTTP",
        version=__version__,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )
    app.include_router(router)
    return app


app = create_app()


def main():
    """Run the service with uvicorn."""
    uvicorn.run(
        "mcp_client_node.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
