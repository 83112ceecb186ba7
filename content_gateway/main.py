"""
Content Gateway: FastAPI Application

Serves harvested full texts for OpenAlex works:
1. Normalizes the work id (or accepts a DOI)
2. Checks the caller's API key and payment status
3. Resolves best_oa_location through OpenAlex and the DynamoDB index
4. Streams the artifact from R2, falling back to the S3 backup
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request

from . import __version__
from .config import GatewayConfig
from .errors import GatewayError
from .logging_setup import setup_logging
from .pipeline import GatewayServices
from .responses import error_response
from .routes import router as works_router, wants_json

logger = logging.getLogger(__name__)


def create_app(services: Optional[GatewayServices] = None) -> FastAPI:
    """
    Build the application.

    Args:
        services: Pre-built collaborators (tests); built from the environment
                  at startup when omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = getattr(app.state, "services", None) is None
        if owned:
            config = GatewayConfig.from_env()
            setup_logging(config.log_level, config.log_file)
            app.state.services = GatewayServices.from_config(config)

        logger.info("=" * 60)
        logger.info(f"  CONTENT GATEWAY v{__version__} STARTED")
        logger.info(f"  Primary store: {app.state.services.config.primary_store}")
        logger.info(f"  AWS region: {app.state.services.config.aws_region}")
        logger.info("=" * 60)
        yield
        if owned:
            await app.state.services.aclose()
        logger.info("CONTENT GATEWAY SHUTTING DOWN")

    app = FastAPI(
        title="Content Gateway",
        description="Harvested PDF and GROBID XML delivery for OpenAlex works",
        version=__version__,
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        if exc.status_code >= 500:
            logger.error(f"[HTTP] {exc.status_code} {exc.code} for {request.url.path}: {exc.context}")
        else:
            logger.info(f"[HTTP] {exc.status_code} {exc.code}: {exc.message}")
        return error_response(wants_json(request), exc)

    @app.get("/health")
    async def health():
        """Simple health check endpoint."""
        return {"status": "healthy", "timestamp": datetime.now().isoformat()}

    # Catch-all works router goes last
    app.include_router(works_router)
    return app


app = create_app()
