"""CORS configuration for browser clients."""
import logging

from fastapi.middleware.cors import CORSMiddleware

from dispatch_app.config import CORS_ORIGINS

logger = logging.getLogger(__name__)


def add_cors_middleware(app):
    """Add CORS middleware to the FastAPI application."""
    logger.info(f"CORS allowed origins: {CORS_ORIGINS}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
