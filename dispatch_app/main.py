"""Main FastAPI application for the Dispatch backend."""
import logging

from fastapi import FastAPI

from dispatch_app import __version__
from dispatch_app.config import LOG_LEVEL
from dispatch_app.db.init import init_db
from dispatch_app.middleware.cors import add_cors_middleware
from dispatch_app.routers import dispatches, mcp, tasks, templates, users

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title="Dispatch API",
    description="Tasks with recurrence, daily dispatches with rollover, and date templates",
    version=__version__,
)

# Add CORS middleware
add_cors_middleware(app)


@app.on_event("startup")
async def startup_event():
    """Initialize database on startup."""
    try:
        init_db()
        logger.info("Database tables initialized successfully.")
    except Exception as e:
        logger.warning(f"Database initialization failed: {str(e)}")
        logger.warning("Server will continue but database operations may fail.")

    logger.info("Application startup complete.")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


@app.get("/")
async def root():
    """Root endpoint - API welcome message."""
    return {
        "title": "Dispatch API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


app.include_router(tasks.router, prefix="/api")  # /api/{user_id}/tasks
app.include_router(dispatches.router, prefix="/api")  # /api/{user_id}/dispatches
app.include_router(templates.router, prefix="/api")  # /api/{user_id}/template-presets, /api/templates/render
app.include_router(users.router, prefix="/api")  # /api/{user_id}/settings
app.include_router(mcp.router, prefix="/mcp")  # /mcp/tools


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "dispatch_app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
