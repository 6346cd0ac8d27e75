"""API routes package."""

from server.routes.upload_routes import router as upload_router
from server.routes.artifact_routes import router as artifact_router

__all__ = ["upload_router", "artifact_router"]
