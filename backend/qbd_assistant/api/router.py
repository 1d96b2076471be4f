"""Main API router that aggregates all endpoint routers."""

from fastapi import APIRouter

from qbd_assistant.api.endpoints import chat, health, quickbooks

# Create main API router
api_router = APIRouter(prefix="/api/v1")

# Include QuickBooks Desktop router
api_router.include_router(quickbooks.router, prefix="/quickbooks", tags=["QuickBooks"])

# Include chat router
api_router.include_router(chat.router, prefix="/chat", tags=["Chat"])

# Include health router
api_router.include_router(health.router, tags=["Health"])


@api_router.get("/")
async def api_root():
    """API root endpoint."""
    return {
        "message": "QuickBooks Desktop Inventory Assistant API v1",
        "endpoints": {
            "quickbooks": "/api/v1/quickbooks",
            "chat": "/api/v1/chat",
            "health": "/api/v1/health",
        },
    }
