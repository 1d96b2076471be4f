"""Health check endpoints with service status.

Reports the status of the services the assistant depends on: the
QuickBooks Desktop connection (through Conductor) and the LLM provider.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from qbd_assistant.api.deps import get_llm_service, get_optional_conductor_config
from qbd_assistant.core.config import ConductorConfig
from qbd_assistant.services.conductor import ConductorClient, ConductorError
from qbd_assistant.services.llm import LLMService

logger = logging.getLogger(__name__)

router = APIRouter()


class ServiceStatus(BaseModel):
    """Status of an individual service."""
    available: bool
    message: Optional[str] = None
    latency_ms: Optional[float] = None


class HealthResponse(BaseModel):
    """Health check response with all service statuses."""
    status: str  # "healthy", "degraded", "unhealthy"
    timestamp: str
    version: str
    services: Dict[str, ServiceStatus]


async def check_quickbooks(config: Optional[ConductorConfig]) -> ServiceStatus:
    """Check the QuickBooks Desktop connection."""
    if config is None:
        return ServiceStatus(available=False, message="Conductor is not configured")

    try:
        start = datetime.now()
        async with ConductorClient(config) as client:
            await client.health_check()
        latency = (datetime.now() - start).total_seconds() * 1000
        return ServiceStatus(available=True, latency_ms=latency)
    except ConductorError as e:
        logger.error(f"QuickBooks Desktop health check failed: {e}")
        return ServiceStatus(
            available=False,
            message=e.user_facing_message or str(e),
        )


async def check_llm(llm: LLMService) -> ServiceStatus:
    """Check the configured LLM provider."""
    start = datetime.now()
    health = await llm.health_check()
    latency = (datetime.now() - start).total_seconds() * 1000

    provider = llm.config.default_provider
    if health.get(provider, False):
        return ServiceStatus(available=True, latency_ms=latency)
    return ServiceStatus(available=False, message=f"{provider} is not responding")


@router.get("/health", response_model=HealthResponse)
async def health_check(
    config: Optional[ConductorConfig] = Depends(get_optional_conductor_config),
    llm: LLMService = Depends(get_llm_service),
) -> HealthResponse:
    """Comprehensive health check endpoint.

    Status values:
    - "healthy": QuickBooks Desktop and the LLM are available
    - "degraded": QuickBooks Desktop is available but the LLM is not, so
      only the REST endpoints work
    - "unhealthy": QuickBooks Desktop is unavailable
    """
    services = {
        "quickbooks": await check_quickbooks(config),
        "llm": await check_llm(llm),
    }

    if services["quickbooks"].available and services["llm"].available:
        status = "healthy"
    elif services["quickbooks"].available:
        status = "degraded"
    else:
        status = "unhealthy"

    return HealthResponse(
        status=status,
        timestamp=datetime.now(timezone.utc).isoformat(),
        version="0.1.0",
        services=services,
    )
