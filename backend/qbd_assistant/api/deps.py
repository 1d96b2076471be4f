"""Common dependencies for API endpoints.

Each request gets its own Conductor client and LLM service; nothing is shared
between requests.

Usage:
    from qbd_assistant.api.deps import ConductorClientDep

    @router.get("/customers")
    async def list_customers(client: ConductorClientDep): ...
"""

import logging
from typing import Annotated, AsyncGenerator, Optional

from fastapi import Depends

from qbd_assistant.core.config import ConductorConfig, ConfigurationMissingError, settings
from qbd_assistant.core.errors import ConfigurationError
from qbd_assistant.services.assistant import InventoryAssistant
from qbd_assistant.services.bulk_import import BulkImporter
from qbd_assistant.services.composer import ResponseComposer
from qbd_assistant.services.conductor import ConductorClient
from qbd_assistant.services.intent import LLMIntentClassifier
from qbd_assistant.services.inventory import InventoryService
from qbd_assistant.services.llm import LLMService

logger = logging.getLogger(__name__)


# =============================================================================
# Conductor
# =============================================================================


def get_conductor_config() -> ConductorConfig:
    """Conductor settings; fails the request before any remote call if missing."""
    try:
        return settings.conductor_config()
    except ConfigurationMissingError as e:
        logger.error(f"Conductor is not configured: {e}")
        raise ConfigurationError(e.setting, str(e))


def get_optional_conductor_config() -> Optional[ConductorConfig]:
    """Conductor settings, or None when they are missing."""
    try:
        return settings.conductor_config()
    except ConfigurationMissingError as e:
        logger.warning(f"Conductor is not configured: {e}")
        return None


async def get_conductor_client(
    config: ConductorConfig = Depends(get_conductor_config),
) -> AsyncGenerator[ConductorClient, None]:
    """Conductor client closed at the end of the request."""
    async with ConductorClient(config) as client:
        yield client


async def get_optional_conductor_client(
    config: Optional[ConductorConfig] = Depends(get_optional_conductor_config),
) -> AsyncGenerator[Optional[ConductorClient], None]:
    if config is None:
        yield None
        return
    async with ConductorClient(config) as client:
        yield client


ConductorClientDep = Annotated[ConductorClient, Depends(get_conductor_client)]


# =============================================================================
# LLM
# =============================================================================


async def get_llm_service() -> AsyncGenerator[LLMService, None]:
    async with LLMService() as llm:
        yield llm


def get_intent_classifier(llm: LLMService = Depends(get_llm_service)) -> LLMIntentClassifier:
    return LLMIntentClassifier(llm)


def get_response_composer(llm: LLMService = Depends(get_llm_service)) -> ResponseComposer:
    return ResponseComposer(llm)


# =============================================================================
# Inventory
# =============================================================================


def get_inventory_service(
    client: Optional[ConductorClient] = Depends(get_optional_conductor_client),
    config: Optional[ConductorConfig] = Depends(get_optional_conductor_config),
) -> Optional[InventoryService]:
    """Inventory service, or None when Conductor is not configured."""
    if client is None or config is None:
        return None
    return InventoryService(client, config)


def get_inventory_assistant(
    inventory: Optional[InventoryService] = Depends(get_inventory_service),
    classifier: LLMIntentClassifier = Depends(get_intent_classifier),
    composer: ResponseComposer = Depends(get_response_composer),
) -> Optional[InventoryAssistant]:
    """Chat assistant, or None when Conductor is not configured."""
    if inventory is None:
        return None
    return InventoryAssistant(classifier, inventory, composer)


def get_bulk_importer(
    inventory: Optional[InventoryService] = Depends(get_inventory_service),
) -> Optional[BulkImporter]:
    """Bulk importer, or None when Conductor is not configured."""
    if inventory is None:
        return None
    return BulkImporter(inventory)


InventoryAssistantDep = Annotated[Optional[InventoryAssistant], Depends(get_inventory_assistant)]
BulkImporterDep = Annotated[Optional[BulkImporter], Depends(get_bulk_importer)]
