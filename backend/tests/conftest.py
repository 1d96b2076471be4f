"""Pytest configuration and fixtures for tests.

Provides a Conductor config, a fake Conductor client whose resource methods
are AsyncMocks, and helpers for building inventory records and intents.
"""

import os

# Set test environment variables BEFORE any app imports
# This must happen at the top of conftest.py before any other imports
os.environ["CONDUCTOR_API_KEY"] = "sk_test_conductor"
os.environ["CONDUCTOR_END_USER_ID"] = "end_usr_test"
os.environ["QUICKBOOKS_INVENTORY_ADJUSTMENT_ACCOUNT_ID"] = "80000020-1111111111"
os.environ["OPENAI_API_KEY"] = "sk-test-openai"

from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from qbd_assistant.core.config import ConductorConfig
from qbd_assistant.models.intent import ParsedIntent
from qbd_assistant.services.composer import ResponseComposer
from qbd_assistant.services.conductor import Page
from qbd_assistant.services.inventory import InventoryService


ADJUSTMENT_ACCOUNT_ID = "80000020-1111111111"


def make_item(item_id: str, name: str, **fields: Any) -> Dict[str, Any]:
    """Build an inventory item record as Conductor returns it."""
    return {
        "id": item_id,
        "objectType": "qbd_inventory_item",
        "name": name,
        "fullName": name,
        "revisionNumber": fields.pop("revisionNumber", "1700000000"),
        "isActive": True,
        **fields,
    }


def make_intent(operation: str, **fields: Any) -> ParsedIntent:
    """Build a ParsedIntent from camelCase keys, as the classifier would."""
    return ParsedIntent.model_validate({"operation": operation, **fields})


def make_resource() -> MagicMock:
    resource = MagicMock()
    resource.list = AsyncMock(return_value=Page())
    resource.list_all = AsyncMock(return_value=[])
    resource.retrieve = AsyncMock()
    resource.create = AsyncMock()
    resource.update = AsyncMock()
    return resource


@pytest.fixture
def conductor_config() -> ConductorConfig:
    return ConductorConfig(
        api_key="sk_test_conductor",
        end_user_id="end_usr_test",
        adjustment_account_id=ADJUSTMENT_ACCOUNT_ID,
    )


@pytest.fixture
def fake_conductor() -> MagicMock:
    """Conductor client stand-in with AsyncMock resource methods."""
    client = MagicMock()
    client.customers = make_resource()
    client.inventory_items = make_resource()
    client.inventory_adjustments = make_resource()
    client.accounts = make_resource()
    client.health_check = AsyncMock(return_value={"duration": 42})
    return client


@pytest.fixture
def inventory_service(fake_conductor, conductor_config) -> InventoryService:
    return InventoryService(fake_conductor, conductor_config)


@pytest.fixture
def inventory_service_without_adjustment_account(fake_conductor) -> InventoryService:
    config = ConductorConfig(api_key="sk_test_conductor", end_user_id="end_usr_test")
    return InventoryService(fake_conductor, config)


@pytest.fixture
def fake_llm() -> MagicMock:
    llm = MagicMock()
    llm.config.intent_model = "gpt-4o-2024-08-06"
    llm.config.response_model = "gpt-4o-mini"
    llm.chat = AsyncMock(return_value="composed reply")
    return llm


@pytest.fixture
def composer(fake_llm) -> ResponseComposer:
    return ResponseComposer(fake_llm)


@pytest.fixture
def fake_classifier() -> MagicMock:
    classifier = MagicMock()
    classifier.classify = AsyncMock()
    return classifier


def page_of(items: List[Dict[str, Any]], next_cursor: Optional[str] = None) -> Page:
    return Page(data=items, next_cursor=next_cursor, has_more=next_cursor is not None)
