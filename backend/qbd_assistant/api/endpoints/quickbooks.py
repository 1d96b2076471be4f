"""QuickBooks Desktop REST endpoints: customers, accounts and connection health.

Every response uses the envelope ``{success, data, nextCursor?}`` on success
and ``{success: false, error, userFacingMessage, message}`` on failure.
Customer updates forward the caller's ``revisionNumber`` as-is; a stale one
is reported by QuickBooks as a conflict.
"""

import logging
from typing import Annotated, Any, Dict, List, Optional

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from qbd_assistant.api.deps import ConductorClientDep
from qbd_assistant.core.errors import ServiceUnavailableError, error_from_conductor
from qbd_assistant.models.customer import CreateCustomer, ListCustomersQuery, UpdateCustomer
from qbd_assistant.services.conductor import (
    ConductorConnectionError,
    ConductorError,
    ConductorTimeoutError,
)

logger = logging.getLogger(__name__)

router = APIRouter()

INVENTORY_ACCOUNT_TYPES = {
    "income",
    "cost_of_goods_sold",
    "other_current_asset",
    "other_expense",
}


def account_type(account: Dict[str, Any]) -> str:
    """Account type as snake_case, e.g. ``Cost of Goods Sold`` -> ``cost_of_goods_sold``."""
    return str(account.get("accountType") or "").strip().lower().replace(" ", "_")


# =============================================================================
# Response Models
# =============================================================================


class RecordResponse(BaseModel):
    """Envelope for a single record."""
    success: bool = True
    data: Dict[str, Any]


class RecordListResponse(BaseModel):
    """Envelope for one page of records."""
    success: bool = True
    data: List[Dict[str, Any]]
    next_cursor: Optional[str] = Field(None, serialization_alias="nextCursor")


class AccountListResponse(BaseModel):
    """Envelope for the account listing helper."""
    success: bool = True
    data: List[Dict[str, Any]]
    message: str


# =============================================================================
# Customers
# =============================================================================


@router.get(
    "/customers",
    response_model=RecordListResponse,
    summary="List customers",
)
async def list_customers(
    client: ConductorClientDep,
    query: Annotated[ListCustomersQuery, Query()],
) -> RecordListResponse:
    """Fetch one page of customers."""
    try:
        page = await client.customers.list(limit=query.limit, cursor=query.cursor)
    except ConductorError as e:
        raise error_from_conductor(e)

    return RecordListResponse(data=page.data, next_cursor=page.next_cursor)


@router.get(
    "/customers/{customer_id}",
    response_model=RecordResponse,
    summary="Get a customer",
)
async def get_customer(customer_id: str, client: ConductorClientDep) -> RecordResponse:
    """Fetch a single customer by ID."""
    try:
        customer = await client.customers.retrieve(customer_id)
    except ConductorError as e:
        raise error_from_conductor(e)

    return RecordResponse(data=customer)


@router.post(
    "/customers",
    response_model=RecordResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a customer",
)
async def create_customer(request: CreateCustomer, client: ConductorClientDep) -> RecordResponse:
    """Create a customer in QuickBooks Desktop."""
    try:
        customer = await client.customers.create(request.to_payload())
    except ConductorError as e:
        raise error_from_conductor(e)

    logger.info(f"Created customer {customer.get('id')}")
    return RecordResponse(data=customer)


@router.patch(
    "/customers/{customer_id}",
    response_model=RecordResponse,
    summary="Update a customer",
    description="Partial update. The body must carry the revisionNumber from the latest read.",
)
async def update_customer(
    customer_id: str,
    request: UpdateCustomer,
    client: ConductorClientDep,
) -> RecordResponse:
    """Update a customer with the caller's revision number."""
    try:
        customer = await client.customers.update(customer_id, request.to_payload())
    except ConductorError as e:
        raise error_from_conductor(e)

    logger.info(f"Updated customer {customer_id}")
    return RecordResponse(data=customer)


# =============================================================================
# Connection
# =============================================================================


@router.get(
    "/health-check",
    response_model=RecordResponse,
    summary="Check the QuickBooks Desktop connection",
)
async def quickbooks_health_check(client: ConductorClientDep) -> RecordResponse:
    """Run the Conductor health check for the configured end user.

    Any failure is reported as 503, including errors returned by
    QuickBooks Desktop itself.
    """
    try:
        result = await client.health_check()
    except (ConductorConnectionError, ConductorTimeoutError) as e:
        raise error_from_conductor(e)
    except ConductorError as e:
        raise ServiceUnavailableError(
            error="QuickBooks Desktop health check failed",
            user_facing_message=e.user_facing_message,
            message=str(e),
        )

    return RecordResponse(data=result)


@router.get(
    "/accounts",
    response_model=AccountListResponse,
    summary="List accounts for inventory setup",
)
async def list_accounts(client: ConductorClientDep) -> AccountListResponse:
    """List the accounts whose IDs are needed to create and adjust inventory items.

    Shows Income, Cost of Goods Sold, Other Current Asset and Other Expense
    accounts, or every account when none of those types are present.
    """
    try:
        page = await client.accounts.list(limit=150)
    except ConductorError as e:
        raise error_from_conductor(e)

    relevant = [a for a in page.data if account_type(a) in INVENTORY_ACCOUNT_TYPES]
    accounts = relevant or page.data

    return AccountListResponse(
        data=accounts,
        message=(
            f"Found {len(accounts)} accounts. Look for:\n"
            "- Income accounts for sales revenue\n"
            "- COGS accounts for cost of goods sold\n"
            "- Asset accounts for inventory tracking\n"
            "- Expense accounts for inventory adjustments"
        ),
    )
