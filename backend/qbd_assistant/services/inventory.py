"""Inventory item operations shared by the chat assistant and bulk import.

Wraps the Conductor gateway with the QuickBooks Desktop rules for inventory
items:
- items are created only with a name and the three account IDs
- quantity on hand changes only through an inventory adjustment
- updates carry the revision number from a fresh read
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from qbd_assistant.core.config import ConductorConfig, ConfigurationMissingError
from qbd_assistant.core.logging import LoggerAdapter
from qbd_assistant.models.intent import IntentFilters
from qbd_assistant.models.inventory import (
    Barcode,
    CreateInventoryAdjustment,
    CreateInventoryItem,
    InventoryItemFields,
    UpdateInventoryItem,
)
from qbd_assistant.services.conductor import ConductorClient, Page

logger = logging.getLogger(__name__)

ADJUSTMENT_ACCOUNT_SETTING = "QUICKBOOKS_INVENTORY_ADJUSTMENT_ACCOUNT_ID"
NAME_SEARCH_LIMIT = 10


# =============================================================================
# Exceptions
# =============================================================================


class AdjustmentAccountMissingError(ConfigurationMissingError):
    """Raised when a quantity change is requested without an adjustment account."""

    def __init__(self):
        super().__init__(
            ADJUSTMENT_ACCOUNT_SETTING,
            f"To adjust quantity on hand, configure {ADJUSTMENT_ACCOUNT_SETTING} "
            "with the ID of your inventory adjustment account from the QuickBooks "
            "Desktop Chart of Accounts.",
        )


class InvalidItemDataError(Exception):
    """Raised when item data fails local validation; nothing was sent.

    Attributes:
        fields: ``(field path, message)`` pairs, field paths in camelCase
    """

    def __init__(self, fields: List[Tuple[str, str]]):
        self.fields = fields
        super().__init__(
            "Validation failed: " + ", ".join(f"{path}: {msg}" for path, msg in fields)
        )

    @property
    def paths(self) -> List[str]:
        return [path for path, _ in self.fields]

    @classmethod
    def from_validation_error(cls, exc: ValidationError) -> "InvalidItemDataError":
        fields = []
        for entry in exc.errors():
            path = ".".join(
                to_camel(part) if isinstance(part, str) else str(part)
                for part in entry["loc"]
            )
            fields.append((path, entry["msg"]))
        return cls(fields)


# =============================================================================
# Results
# =============================================================================


@dataclass
class UpdateResult:
    """Records produced by an inventory item update.

    Attributes:
        record: The item as fetched before any write
        adjustment: Inventory adjustment created for a quantity change, if any
        updated: The item as returned by the update call, if one was made
    """
    record: Dict[str, Any]
    adjustment: Optional[Dict[str, Any]] = None
    updated: Optional[Dict[str, Any]] = None

    @property
    def result(self) -> Dict[str, Any]:
        """The most specific record produced: update, then adjustment, then fetch."""
        return self.updated or self.adjustment or self.record


# =============================================================================
# Inventory Service
# =============================================================================


class InventoryService:
    """Inventory item operations against one QuickBooks Desktop connection."""

    def __init__(self, client: ConductorClient, config: ConductorConfig):
        self.client = client
        self.config = config
        self.log = LoggerAdapter(logger, {"endUserId": config.end_user_id})

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_item(self, item_id: str) -> Dict[str, Any]:
        """Fetch one inventory item by ID."""
        return await self.client.inventory_items.retrieve(item_id)

    async def find_by_name(self, name: str) -> List[Dict[str, Any]]:
        """Find inventory items whose name contains ``name`` (first 10 matches)."""
        page = await self.client.inventory_items.list(
            nameContains=name, limit=NAME_SEARCH_LIMIT
        )
        self.log.bind(name="inventory.find_by_name").info(
            f"Found {len(page.data)} item(s) matching {name!r}"
        )
        return page.data

    async def list_items(self, filters: Optional[IntentFilters] = None) -> Page:
        """List inventory items, passing the filters through unchanged.

        With an explicit ``limit`` a single page is returned; otherwise every
        page is fetched.
        """
        params = filters.to_payload() if filters else {}
        if params.get("limit") is not None:
            return await self.client.inventory_items.list(**params)

        items = await self.client.inventory_items.list_all(**params)
        self.log.bind(name="inventory.list_items").info(
            f"Fetched all inventory items - totalCount={len(items)}"
        )
        return Page(data=items)

    # =========================================================================
    # Writes
    # =========================================================================

    async def create_item(self, fields: InventoryItemFields) -> Dict[str, Any]:
        """Validate and create an inventory item.

        Raises:
            InvalidItemDataError: If the fields do not form a valid item
        """
        body = self._to_body(CreateInventoryItem, fields.provided())
        created = await self.client.inventory_items.create(body.to_payload())
        self.log.bind(name="inventory.create_item", itemId=created.get("id")).info(
            "Created inventory item"
        )
        return created

    def require_adjustment_account(self) -> str:
        """Return the adjustment account ID.

        Raises:
            AdjustmentAccountMissingError: If it is not configured
        """
        if not self.config.adjustment_account_id:
            raise AdjustmentAccountMissingError()
        return self.config.adjustment_account_id

    async def update_item(
        self,
        item_id: str,
        fields: InventoryItemFields,
        source: str = "chat interface",
        exclude: Tuple[str, ...] = (),
    ) -> UpdateResult:
        """Apply a partial update to an inventory item.

        The adjustment account is checked before any remote call. The item is
        always re-fetched for its current revision number. A quantity change
        becomes a single-line inventory adjustment; the remaining fields go
        through an item update, which is skipped when none remain.

        Args:
            item_id: ID of the item to update
            fields: Requested field values; None values are ignored
            source: Where the change came from, used in the adjustment memo
            exclude: Field names to leave out of the item update

        Returns:
            UpdateResult with the fetched record and any records written

        Raises:
            AdjustmentAccountMissingError: Quantity change without an adjustment account
            InvalidItemDataError: If the update fields fail validation
        """
        log = self.log.bind(name="inventory.update_item", itemId=item_id)

        account_id = None
        if fields.quantity_on_hand is not None:
            account_id = self.require_adjustment_account()

        current = await self.get_item(item_id)

        changes = fields.provided(exclude=("quantity_on_hand",) + tuple(exclude))
        update_body = None
        if changes:
            update_body = self._to_body(
                UpdateInventoryItem,
                {"revision_number": current.get("revisionNumber"), **changes},
            )

        result = UpdateResult(record=current)

        if account_id is not None:
            adjustment = CreateInventoryAdjustment.model_validate({
                "account_id": account_id,
                "transaction_date": date.today().isoformat(),
                "memo": f"Quantity adjustment via {source} for {current.get('name') or item_id}",
                "lines": [{
                    "item_id": item_id,
                    "adjust_quantity": {"new_quantity": fields.quantity_on_hand},
                }],
            })
            result.adjustment = await self.client.inventory_adjustments.create(
                adjustment.to_payload()
            )
            log.info(f"Adjusted quantity on hand to {fields.quantity_on_hand}")

        if update_body is not None:
            result.updated = await self.client.inventory_items.update(
                item_id, update_body.to_payload()
            )
            log.info(f"Updated fields: {', '.join(to_camel(k) for k in changes)}")
        else:
            log.info("No item fields to update")

        return result

    def _to_body(self, schema, values: Dict[str, Any]):
        """Validate values against a request schema, converting the barcode string."""
        if isinstance(values.get("barcode"), str):
            values = {**values, "barcode": Barcode(value=values["barcode"])}
        try:
            return schema.model_validate(values)
        except ValidationError as e:
            raise InvalidItemDataError.from_validation_error(e) from e
