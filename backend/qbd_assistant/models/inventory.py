"""Validation schemas for QuickBooks Desktop inventory items and adjustments."""

from typing import List, Optional

from pydantic import Field
from pydantic.alias_generators import to_camel

from qbd_assistant.models.base import QuickBooksModel


ACCOUNT_FIELDS = ("income_account_id", "cogs_account_id", "asset_account_id")


class Barcode(QuickBooksModel):
    """Barcode assignment for an inventory item."""
    value: str
    assign_even_if_used: Optional[bool] = None
    allow_override: Optional[bool] = None


class InventoryItemFields(QuickBooksModel):
    """Sparse set of inventory item field values.

    Produced by the intent classifier and the spreadsheet parser. Every field
    is optional; the create/update schemas decide what is required.
    """
    name: Optional[str] = None
    sku: Optional[str] = None
    sales_price: Optional[str] = None
    purchase_cost: Optional[str] = None
    sales_description: Optional[str] = None
    purchase_description: Optional[str] = None
    quantity_on_hand: Optional[float] = None
    reorder_point: Optional[float] = None
    maximum_quantity_on_hand: Optional[float] = None
    is_active: Optional[bool] = None
    barcode: Optional[str] = None
    income_account_id: Optional[str] = None
    cogs_account_id: Optional[str] = None
    asset_account_id: Optional[str] = None
    sales_tax_code_id: Optional[str] = None
    purchase_tax_code_id: Optional[str] = None
    preferred_vendor_id: Optional[str] = None
    class_id: Optional[str] = None
    parent_id: Optional[str] = None
    unit_of_measure_set_id: Optional[str] = None

    def provided(self, exclude: tuple = ()) -> dict:
        """Return the non-null values keyed by field name."""
        return {
            key: value
            for key, value in self.model_dump(exclude_none=True).items()
            if key not in exclude
        }

    def missing_for_create(self) -> List[str]:
        """Names (camelCase) of the fields required to create an item that are absent."""
        missing = []
        if not self.name:
            missing.append("name")
        for field_name in ACCOUNT_FIELDS:
            if not getattr(self, field_name):
                missing.append(to_camel(field_name))
        return missing


class CreateInventoryItem(QuickBooksModel):
    """Body for creating an inventory item."""
    name: str = Field(..., min_length=1, max_length=31)
    income_account_id: str = Field(..., min_length=1)
    cogs_account_id: str = Field(..., min_length=1)
    asset_account_id: str = Field(..., min_length=1)
    barcode: Optional[Barcode] = None
    is_active: bool = True
    class_id: Optional[str] = None
    parent_id: Optional[str] = None
    sku: Optional[str] = None
    unit_of_measure_set_id: Optional[str] = None
    sales_tax_code_id: Optional[str] = None
    sales_description: Optional[str] = None
    sales_price: Optional[str] = None
    purchase_description: Optional[str] = None
    purchase_cost: Optional[str] = None
    purchase_tax_code_id: Optional[str] = None
    preferred_vendor_id: Optional[str] = None
    reorder_point: Optional[float] = None
    maximum_quantity_on_hand: Optional[float] = None
    quantity_on_hand: Optional[float] = None
    total_value: Optional[str] = None
    inventory_date: Optional[str] = None
    external_id: Optional[str] = None


class UpdateInventoryItem(QuickBooksModel):
    """Body for updating an inventory item.

    Quantity on hand is not accepted here; QuickBooks only changes it through
    an inventory adjustment.
    """
    revision_number: str = Field(..., min_length=1)
    name: Optional[str] = Field(None, min_length=1, max_length=31)
    barcode: Optional[Barcode] = None
    is_active: Optional[bool] = None
    class_id: Optional[str] = None
    parent_id: Optional[str] = None
    sku: Optional[str] = None
    unit_of_measure_set_id: Optional[str] = None
    force_unit_of_measure_change: Optional[bool] = None
    sales_tax_code_id: Optional[str] = None
    sales_description: Optional[str] = None
    sales_price: Optional[str] = None
    income_account_id: Optional[str] = None
    update_existing_transactions_income_account: Optional[bool] = None
    purchase_description: Optional[str] = None
    purchase_cost: Optional[str] = None
    purchase_tax_code_id: Optional[str] = None
    cogs_account_id: Optional[str] = None
    update_existing_transactions_cogs_account: Optional[bool] = None
    preferred_vendor_id: Optional[str] = None
    asset_account_id: Optional[str] = None
    reorder_point: Optional[float] = None
    maximum_quantity_on_hand: Optional[float] = None


class AdjustQuantity(QuickBooksModel):
    """Quantity change for one adjustment line."""
    new_quantity: Optional[float] = None
    quantity_difference: Optional[float] = None
    serial_number: Optional[str] = None
    lot_number: Optional[str] = None
    expiration_date: Optional[str] = None
    inventory_site_location_id: Optional[str] = None


class InventoryAdjustmentLine(QuickBooksModel):
    """Single item line of an inventory adjustment."""
    item_id: str = Field(..., min_length=1)
    adjust_quantity: AdjustQuantity


class CreateInventoryAdjustment(QuickBooksModel):
    """Body for creating an inventory adjustment transaction."""
    account_id: str = Field(..., min_length=1)
    transaction_date: Optional[str] = None
    reference_number: Optional[str] = None
    memo: Optional[str] = None
    lines: List[InventoryAdjustmentLine] = Field(..., min_length=1)
