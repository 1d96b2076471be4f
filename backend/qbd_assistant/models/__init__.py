"""Request, response and record contracts.

Shapes and constraints of the payloads exchanged with API clients and the
Conductor QuickBooks Desktop API.
"""

from qbd_assistant.models.base import QuickBooksModel
from qbd_assistant.models.customer import (
    Address,
    CreateCustomer,
    ListCustomersQuery,
    UpdateCustomer,
)
from qbd_assistant.models.intent import (
    ChatOutcome,
    IntentFilters,
    OperationType,
    OutcomeKind,
    ParsedIntent,
)
from qbd_assistant.models.inventory import (
    AdjustQuantity,
    Barcode,
    CreateInventoryAdjustment,
    CreateInventoryItem,
    InventoryAdjustmentLine,
    InventoryItemFields,
    UpdateInventoryItem,
)

__all__ = [
    "QuickBooksModel",
    "Address",
    "CreateCustomer",
    "UpdateCustomer",
    "ListCustomersQuery",
    "Barcode",
    "InventoryItemFields",
    "CreateInventoryItem",
    "UpdateInventoryItem",
    "AdjustQuantity",
    "InventoryAdjustmentLine",
    "CreateInventoryAdjustment",
    "OperationType",
    "IntentFilters",
    "ParsedIntent",
    "OutcomeKind",
    "ChatOutcome",
]
