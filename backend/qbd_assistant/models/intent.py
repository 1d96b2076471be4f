"""Parsed chat intents and chat outcomes."""

from enum import Enum
from typing import Any, List, Literal, Optional

from pydantic import Field

from qbd_assistant.models.base import QuickBooksModel
from qbd_assistant.models.inventory import InventoryItemFields


class OperationType(str, Enum):
    """Operations the assistant can perform on inventory items."""
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    LIST = "list"
    UNKNOWN = "unknown"


class IntentFilters(QuickBooksModel):
    """Filters extracted for list operations."""
    name_contains: Optional[str] = None
    name_starts_with: Optional[str] = None
    name_ends_with: Optional[str] = None
    status: Optional[Literal["active", "inactive", "all"]] = None
    limit: Optional[int] = Field(None, ge=1)


class ParsedIntent(QuickBooksModel):
    """Structured operation extracted from a chat message."""
    operation: OperationType
    intent: Optional[str] = Field(None, description="What the user wants to do")
    item_id: Optional[str] = Field(None, description="Item ID for read/update operations")
    item_name: Optional[str] = Field(None, description="Item name for search or identification")
    data: Optional[InventoryItemFields] = None
    filters: Optional[IntentFilters] = None
    needs_account_ids: Optional[bool] = None
    missing_fields: Optional[List[str]] = None

    @property
    def fields(self) -> InventoryItemFields:
        """Extracted field values, empty when none were given."""
        return self.data or InventoryItemFields()


class OutcomeKind(str, Enum):
    """Terminal outcome of handling one chat message or upload."""
    RESULT = "result"
    DISAMBIGUATION = "disambiguation"
    MISSING_FIELDS = "missing_fields"
    NOT_FOUND = "not_found"
    CONFIGURATION_MISSING = "configuration_missing"
    UNKNOWN = "unknown"
    ERROR = "error"


class ChatOutcome(QuickBooksModel):
    """Reply to a chat message, with the data behind it."""
    kind: OutcomeKind
    success: bool
    reply: str
    data: Optional[Any] = None
    error: Optional[str] = None
    parsed_operation: Optional[ParsedIntent] = None
    needs_account_ids: Optional[bool] = None
    missing_fields: List[str] = Field(default_factory=list)
