"""Base model classes for QuickBooks Desktop request and response contracts."""

from typing import Any, Dict

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class QuickBooksModel(BaseModel):
    """Base model for payloads exchanged with Conductor and API clients.

    Fields are declared in snake_case and serialized in the camelCase used by
    the Conductor API. Undeclared keys are dropped on validation.

    Example:
        class Barcode(QuickBooksModel):
            value: str
            allow_override: Optional[bool] = None

        Barcode(value="123", allow_override=True).to_payload()
        # {"value": "123", "allowOverride": True}
    """

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "ignore",
        "coerce_numbers_to_str": True,
    }

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to a Conductor request body, omitting unset values."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
