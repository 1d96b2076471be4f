"""User-facing reply text for inventory operations."""

import json
import logging
from typing import Any, Dict, List, Optional

from qbd_assistant.services.llm import LLMError, LLMService, Message

logger = logging.getLogger(__name__)


RESPONSE_SYSTEM_PROMPT = """You are a helpful assistant for QuickBooks Desktop inventory management.

Generate a concise, friendly response to the user based on the operation result.

- If successful, confirm what was done and show key details
- If failed, explain the error in simple terms and suggest what to do
- Keep responses brief (2-3 sentences max)
- Use a professional but friendly tone
- Format data in a readable way"""

NO_ITEMS_REPLY = "No inventory items found matching your criteria."


def format_item_line(index: int, item: Dict[str, Any]) -> str:
    """Format one inventory item as ``N. name | SKU: x | Price: $y | Qty: z | ID: id``."""
    parts = [f"{index}. {item.get('name') or item.get('fullName')}"]
    if item.get("sku"):
        parts.append(f"SKU: {item['sku']}")
    if item.get("salesPrice"):
        parts.append(f"Price: ${item['salesPrice']}")
    if item.get("quantityOnHand") is not None:
        parts.append(f"Qty: {item['quantityOnHand']}")
    parts.append(f"ID: {item.get('id')}")
    return " | ".join(parts)


class ResponseComposer:
    """Compose chat replies: a local template for lists, the LLM for the rest."""

    def __init__(self, llm: LLMService, model: Optional[str] = None):
        self.llm = llm
        self.model = model or llm.config.response_model

    def format_item_list(self, items: List[Dict[str, Any]]) -> str:
        """Render a list result without calling the LLM."""
        if not items:
            return NO_ITEMS_REPLY

        count = len(items)
        lines = "\n".join(
            format_item_line(idx, item) for idx, item in enumerate(items, start=1)
        )
        return f"Found {count} inventory item{'s' if count > 1 else ''}:\n\n{lines}"

    async def compose(
        self,
        operation: str,
        success: bool,
        data: Any = None,
        error: Optional[str] = None,
    ) -> str:
        """Phrase the outcome of an operation for the user.

        Falls back to a fixed sentence when the LLM call fails.

        Args:
            operation: Operation name (create, read, update, unknown)
            success: Whether the operation succeeded
            data: Result data to describe
            error: Error message, for failed operations

        Returns:
            Reply text
        """
        lines = [f"Operation: {operation}", f"Success: {str(success).lower()}"]
        if data:
            lines.append(f"Data: {json.dumps(data, indent=2, default=str)}")
        if error:
            lines.append(f"Error: {error}")
        lines.append("")
        lines.append("Generate a response message for the user.")

        try:
            reply = await self.llm.chat(
                [
                    Message(role="system", content=RESPONSE_SYSTEM_PROMPT),
                    Message(role="user", content="\n".join(lines)),
                ],
                model=self.model,
                temperature=0.7,
                max_tokens=300,
            )
            return reply or "Operation completed."
        except LLMError as e:
            logger.error(f"Failed to generate response for {operation}: {e}")
            if success:
                return f"Successfully performed {operation} operation."
            return f"Failed to perform {operation} operation: {error}"
