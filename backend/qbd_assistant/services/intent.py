"""Intent classification for inventory chat messages.

Turns free text into a ParsedIntent by asking the LLM for a JSON object and
validating it against the ParsedIntent schema.
"""

import json
import logging
from typing import Optional, Protocol

from pydantic import ValidationError

from qbd_assistant.models.intent import ParsedIntent
from qbd_assistant.services.llm import LLMService, Message

logger = logging.getLogger(__name__)


INTENT_SYSTEM_PROMPT = """You are an AI assistant that helps users manage QuickBooks Desktop inventory items through natural language.

Your job is to parse user messages and determine:
1. What operation they want to perform (create, read, update, list)
2. Extract relevant data from their message
3. Identify if any required fields are missing

You must respond with valid JSON that matches this structure:
{
  "operation": "create" | "read" | "update" | "list" | "unknown",
  "intent": "description of what the user wants to do",
  "itemId": "optional item ID",
  "itemName": "optional item name",
  "data": { /* extracted data fields */ },
  "filters": { /* optional filter criteria */ },
  "needsAccountIds": true | false,
  "missingFields": ["list", "of", "missing", "fields"]
}

Allowed data fields: name, sku, salesPrice, purchaseCost, salesDescription,
purchaseDescription, quantityOnHand, reorderPoint, maximumQuantityOnHand,
isActive, barcode, incomeAccountId, cogsAccountId, assetAccountId,
salesTaxCodeId, purchaseTaxCodeId, preferredVendorId, classId, parentId,
unitOfMeasureSetId.
Allowed filters: nameContains, nameStartsWith, nameEndsWith,
status ("active" | "inactive" | "all"), limit.

IMPORTANT RULES:
- For CREATE operations, these fields are REQUIRED: name, incomeAccountId, cogsAccountId, assetAccountId
- If the user doesn't provide account IDs for CREATE, set needsAccountIds to true
- For UPDATE operations, you need either itemId or itemName to identify the item
- For READ operations, you need either itemId or itemName
- For LIST operations, extract any filter criteria mentioned
- Parse prices as strings in decimal format (e.g., "50.00", "19.99")
- Parse quantities as numbers
- Be flexible with synonyms (e.g., "price" -> salesPrice, "cost" -> purchaseCost)
- If the intent is unclear or you need more info, set operation to "unknown"

EXAMPLES:

"Create a new product called Widget with price $50"
-> operation: create, data: { name: "Widget", salesPrice: "50.00" }, needsAccountIds: true

"Add inventory item Gadget, SKU: GAD-001, cost $30, sell for $60"
-> operation: create, data: { name: "Gadget", sku: "GAD-001", purchaseCost: "30.00", salesPrice: "60.00" }, needsAccountIds: true

"Update Widget price to $55"
-> operation: update, itemName: "Widget", data: { salesPrice: "55.00" }

"Set Widget quantity to 40"
-> operation: update, itemName: "Widget", data: { quantityOnHand: 40 }

"Show me item with ID 80000001-1234567890"
-> operation: read, itemId: "80000001-1234567890"

"List all items containing 'Widget'"
-> operation: list, filters: { nameContains: "Widget" }

"Show active items"
-> operation: list, filters: { status: "active" }

"Deactivate the Gadget item"
-> operation: update, itemName: "Gadget", data: { isActive: false }"""


class IntentParseError(Exception):
    """Raised when the LLM output is not a valid ParsedIntent."""

    def __init__(self, message: str, raw: Optional[str] = None):
        super().__init__(message)
        self.raw = raw


class IntentClassifier(Protocol):
    """Anything that can turn a chat message into a ParsedIntent."""

    async def classify(self, text: str) -> ParsedIntent:
        ...


def _strip_code_fence(content: str) -> str:
    """Remove a surrounding Markdown code fence, if present."""
    content = content.strip()
    if content.startswith("```"):
        content = content.split("\n", 1)[1] if "\n" in content else ""
        if content.rstrip().endswith("```"):
            content = content.rstrip()[:-3]
    return content.strip()


class LLMIntentClassifier:
    """Classify chat messages with the intent model in JSON mode."""

    def __init__(self, llm: LLMService, model: Optional[str] = None):
        self.llm = llm
        self.model = model or llm.config.intent_model

    async def classify(self, text: str) -> ParsedIntent:
        """Parse a chat message into a structured operation.

        Args:
            text: The user's message

        Returns:
            ParsedIntent; uncertain input classifies as ``unknown``

        Raises:
            IntentParseError: If the model output is empty, not JSON, or
                does not match the ParsedIntent shape
            LLMError: If the model call fails
        """
        logger.info(f"Parsing inventory command ({len(text)} chars)")

        content = await self.llm.chat(
            [
                Message(role="system", content=INTENT_SYSTEM_PROMPT),
                Message(role="user", content=text),
            ],
            model=self.model,
            temperature=0.0,
            response_format={"type": "json_object"},
        )

        content = _strip_code_fence(content)
        if not content:
            raise IntentParseError("No response from the intent model")

        try:
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"Intent model returned invalid JSON: {e}")
            raise IntentParseError(f"Intent model returned invalid JSON: {e}", raw=content) from e

        if not isinstance(payload, dict):
            raise IntentParseError("Intent model returned a non-object JSON value", raw=content)

        try:
            parsed = ParsedIntent.model_validate(payload)
        except ValidationError as e:
            logger.error(f"Intent model output does not match the schema: {e}")
            raise IntentParseError(f"Intent model output does not match the schema: {e}", raw=content) from e

        logger.info(f"Parsed inventory command as {parsed.operation.value}")
        return parsed
