"""Chat assistant for QuickBooks Desktop inventory items.

Resolves a chat message into one inventory operation and runs it:

1. The classifier turns the text into a ParsedIntent.
2. Item references by name are resolved with a ``nameContains`` search;
   several matches end the turn with a numbered list to pick from.
3. The operation runs against QuickBooks Desktop, with quantity changes
   going through an inventory adjustment.
4. The composer phrases the reply.

Each message is handled independently. Nothing is retried.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from qbd_assistant.models.intent import ChatOutcome, OperationType, OutcomeKind, ParsedIntent
from qbd_assistant.services.composer import ResponseComposer
from qbd_assistant.services.intent import IntentClassifier
from qbd_assistant.services.inventory import (
    AdjustmentAccountMissingError,
    InvalidItemDataError,
    InventoryService,
)

logger = logging.getLogger(__name__)


EXAMPLE_COMMANDS = "\n".join([
    "Examples:",
    '- "Create a new item called Widget with price $50"',
    '- "Update Widget price to $75"',
    '- "Show me item with ID 12345"',
    '- "List all active items"',
])

CREATE_FIELD_LABELS = {
    "name": "Name",
    "incomeAccountId": "Income Account ID (for sales revenue tracking)",
    "cogsAccountId": "COGS Account ID (for cost of goods sold)",
    "assetAccountId": "Asset Account ID (for inventory asset tracking)",
}


def format_matches(items: List[Dict[str, Any]], show_price: bool = False) -> str:
    """Enumerate candidate items as ``N. name (ID: id)``, 1-based."""
    lines = []
    for idx, item in enumerate(items, start=1):
        line = f"{idx}. {item.get('name') or item.get('fullName')} (ID: {item.get('id')})"
        if show_price and item.get("salesPrice"):
            line += f" - ${item['salesPrice']}"
        lines.append(line)
    return "\n".join(lines)


class InventoryAssistant:
    """Handle inventory chat messages end to end.

    Attributes:
        classifier: Turns text into a ParsedIntent
        inventory: Inventory operations for the configured connection
        composer: Phrases replies
    """

    def __init__(
        self,
        classifier: IntentClassifier,
        inventory: InventoryService,
        composer: ResponseComposer,
    ):
        self.classifier = classifier
        self.inventory = inventory
        self.composer = composer

    async def handle_message(self, text: str) -> ChatOutcome:
        """Handle one chat message.

        Args:
            text: The user's message

        Returns:
            ChatOutcome describing what happened; exceptions from the
            classifier or QuickBooks become an ``error`` outcome
        """
        if not text or not text.strip():
            return ChatOutcome(
                kind=OutcomeKind.UNKNOWN,
                success=False,
                error="No message provided",
                reply="Please provide a message or upload an Excel file.",
            )

        try:
            intent = await self.classifier.classify(text)

            if intent.operation == OperationType.CREATE:
                return await self._create(intent)
            if intent.operation == OperationType.READ:
                return await self._read(intent)
            if intent.operation == OperationType.UPDATE:
                return await self._update(intent)
            if intent.operation == OperationType.LIST:
                return await self._list(intent)
            return self._unknown(intent)

        except Exception as e:
            logger.error(f"Failed to handle chat message: {e}")
            error = str(e) or "Unknown error occurred"
            reply = await self.composer.compose("unknown", success=False, error=error)
            return ChatOutcome(
                kind=OutcomeKind.ERROR,
                success=False,
                error=error,
                reply=reply,
            )

    # =========================================================================
    # Operations
    # =========================================================================

    def _unknown(self, intent: ParsedIntent) -> ChatOutcome:
        return ChatOutcome(
            kind=OutcomeKind.UNKNOWN,
            success=False,
            error="Could not understand the request",
            reply=(
                "I'm not sure what you want me to do. "
                f"{intent.intent or 'Could you please rephrase your request?'}\n\n"
                f"{EXAMPLE_COMMANDS}"
            ),
            parsed_operation=intent,
        )

    async def _create(self, intent: ParsedIntent) -> ChatOutcome:
        fields = intent.fields
        missing = fields.missing_for_create()

        if missing:
            known = [f"- Name: {fields.name or 'Not specified'}"]
            if fields.sales_price:
                known.append(f"- Sales Price: ${fields.sales_price}")
            if fields.purchase_cost:
                known.append(f"- Purchase Cost: ${fields.purchase_cost}")
            if fields.sku:
                known.append(f"- SKU: {fields.sku}")

            needed = "\n".join(f"- {CREATE_FIELD_LABELS[name]}" for name in missing)
            return ChatOutcome(
                kind=OutcomeKind.MISSING_FIELDS,
                success=False,
                error="Missing required fields",
                reply=(
                    "To create an inventory item, I still need the following from "
                    f"your QuickBooks Desktop:\n{needed}\n\n"
                    "Please provide them, or create the item directly in QuickBooks "
                    "Desktop with the following information:\n" + "\n".join(known)
                ),
                parsed_operation=intent,
                needs_account_ids=any(name != "name" for name in missing),
                missing_fields=missing,
            )

        try:
            created = await self.inventory.create_item(fields)
        except InvalidItemDataError as e:
            return ChatOutcome(
                kind=OutcomeKind.MISSING_FIELDS,
                success=False,
                error="Validation failed",
                reply=f"Missing required fields: {', '.join(e.paths)}",
                parsed_operation=intent,
                missing_fields=e.paths,
            )

        return await self._result("create", intent, created)

    async def _read(self, intent: ParsedIntent) -> ChatOutcome:
        item_id, outcome = await self._resolve_item(intent, verb="retrieve", show_price=True)
        if outcome is not None:
            return outcome

        item = await self.inventory.get_item(item_id)
        return await self._result("read", intent, item)

    async def _update(self, intent: ParsedIntent) -> ChatOutcome:
        fields = intent.fields

        try:
            if fields.quantity_on_hand is not None:
                self.inventory.require_adjustment_account()

            item_id, outcome = await self._resolve_item(intent, verb="update")
            if outcome is not None:
                return outcome

            update = await self.inventory.update_item(item_id, fields)

        except AdjustmentAccountMissingError as e:
            return ChatOutcome(
                kind=OutcomeKind.CONFIGURATION_MISSING,
                success=False,
                error=f"Missing {e.setting}",
                reply=(
                    f"To adjust quantity on hand, you need to configure {e.setting} "
                    "in your environment variables.\n\n"
                    "In QuickBooks Desktop, find your inventory adjustment account ID "
                    "in the Chart of Accounts and add it to your .env file:\n"
                    f"{e.setting}=your_account_id_here"
                ),
                parsed_operation=intent,
                missing_fields=[e.setting],
            )
        except InvalidItemDataError as e:
            details = ", ".join(f"{path}: {msg}" for path, msg in e.fields)
            return ChatOutcome(
                kind=OutcomeKind.MISSING_FIELDS,
                success=False,
                error="Validation failed",
                reply=f"Invalid update data: {details}",
                parsed_operation=intent,
                missing_fields=e.paths,
            )

        return await self._result("update", intent, update.result)

    async def _list(self, intent: ParsedIntent) -> ChatOutcome:
        page = await self.inventory.list_items(intent.filters)
        return ChatOutcome(
            kind=OutcomeKind.RESULT,
            success=True,
            data={"data": page.data, "nextCursor": page.next_cursor},
            reply=self.composer.format_item_list(page.data),
            parsed_operation=intent,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _resolve_item(
        self,
        intent: ParsedIntent,
        verb: str,
        show_price: bool = False,
    ) -> Tuple[Optional[str], Optional[ChatOutcome]]:
        """Resolve the target item ID, or the outcome that ends the turn."""
        if intent.item_id:
            return intent.item_id, None

        if not intent.item_name:
            return None, ChatOutcome(
                kind=OutcomeKind.MISSING_FIELDS,
                success=False,
                error="Missing item identifier",
                reply=f"Please provide either an item ID or item name to {verb}.",
                parsed_operation=intent,
                missing_fields=["itemId"],
            )

        matches = await self.inventory.find_by_name(intent.item_name)

        if not matches:
            return None, ChatOutcome(
                kind=OutcomeKind.NOT_FOUND,
                success=False,
                error="Item not found",
                reply=(
                    f'I couldn\'t find any items matching "{intent.item_name}". '
                    "Please check the name and try again."
                ),
                parsed_operation=intent,
            )

        if len(matches) > 1:
            return None, ChatOutcome(
                kind=OutcomeKind.DISAMBIGUATION,
                success=False,
                error="Multiple items found",
                reply=(
                    f'I found {len(matches)} items matching "{intent.item_name}". '
                    "Please specify which one:\n\n"
                    f"{format_matches(matches, show_price=show_price)}\n\n"
                    "Reply with the exact item ID."
                ),
                data={"data": matches},
                parsed_operation=intent,
            )

        return matches[0]["id"], None

    async def _result(self, operation: str, intent: ParsedIntent, data: Any) -> ChatOutcome:
        reply = await self.composer.compose(operation, success=True, data=data)
        return ChatOutcome(
            kind=OutcomeKind.RESULT,
            success=True,
            data=data,
            reply=reply,
            parsed_operation=intent,
        )
