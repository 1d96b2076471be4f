"""Apply a parsed inventory upload to QuickBooks Desktop row by row."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from qbd_assistant.core.config import ConfigurationMissingError
from qbd_assistant.models.intent import ChatOutcome, OutcomeKind
from qbd_assistant.services.conductor import ConductorError
from qbd_assistant.services.inventory import InvalidItemDataError, InventoryService
from qbd_assistant.services.spreadsheet import (
    ImportParseResult,
    ImportRow,
    RowError,
    SpreadsheetError,
    SpreadsheetParser,
)

logger = logging.getLogger(__name__)


class RowLookupError(ValueError):
    """Raised when an update row's item name matches zero or several items."""
    pass


@dataclass
class ImportedItem:
    """A row applied successfully."""
    row_number: int
    action: str
    name: str


@dataclass
class BatchResult:
    """Totals and per-row outcomes of an upload.

    ``total`` counts every data row, rows that failed to parse included.
    """
    total: int = 0
    successful: int = 0
    failed: int = 0
    created: int = 0
    updated: int = 0
    successful_items: List[ImportedItem] = field(default_factory=list)
    errors: List[RowError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.failed == 0

    def record_error(self, row_number: int, error: str) -> None:
        self.failed += 1
        self.errors.append(RowError(row_number=row_number, error=error))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with camelCase keys for API responses."""
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "created": self.created,
            "updated": self.updated,
            "successfulItems": [
                {"rowNumber": item.row_number, "action": item.action, "name": item.name}
                for item in self.successful_items
            ],
            "errors": [
                {"rowNumber": error.row_number, "error": error.error}
                for error in sorted(self.errors, key=lambda e: e.row_number)
            ],
        }


class BulkImporter:
    """Create and update inventory items from an uploaded spreadsheet.

    Rows are applied one at a time in file order. A failing row is recorded
    with its row number and the batch carries on.
    """

    def __init__(self, inventory: InventoryService, parser: Optional[SpreadsheetParser] = None):
        self.inventory = inventory
        self.parser = parser or SpreadsheetParser()

    async def import_file(self, content: bytes, filename: str) -> ChatOutcome:
        """Parse and apply an upload.

        Args:
            content: Raw file bytes
            filename: Original filename

        Returns:
            ChatOutcome whose data is the serialized BatchResult
        """
        try:
            parsed = self.parser.parse(content, filename)
        except SpreadsheetError as e:
            return ChatOutcome(
                kind=OutcomeKind.ERROR,
                success=False,
                error=str(e),
                reply=f'Failed to process file "{filename}": {e}',
            )

        if not parsed.rows:
            return self._nothing_to_apply(parsed, filename)

        result = await self.apply(parsed)
        return ChatOutcome(
            kind=OutcomeKind.RESULT,
            success=result.success,
            data=result.to_dict(),
            reply=self.summarize(result),
        )

    async def apply(self, parsed: ImportParseResult) -> BatchResult:
        """Apply every valid row, carrying over the parse errors."""
        result = BatchResult(total=parsed.total_rows)
        for error in parsed.errors:
            result.record_error(error.row_number, error.error)

        for row in parsed.rows:
            try:
                if row.action == "create":
                    await self._create(row, result)
                else:
                    await self._update(row, result)
            except (ConductorError, InvalidItemDataError, ConfigurationMissingError, ValueError) as e:
                logger.warning(f"Row {row.row_number} failed: {e}")
                result.record_error(row.row_number, str(e))

        logger.info(
            f"Bulk import finished - total={result.total} successful={result.successful} "
            f"failed={result.failed} created={result.created} updated={result.updated}"
        )
        return result

    async def _create(self, row: ImportRow, result: BatchResult) -> None:
        await self.inventory.create_item(row.item_fields())
        result.successful += 1
        result.created += 1
        result.successful_items.append(
            ImportedItem(row_number=row.row_number, action="CREATED", name=row.name)
        )

    async def _update(self, row: ImportRow, result: BatchResult) -> None:
        item_id = row.item_id
        exclude = ()

        if not item_id:
            matches = await self.inventory.find_by_name(row.name)
            if not matches:
                raise RowLookupError(f'Item "{row.name}" not found')
            if len(matches) > 1:
                raise RowLookupError(
                    f'Multiple items found matching "{row.name}". Please use ItemId instead.'
                )
            item_id = matches[0]["id"]
            # The name identified the item; it is not a rename.
            exclude = ("name",)

        update = await self.inventory.update_item(
            item_id, row.item_fields(), source="spreadsheet import", exclude=exclude
        )

        result.successful += 1
        result.updated += 1
        result.successful_items.append(
            ImportedItem(
                row_number=row.row_number,
                action="UPDATED",
                name=row.name or update.record.get("name") or item_id,
            )
        )

    def summarize(self, result: BatchResult) -> str:
        """Render the batch summary shown to the user."""
        lines = [
            "Spreadsheet processing completed!",
            "",
            "Summary:",
            f"- Total rows processed: {result.total}",
            f"- Successful: {result.successful}",
            f"- Failed: {result.failed}",
            f"- Items created: {result.created}",
            f"- Items updated: {result.updated}",
        ]

        if result.successful_items:
            lines += ["", "Successfully processed:"]
            lines += [
                f"Row {item.row_number}: {item.action} - {item.name}"
                for item in result.successful_items
            ]

        if result.errors:
            lines += ["", "Errors:"]
            lines += [
                f"Row {error.row_number}: {error.error}"
                for error in sorted(result.errors, key=lambda e: e.row_number)
            ]

        return "\n".join(lines)

    def _nothing_to_apply(self, parsed: ImportParseResult, filename: str) -> ChatOutcome:
        if parsed.errors:
            details = "\n".join(f"Row {e.row_number}: {e.error}" for e in parsed.errors)
        else:
            details = "No valid rows found"

        return ChatOutcome(
            kind=OutcomeKind.ERROR,
            success=False,
            error="Failed to parse spreadsheet",
            reply=(
                f'Failed to process file "{filename}":\n\n{details}\n\n'
                "Please check the file format and try again."
            ),
            data={
                "totalRows": parsed.total_rows,
                "validRows": parsed.valid_rows,
                "invalidRows": parsed.invalid_rows,
                "errors": [{"rowNumber": e.row_number, "error": e.error} for e in parsed.errors],
            },
        )
