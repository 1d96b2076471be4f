"""Spreadsheet parser for bulk inventory uploads.

Reads the first sheet of an ``.xlsx``/``.xls`` workbook, or a ``.csv`` file,
and turns each data row into an ImportRow. Columns are matched by alias so
that ``Sales Price``, ``SalesPrice`` and ``salesprice`` all map to the same
field; unknown columns are ignored.

Row numbers follow spreadsheet numbering: the header is row 1, so the first
data row is row 2. A bad row is recorded as a RowError and never stops the
rest of the file from being parsed.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Dict, List, Literal, Optional

import pandas as pd

from qbd_assistant.models.inventory import InventoryItemFields

logger = logging.getLogger(__name__)


SUPPORTED_EXTENSIONS = (".xlsx", ".xls", ".csv")

DECIMAL_PATTERN = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")

EXCEL_ENGINES = {
    ".xlsx": "openpyxl",
    ".xls": "xlrd",
}

CSV_ENCODINGS = ("utf-8-sig", "latin-1")

ACTION_ALIASES = ["Action"]

# Field name -> column headers accepted for it (lower/upper case added below)
FIELD_ALIASES: Dict[str, List[str]] = {
    "item_id": ["ItemId", "Item ID"],
    "name": ["Name"],
    "sku": ["SKU", "Sku"],
    "sales_price": ["SalesPrice", "Sales Price"],
    "purchase_cost": ["PurchaseCost", "Purchase Cost"],
    "sales_description": ["SalesDescription", "Sales Description"],
    "purchase_description": ["PurchaseDescription", "Purchase Description"],
    "quantity_on_hand": ["QuantityOnHand", "Quantity On Hand", "Quantity"],
    "reorder_point": ["ReorderPoint", "Reorder Point"],
    "maximum_quantity_on_hand": ["MaximumQuantityOnHand", "Maximum Quantity On Hand"],
    "income_account_id": ["IncomeAccountId", "Income Account ID"],
    "cogs_account_id": ["CogsAccountId", "COGS Account ID"],
    "asset_account_id": ["AssetAccountId", "Asset Account ID"],
    "sales_tax_code_id": ["SalesTaxCodeId", "Sales Tax Code ID"],
    "purchase_tax_code_id": ["PurchaseTaxCodeId", "Purchase Tax Code ID"],
    "is_active": ["IsActive", "Is Active", "Active"],
    "barcode": ["Barcode"],
    "preferred_vendor_id": ["PreferredVendorId", "Preferred Vendor ID"],
    "class_id": ["ClassId", "Class ID"],
    "parent_id": ["ParentId", "Parent ID"],
}

NUMBER_FIELDS = {"quantity_on_hand", "reorder_point", "maximum_quantity_on_hand"}
BOOLEAN_FIELDS = {"is_active"}

TRUE_VALUES = {"true", "1", "yes", "y"}
FALSE_VALUES = {"false", "0", "no", "n"}


# =============================================================================
# Data Models
# =============================================================================


class SpreadsheetError(Exception):
    """Raised when the file itself cannot be read."""
    pass


class ImportRow(InventoryItemFields):
    """One parsed data row of an inventory upload."""
    row_number: int
    action: Literal["create", "update"]
    item_id: Optional[str] = None

    def item_fields(self) -> InventoryItemFields:
        """The item field values of the row, without row bookkeeping."""
        return InventoryItemFields.model_validate(
            self.model_dump(exclude={"row_number", "action", "item_id"})
        )


@dataclass
class RowError:
    """A data row that could not be parsed or applied."""
    row_number: int
    error: str


@dataclass
class ImportParseResult:
    """Result of parsing an inventory upload."""
    rows: List[ImportRow] = field(default_factory=list)
    errors: List[RowError] = field(default_factory=list)
    total_rows: int = 0

    @property
    def valid_rows(self) -> int:
        return len(self.rows)

    @property
    def invalid_rows(self) -> int:
        return len(self.errors)

    @property
    def success(self) -> bool:
        return not self.errors


# =============================================================================
# Cell Coercion
# =============================================================================


def _with_case_variants(aliases: List[str]) -> List[str]:
    variants: List[str] = []
    for alias in aliases:
        for candidate in (alias, alias.lower(), alias.upper()):
            if candidate not in variants:
                variants.append(candidate)
    return variants


def cell_text(value) -> Optional[str]:
    """Return the trimmed text of a cell, or None for an empty cell."""
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    text = str(value).strip()
    return text or None


def parse_number(text: Optional[str]) -> Optional[float]:
    """Parse a decimal number written with a ``.`` separator.

    Exponents are accepted; digit separators, hex and other forms are not.
    Returns None for anything that is not a finite number.
    """
    if text is None:
        return None
    text = text.strip()
    if not DECIMAL_PATTERN.match(text):
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_bool(text: Optional[str]) -> Optional[bool]:
    """Parse ``true/1/yes/y`` and ``false/0/no/n`` (any case); None otherwise."""
    if text is None:
        return None
    lowered = text.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    return None


def column_value(row: Dict[str, object], aliases: List[str]) -> Optional[str]:
    """Look up a cell by column alias.

    Exact header matches are tried first, then a trimmed, case-insensitive
    comparison against every header. The first non-empty cell wins.
    """
    for alias in aliases:
        if alias in row:
            text = cell_text(row[alias])
            if text is not None:
                return text

    normalized = {alias.strip().lower() for alias in aliases}
    for key, value in row.items():
        if str(key).strip().lower() in normalized:
            text = cell_text(value)
            if text is not None:
                return text

    return None


# =============================================================================
# Spreadsheet Parser
# =============================================================================


class SpreadsheetParser:
    """Parse inventory upload files into ImportRows.

    Example:
        ```python
        parser = SpreadsheetParser()
        result = parser.parse(content, "items.xlsx")
        for row in result.rows:
            print(row.row_number, row.action, row.name)
        for error in result.errors:
            print(f"Row {error.row_number}: {error.error}")
        ```
    """

    def __init__(self):
        self.action_aliases = _with_case_variants(ACTION_ALIASES)
        self.field_aliases = {
            name: _with_case_variants(aliases) for name, aliases in FIELD_ALIASES.items()
        }

    def parse(self, content: bytes, filename: str) -> ImportParseResult:
        """Parse an uploaded file.

        Args:
            content: Raw file bytes
            filename: Original filename; its extension selects the reader

        Returns:
            ImportParseResult with the valid rows and the per-row errors

        Raises:
            SpreadsheetError: If the file type is unsupported or the file
                cannot be read
        """
        logger.info(f"Parsing inventory upload {filename} ({len(content)} bytes)")

        df = self._load(content, filename)
        df = df.rename(columns=lambda c: str(c))

        result = ImportParseResult()

        for index, record in df.iterrows():
            row = record.to_dict()
            if all(cell_text(value) is None for value in row.values()):
                continue

            result.total_rows += 1
            row_number = int(index) + 2

            try:
                result.rows.append(self.parse_row(row, row_number))
            except ValueError as e:
                result.errors.append(RowError(row_number=row_number, error=str(e)))
                logger.warning(f"Failed to parse row {row_number}: {e}")

        logger.info(
            f"Parsed {filename}: {result.valid_rows} valid row(s), "
            f"{result.invalid_rows} invalid row(s)"
        )
        return result

    def parse_row(self, row: Dict[str, object], row_number: int) -> ImportRow:
        """Parse one data row.

        Raises:
            ValueError: If the action is missing or invalid, or the row lacks
                the fields its action requires
        """
        action_raw = column_value(row, self.action_aliases)
        if not action_raw:
            raise ValueError("Missing required column: Action")

        action = action_raw.lower()
        if action not in ("create", "update"):
            raise ValueError(f'Invalid action "{action_raw}". Must be "CREATE" or "UPDATE"')

        values = {}
        for name, aliases in self.field_aliases.items():
            text = column_value(row, aliases)
            if name in NUMBER_FIELDS:
                value = parse_number(text)
            elif name in BOOLEAN_FIELDS:
                value = parse_bool(text)
            else:
                value = text
            if value is not None:
                values[name] = value

        parsed = ImportRow(row_number=row_number, action=action, **values)

        if action == "create":
            if not parsed.name:
                raise ValueError("CREATE operation requires Name")
            if not (parsed.income_account_id and parsed.cogs_account_id and parsed.asset_account_id):
                raise ValueError(
                    "CREATE operation requires IncomeAccountId, CogsAccountId, and AssetAccountId"
                )
        elif not (parsed.item_id or parsed.name):
            raise ValueError("UPDATE operation requires either ItemId or Name")

        return parsed

    def _load(self, content: bytes, filename: str) -> pd.DataFrame:
        """Read the first sheet (or the CSV) with every cell as text."""
        extension = Path(filename).suffix.lower()
        if extension not in SUPPORTED_EXTENSIONS:
            raise SpreadsheetError(
                f"Unsupported file type {extension or '(none)'}. "
                "Please upload an Excel (.xlsx, .xls) or CSV file."
            )

        if extension == ".csv":
            return self._load_csv(content, filename)

        try:
            workbook = pd.ExcelFile(BytesIO(content), engine=EXCEL_ENGINES[extension])
        except Exception as e:
            logger.error(f"Could not open workbook {filename}: {e}")
            raise SpreadsheetError(f"Could not read Excel file {filename}: {e}") from e

        if not workbook.sheet_names:
            raise SpreadsheetError("Excel file is empty or has no sheets")

        try:
            return workbook.parse(
                workbook.sheet_names[0],
                dtype=str,
                keep_default_na=False,
            )
        except Exception as e:
            logger.error(f"Could not read first sheet of {filename}: {e}")
            raise SpreadsheetError(f"Could not read worksheet: {e}") from e

    def _load_csv(self, content: bytes, filename: str) -> pd.DataFrame:
        last_error: Optional[Exception] = None
        for encoding in CSV_ENCODINGS:
            try:
                return pd.read_csv(
                    BytesIO(content),
                    dtype=str,
                    keep_default_na=False,
                    encoding=encoding,
                    skip_blank_lines=False,
                )
            except UnicodeDecodeError as e:
                last_error = e
                continue
            except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
                logger.error(f"Could not read CSV {filename}: {e}")
                raise SpreadsheetError(f"Could not read CSV file {filename}: {e}") from e

        raise SpreadsheetError(f"Could not decode CSV file {filename}: {last_error}")
