"""Chat API endpoints for the inventory assistant."""

import logging
from pathlib import Path
from typing import Any, Optional

from fastapi import APIRouter, File, UploadFile, status
from pydantic import BaseModel, Field

from qbd_assistant.api.deps import BulkImporterDep, InventoryAssistantDep
from qbd_assistant.core.errors import AppException, ErrorCode
from qbd_assistant.models.intent import ChatOutcome, OutcomeKind, ParsedIntent
from qbd_assistant.services.spreadsheet import SUPPORTED_EXTENSIONS

logger = logging.getLogger(__name__)

router = APIRouter()

NOT_CONFIGURED_REPLY = (
    "QuickBooks Desktop connection is not configured. Please contact your administrator."
)


# =============================================================================
# Request/Response Models
# =============================================================================


class ChatRequest(BaseModel):
    """Request body for chat messages."""
    message: str = Field(..., description="User message text")


class ChatResponse(BaseModel):
    """Reply to a chat message or upload."""
    success: bool
    reply: str
    kind: OutcomeKind
    data: Optional[Any] = None
    error: Optional[str] = None
    parsed_operation: Optional[ParsedIntent] = Field(None, serialization_alias="parsedOperation")
    needs_account_ids: Optional[bool] = Field(None, serialization_alias="needsAccountIds")
    missing_fields: list[str] = Field(default_factory=list, serialization_alias="missingFields")

    @classmethod
    def from_outcome(cls, outcome: ChatOutcome) -> "ChatResponse":
        return cls(
            success=outcome.success,
            reply=outcome.reply,
            kind=outcome.kind,
            data=outcome.data,
            error=outcome.error,
            parsed_operation=outcome.parsed_operation,
            needs_account_ids=outcome.needs_account_ids,
            missing_fields=outcome.missing_fields,
        )


def not_configured_response() -> ChatResponse:
    return ChatResponse(
        success=False,
        kind=OutcomeKind.CONFIGURATION_MISSING,
        error="CONDUCTOR_END_USER_ID not configured",
        reply=NOT_CONFIGURED_REPLY,
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.post(
    "/message",
    response_model=ChatResponse,
    summary="Send a chat message",
    description="Ask the inventory assistant to create, read, update or list inventory items.",
)
async def send_message(request: ChatRequest, assistant: InventoryAssistantDep) -> ChatResponse:
    """Handle one chat message."""
    if assistant is None:
        return not_configured_response()

    outcome = await assistant.handle_message(request.message)
    logger.info(f"Chat message handled: kind={outcome.kind.value} success={outcome.success}")
    return ChatResponse.from_outcome(outcome)


@router.post(
    "/upload",
    response_model=ChatResponse,
    summary="Upload an inventory spreadsheet",
    description="Create and update inventory items from an .xlsx, .xls or .csv file.",
)
async def upload_spreadsheet(
    importer: BulkImporterDep,
    file: UploadFile = File(...),
) -> ChatResponse:
    """Apply an inventory spreadsheet row by row."""
    filename = file.filename or ""
    if Path(filename).suffix.lower() not in SUPPORTED_EXTENSIONS:
        raise AppException(
            error_code=ErrorCode.INVALID_FILE,
            status_code=status.HTTP_400_BAD_REQUEST,
            error="File must be an Excel or CSV file (.xlsx, .xls, .csv)",
            details={"filename": filename},
        )

    if importer is None:
        return not_configured_response()

    content = await file.read()
    logger.info(f"Received upload {filename} ({len(content)} bytes)")

    outcome = await importer.import_file(content, filename)
    return ChatResponse.from_outcome(outcome)
