"""Conductor API client for QuickBooks Desktop records.

This module provides the ConductorClient class for reading and writing
QuickBooks Desktop data through the Conductor REST API. It includes:
- HTTP client with bearer authentication and the end-user header
- Resource objects mirroring the Conductor SDK (customers, inventory items,
  inventory adjustments, accounts)
- Cursor pagination helper for fetching all records
- Error mapping from Conductor error bodies to typed exceptions

There is no retry, caching or batching: every call is a single request and
failures propagate to the caller.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from qbd_assistant.core.config import ConductorConfig
from qbd_assistant.core.logging import LoggerAdapter

logger = logging.getLogger(__name__)


# =============================================================================
# Data Models
# =============================================================================


@dataclass
class Page:
    """One page of a Conductor list response."""
    data: List[Dict[str, Any]] = field(default_factory=list)
    next_cursor: Optional[str] = None
    has_more: bool = False


# =============================================================================
# Exceptions
# =============================================================================


class ConductorError(Exception):
    """Base exception for Conductor API errors.

    Attributes:
        status_code: HTTP status returned by Conductor, if any
        code: Conductor error code (e.g. ``INTEGRATION_ERROR``)
        user_facing_message: Message Conductor marks as safe for end users
        integration_code: QuickBooks Desktop status code, if any
        request_id: Conductor request ID for support
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        user_facing_message: Optional[str] = None,
        integration_code: Optional[str] = None,
        request_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.user_facing_message = user_facing_message
        self.integration_code = integration_code
        self.request_id = request_id

    @property
    def is_conflict(self) -> bool:
        """Whether QuickBooks rejected a write for a stale revision number."""
        return self.status_code == 409 or self.integration_code == "3200"


class ConductorConnectionError(ConductorError):
    """Raised when Conductor cannot be reached."""
    pass


class ConductorTimeoutError(ConductorConnectionError):
    """Raised when a request to Conductor times out."""
    pass


class ConductorAuthenticationError(ConductorError):
    """Raised when the API key is rejected (401/403)."""
    pass


class ConductorNotFoundError(ConductorError):
    """Raised when the record does not exist (404)."""
    pass


class ConductorValidationError(ConductorError):
    """Raised when Conductor rejects the request body (400/422)."""
    pass


class ConductorConflictError(ConductorError):
    """Raised when the revision number is stale (409)."""
    pass


class ConductorServerError(ConductorError):
    """Raised when Conductor or QuickBooks Desktop fails (5xx)."""
    pass


_STATUS_ERRORS = {
    400: ConductorValidationError,
    401: ConductorAuthenticationError,
    403: ConductorAuthenticationError,
    404: ConductorNotFoundError,
    409: ConductorConflictError,
    422: ConductorValidationError,
}


# =============================================================================
# Conductor Client
# =============================================================================


class ConductorClient:
    """Client for the Conductor QuickBooks Desktop API.

    Provides resource objects for:
    - ``customers``: list, retrieve, create, update
    - ``inventory_items``: list, retrieve, create, update
    - ``inventory_adjustments``: create
    - ``accounts``: list

    Example:
        ```python
        config = settings.conductor_config()
        async with ConductorClient(config) as client:
            page = await client.inventory_items.list(nameContains="widget", limit=10)
            item = await client.inventory_items.retrieve(page.data[0]["id"])
        ```
    """

    API_PREFIX = "quickbooks-desktop"

    def __init__(
        self,
        config: ConductorConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize ConductorClient.

        Args:
            config: Conductor connection settings
            transport: Optional httpx transport, used by tests to stub the API
        """
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self._transport = transport

        # HTTP client will be created lazily
        self._client: Optional[httpx.AsyncClient] = None

        self.customers = ConductorResource(self, "customers")
        self.inventory_items = ConductorResource(self, "inventory-items")
        self.inventory_adjustments = ConductorResource(self, "inventory-adjustments")
        self.accounts = ConductorResource(self, "accounts")

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client.

        Returns:
            Configured httpx.AsyncClient instance
        """
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.config.timeout),
                transport=self._transport,
                headers={
                    "Authorization": f"Bearer {self.config.api_key}",
                    "Conductor-End-User-Id": self.config.end_user_id,
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ConductorClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    # =========================================================================
    # HTTP Request Methods
    # =========================================================================

    def _handle_response_error(self, response: httpx.Response) -> None:
        """Handle HTTP error responses.

        Conductor error bodies look like
        ``{"error": {"message", "userFacingMessage", "type", "code",
        "httpStatusCode", "integrationCode", "requestId"}}``.

        Args:
            response: HTTP response to check

        Raises:
            ConductorError: Subclass matching the status code
        """
        if response.is_success:
            return

        status = response.status_code
        error: Dict[str, Any] = {}
        try:
            body = response.json()
            if isinstance(body, dict) and isinstance(body.get("error"), dict):
                error = body["error"]
        except ValueError:
            pass

        message = error.get("message") or response.text or f"HTTP {status}"
        integration_code = error.get("integrationCode")

        if status >= 500:
            error_class = ConductorServerError
        else:
            error_class = _STATUS_ERRORS.get(status, ConductorError)
        if integration_code is not None and str(integration_code) == "3200":
            error_class = ConductorConflictError

        raise error_class(
            message,
            status_code=status,
            code=error.get("code"),
            user_facing_message=error.get("userFacingMessage"),
            integration_code=str(integration_code) if integration_code is not None else None,
            request_id=error.get("requestId") or response.headers.get("Conductor-Request-Id"),
        )

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Dict[str, Any]] = None,
        operation: Optional[str] = None,
    ) -> Any:
        """Make a single HTTP request to Conductor.

        Args:
            method: HTTP method
            path: Path under ``/quickbooks-desktop``
            params: Optional query parameters; None values are dropped
            json_data: Optional JSON body
            operation: Name used in log context

        Returns:
            Decoded JSON response body

        Raises:
            ConductorTimeoutError: If the request timed out
            ConductorConnectionError: If Conductor could not be reached
            ConductorError: If Conductor returned an error response
        """
        log = LoggerAdapter(logger, {
            "name": f"conductor.{operation or path}",
            "endUserId": self.config.end_user_id,
        })
        url = f"/{self.API_PREFIX}/{path.lstrip('/')}"
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        client = await self._get_client()
        log.info(f"{method} {url}")

        try:
            response = await client.request(
                method=method,
                url=url,
                params=params or None,
                json=json_data,
            )
            self._handle_response_error(response)
        except httpx.TimeoutException as e:
            log.error(f"Request timed out after {self.config.timeout}s: {e}")
            raise ConductorTimeoutError(
                f"Request to Conductor timed out: {e}"
            ) from e
        except httpx.TransportError as e:
            log.error(f"Connection failed: {e}")
            raise ConductorConnectionError(
                f"Cannot connect to Conductor at {self.base_url}: {e}"
            ) from e
        except ConductorError as e:
            log.error(f"Request failed ({e.status_code}): {e}")
            raise

        log.info(f"Request succeeded ({response.status_code})")
        return response.json()

    # =========================================================================
    # Connection
    # =========================================================================

    async def health_check(self) -> Dict[str, Any]:
        """Check that the end user's QuickBooks Desktop connection is working.

        Returns:
            Conductor health-check response body
        """
        return await self.request("GET", "health-check", operation="health_check")


class ConductorResource:
    """CRUD operations for one Conductor QuickBooks Desktop resource."""

    DEFAULT_PAGE_SIZE = 100

    def __init__(self, client: ConductorClient, path: str):
        self.client = client
        self.path = path
        self.name = path.replace("-", "_")

    async def list(self, **params: Any) -> Page:
        """Fetch one page of records.

        Args:
            **params: Conductor query parameters in camelCase
                (``limit``, ``cursor``, ``nameContains``, ...)

        Returns:
            Page with the records and the cursor of the next page
        """
        body = await self.client.request(
            "GET", self.path, params=params, operation=f"{self.name}.list"
        )
        return Page(
            data=body.get("data", []),
            next_cursor=body.get("nextCursor"),
            has_more=bool(body.get("hasMore")),
        )

    async def list_all(self, **params: Any) -> List[Dict[str, Any]]:
        """Fetch every record matching the filters by following ``nextCursor``.

        A failure on any page fails the whole call.

        Args:
            **params: Conductor query parameters; ``limit`` sets the page size

        Returns:
            All records across pages, in the order returned
        """
        params.setdefault("limit", self.DEFAULT_PAGE_SIZE)
        params.pop("cursor", None)

        records: List[Dict[str, Any]] = []
        cursor: Optional[str] = None
        pages = 0

        while True:
            page = await self.list(**params, cursor=cursor)
            records.extend(page.data)
            pages += 1
            if not page.next_cursor:
                break
            cursor = page.next_cursor

        logger.debug(f"Fetched {len(records)} {self.name} across {pages} page(s)")
        return records

    async def retrieve(self, record_id: str) -> Dict[str, Any]:
        """Fetch a single record by ID."""
        return await self.client.request(
            "GET", f"{self.path}/{record_id}", operation=f"{self.name}.retrieve"
        )

    async def create(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Create a record.

        Args:
            body: Request body in camelCase

        Returns:
            The created record
        """
        return await self.client.request(
            "POST", self.path, json_data=body, operation=f"{self.name}.create"
        )

    async def update(self, record_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Update a record.

        Args:
            record_id: ID of the record to update
            body: Request body, which must carry the current ``revisionNumber``

        Returns:
            The updated record
        """
        return await self.client.request(
            "POST",
            f"{self.path}/{record_id}",
            json_data=body,
            operation=f"{self.name}.update",
        )
