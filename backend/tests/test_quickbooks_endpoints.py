"""Integration tests for the QuickBooks Desktop REST endpoints.

Requests go through the real ConductorClient with an httpx MockTransport
standing in for the Conductor API.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from qbd_assistant.api.deps import get_conductor_client
from qbd_assistant.api.endpoints.quickbooks import account_type
from qbd_assistant.core.config import settings
from qbd_assistant.main import app
from qbd_assistant.services.conductor import ConductorClient


class FakeConductorAPI:
    """Records requests and replays a queued response per request."""

    def __init__(self):
        self.requests = []
        self.responses = []

    def reply(self, status_code=200, json_body=None, exc=None):
        self.responses.append((status_code, json_body, exc))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status_code, json_body, exc = self.responses.pop(0)
        if exc is not None:
            raise exc(str(exc.__name__), request=request)
        return httpx.Response(status_code, json=json_body)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def conductor_api(conductor_config):
    api = FakeConductorAPI()

    async def override_client():
        async with ConductorClient(
            conductor_config, transport=httpx.MockTransport(api.handler)
        ) as client:
            yield client

    app.dependency_overrides[get_conductor_client] = override_client
    yield api
    app.dependency_overrides.pop(get_conductor_client, None)


@pytest.fixture
async def client():
    """Create async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


CUSTOMER = {
    "id": "80000001-1234567890",
    "objectType": "qbd_customer",
    "name": "Acme Corp",
    "revisionNumber": "1721172183",
}


# =============================================================================
# Customers
# =============================================================================


class TestListCustomers:
    """Tests for GET /api/v1/quickbooks/customers."""

    @pytest.mark.asyncio
    async def test_list_page(self, client, conductor_api):
        conductor_api.reply(200, {"data": [CUSTOMER], "nextCursor": "cur_2", "hasMore": True})

        response = await client.get("/api/v1/quickbooks/customers", params={"limit": 10})

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": [CUSTOMER], "nextCursor": "cur_2"}
        assert conductor_api.last.url.params["limit"] == "10"
        assert "cursor" not in conductor_api.last.url.params
        assert conductor_api.last.headers["Conductor-End-User-Id"] == "end_usr_test"

    @pytest.mark.asyncio
    async def test_default_limit_and_cursor(self, client, conductor_api):
        conductor_api.reply(200, {"data": [], "nextCursor": None})

        response = await client.get("/api/v1/quickbooks/customers", params={"cursor": "cur_2"})

        assert response.status_code == 200
        assert response.json()["nextCursor"] is None
        assert conductor_api.last.url.params["limit"] == "50"
        assert conductor_api.last.url.params["cursor"] == "cur_2"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, 101])
    async def test_limit_out_of_range(self, client, conductor_api, limit):
        response = await client.get("/api/v1/quickbooks/customers", params={"limit": limit})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["details"]["fields"][0]["field"] == "limit"
        assert conductor_api.requests == []


class TestGetCustomer:
    """Tests for GET /api/v1/quickbooks/customers/{id}."""

    @pytest.mark.asyncio
    async def test_found(self, client, conductor_api):
        conductor_api.reply(200, CUSTOMER)

        response = await client.get(f"/api/v1/quickbooks/customers/{CUSTOMER['id']}")

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": CUSTOMER}
        assert conductor_api.last.url.path.endswith(f"/customers/{CUSTOMER['id']}")

    @pytest.mark.asyncio
    async def test_not_found_keeps_user_facing_message(self, client, conductor_api):
        conductor_api.reply(404, {"error": {
            "message": "No customer found with ID 80000001-0",
            "userFacingMessage": "The customer you requested does not exist.",
            "code": "RESOURCE_MISSING",
            "requestId": "req_1",
        }})

        response = await client.get("/api/v1/quickbooks/customers/80000001-0")

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["errorCode"] == "QUICKBOOKS_NOT_FOUND"
        assert body["userFacingMessage"] == "The customer you requested does not exist."
        assert body["message"] == "No customer found with ID 80000001-0"
        assert body["details"] == {"code": "RESOURCE_MISSING", "requestId": "req_1"}


class TestCreateCustomer:
    """Tests for POST /api/v1/quickbooks/customers."""

    @pytest.mark.asyncio
    async def test_created(self, client, conductor_api):
        conductor_api.reply(201, CUSTOMER)

        response = await client.post("/api/v1/quickbooks/customers", json={
            "name": "Acme Corp",
            "email": "billing@acme.com",
            "billingAddress": {"line1": "1 Main St", "city": "Springfield"},
        })

        assert response.status_code == 201
        assert response.json() == {"success": True, "data": CUSTOMER}
        sent = json.loads(conductor_api.last.content)
        assert sent == {
            "name": "Acme Corp",
            "email": "billing@acme.com",
            "billingAddress": {"line1": "1 Main St", "city": "Springfield"},
            "isActive": True,
        }

    @pytest.mark.asyncio
    async def test_validation_reports_field_paths(self, client, conductor_api):
        response = await client.post("/api/v1/quickbooks/customers", json={
            "name": "N" * 42,
            "email": "not-an-email",
        })

        assert response.status_code == 400
        fields = [f["field"] for f in response.json()["details"]["fields"]]
        assert sorted(fields) == ["email", "name"]
        assert conductor_api.requests == []

    @pytest.mark.asyncio
    async def test_missing_name(self, client, conductor_api):
        response = await client.post("/api/v1/quickbooks/customers", json={"phone": "555"})

        assert response.status_code == 400
        assert response.json()["details"]["fields"][0]["field"] == "name"
        assert response.json()["errorCode"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_connection_failure_is_503(self, client, conductor_api):
        conductor_api.reply(exc=httpx.ConnectError)

        response = await client.post("/api/v1/quickbooks/customers", json={"name": "Acme"})

        assert response.status_code == 503
        assert response.json()["errorCode"] == "QUICKBOOKS_CONNECTION_ERROR"

    @pytest.mark.asyncio
    async def test_timeout_is_503_with_own_code(self, client, conductor_api):
        conductor_api.reply(exc=httpx.ReadTimeout)

        response = await client.post("/api/v1/quickbooks/customers", json={"name": "Acme"})

        assert response.status_code == 503
        assert response.json()["errorCode"] == "QUICKBOOKS_TIMEOUT"


class TestUpdateCustomer:
    """Tests for PATCH /api/v1/quickbooks/customers/{id}."""

    @pytest.mark.asyncio
    async def test_forwards_revision_number(self, client, conductor_api):
        conductor_api.reply(200, {**CUSTOMER, "phone": "555-0100", "revisionNumber": "1721172200"})

        response = await client.patch(
            f"/api/v1/quickbooks/customers/{CUSTOMER['id']}",
            json={"revisionNumber": "1721172183", "phone": "555-0100"},
        )

        assert response.status_code == 200
        assert response.json()["data"]["phone"] == "555-0100"
        assert len(conductor_api.requests) == 1
        assert conductor_api.last.method == "POST"
        assert json.loads(conductor_api.last.content) == {
            "revisionNumber": "1721172183",
            "phone": "555-0100",
        }

    @pytest.mark.asyncio
    async def test_requires_revision_number(self, client, conductor_api):
        response = await client.patch(
            f"/api/v1/quickbooks/customers/{CUSTOMER['id']}",
            json={"phone": "555-0100"},
        )

        assert response.status_code == 400
        assert response.json()["details"]["fields"][0]["field"] == "revisionNumber"
        assert conductor_api.requests == []

    @pytest.mark.asyncio
    async def test_stale_revision_is_conflict(self, client, conductor_api):
        conductor_api.reply(400, {"error": {
            "message": "The provided edit sequence \"1\" is out-of-date.",
            "userFacingMessage": "This record was changed since you loaded it.",
            "integrationCode": "3200",
        }})

        response = await client.patch(
            f"/api/v1/quickbooks/customers/{CUSTOMER['id']}",
            json={"revisionNumber": "1", "phone": "555-0100"},
        )

        assert response.status_code == 500
        assert response.json()["errorCode"] == "QUICKBOOKS_CONFLICT"
        assert response.json()["userFacingMessage"] == "This record was changed since you loaded it."


# =============================================================================
# Connection and Accounts
# =============================================================================


class TestHealthCheck:
    """Tests for GET /api/v1/quickbooks/health-check."""

    @pytest.mark.asyncio
    async def test_healthy(self, client, conductor_api):
        conductor_api.reply(200, {"duration": 120})

        response = await client.get("/api/v1/quickbooks/health-check")

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": {"duration": 120}}
        assert conductor_api.last.url.path == "/v1/quickbooks-desktop/health-check"

    @pytest.mark.asyncio
    async def test_quickbooks_error_is_503(self, client, conductor_api):
        conductor_api.reply(502, {"error": {
            "message": "QuickBooks Desktop is not running",
            "userFacingMessage": "Open QuickBooks Desktop and try again.",
            "type": "INTEGRATION_CONNECTION_ERROR",
            "code": "QBD_CONNECTION_ERROR",
        }})

        response = await client.get("/api/v1/quickbooks/health-check")

        assert response.status_code == 503
        body = response.json()
        assert body["success"] is False
        assert body["errorCode"] == "QUICKBOOKS_CONNECTION_ERROR"
        assert body["userFacingMessage"] == "Open QuickBooks Desktop and try again."
        assert body["message"] == "QuickBooks Desktop is not running"

    @pytest.mark.asyncio
    async def test_unreachable_is_503(self, client, conductor_api):
        conductor_api.reply(exc=httpx.ConnectError)

        response = await client.get("/api/v1/quickbooks/health-check")

        assert response.status_code == 503
        assert response.json()["errorCode"] == "QUICKBOOKS_CONNECTION_ERROR"


class TestListAccounts:
    """Tests for GET /api/v1/quickbooks/accounts."""

    @pytest.mark.parametrize("raw,expected", [
        ("Cost of Goods Sold", "cost_of_goods_sold"),
        ("other_current_asset", "other_current_asset"),
        (None, ""),
    ])
    def test_account_type(self, raw, expected):
        assert account_type({"accountType": raw}) == expected

    @pytest.mark.asyncio
    async def test_filters_inventory_types(self, client, conductor_api):
        accounts = [
            {"id": "1", "name": "Sales", "accountType": "income"},
            {"id": "2", "name": "COGS", "accountType": "cost_of_goods_sold"},
            {"id": "3", "name": "Checking", "accountType": "bank"},
            {"id": "4", "name": "Inventory Asset", "accountType": "other_current_asset"},
            {"id": "5", "name": "Shrinkage", "accountType": "other_expense"},
        ]
        conductor_api.reply(200, {"data": accounts, "nextCursor": None})

        response = await client.get("/api/v1/quickbooks/accounts")

        body = response.json()
        assert [a["id"] for a in body["data"]] == ["1", "2", "4", "5"]
        assert body["message"].startswith("Found 4 accounts.")
        assert conductor_api.last.url.params["limit"] == "150"

    @pytest.mark.asyncio
    async def test_falls_back_to_all_accounts(self, client, conductor_api):
        accounts = [{"id": "3", "name": "Checking", "accountType": "bank"}]
        conductor_api.reply(200, {"data": accounts})

        response = await client.get("/api/v1/quickbooks/accounts")

        assert response.json()["data"] == accounts


# =============================================================================
# Configuration
# =============================================================================


class TestMissingConfiguration:
    """Requests fail before any remote call when Conductor is not configured."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("setting,env_name", [
        ("conductor_end_user_id", "CONDUCTOR_END_USER_ID"),
        ("conductor_api_key", "CONDUCTOR_API_KEY"),
    ])
    async def test_missing_setting(self, client, monkeypatch, setting, env_name):
        monkeypatch.setattr(settings, setting, "")

        response = await client.get("/api/v1/quickbooks/customers")

        assert response.status_code == 500
        body = response.json()
        assert body["errorCode"] == "CONFIGURATION_MISSING"
        assert body["details"] == {"setting": env_name}
        assert body["userFacingMessage"]


class TestUnexpectedFailure:
    """Unhandled exceptions are rendered as the standard envelope."""

    @pytest.mark.asyncio
    async def test_internal_error_envelope(self):
        broken = MagicMock()
        broken.customers.retrieve = AsyncMock(side_effect=RuntimeError("secret detail"))
        app.dependency_overrides[get_conductor_client] = lambda: broken

        try:
            async with AsyncClient(
                transport=ASGITransport(app=app, raise_app_exceptions=False),
                base_url="http://test",
            ) as ac:
                response = await ac.get("/api/v1/quickbooks/customers/80000001-1")
        finally:
            app.dependency_overrides.pop(get_conductor_client, None)

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["errorCode"] == "INTERNAL_ERROR"
        assert "secret detail" not in response.text
