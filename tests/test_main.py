"""Tests for the HTTP surface."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from procore_mcp.config import config
from procore_mcp.main import app


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def header_credentials():
    with patch.object(config.server, "credential_source", "header"):
        yield


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "Procore MCP Server"}


def test_discovery_document(client) -> None:
    response = client.get("/mcp")

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Procore MCP Server"
    assert data["transport"] == "http"
    assert data["authRequired"] is False
    assert data["endpoint"].endswith("/mcp/rpc")
    assert len(data["tools"]) == 6


def test_rpc_usage_document(client) -> None:
    response = client.get("/mcp/rpc")

    assert response.status_code == 200
    assert response.json()["example"]["method"] == "initialize"


def test_rpc_initialize(client) -> None:
    response = client.post("/mcp/rpc", json={"jsonrpc": "2.0", "id": 0, "method": "initialize", "params": {}})

    assert response.status_code == 200
    assert response.json()["id"] == 0
    assert response.json()["result"]["serverInfo"]["version"] == "1.0.0"


def test_rpc_notification_returns_204(client) -> None:
    response = client.post("/mcp/rpc", json={"jsonrpc": "2.0", "method": "notifications/initialized"})

    assert response.status_code == 204
    assert response.content == b""


def test_rpc_parse_error_is_http_200(client) -> None:
    response = client.post("/mcp/rpc", content=b"not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 200
    assert response.json() == {"jsonrpc": "2.0", "id": None, "error": {"code": -32700, "message": "Parse error"}}


def test_rpc_nan_id_is_parse_error(client) -> None:
    response = client.post(
        "/mcp/rpc",
        content=b'{"jsonrpc":"2.0","id":NaN,"method":"initialize"}',
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 200
    assert response.json()["id"] is None
    assert response.json()["error"]["code"] == -32700


def test_rpc_static_credentials_are_used(client, procore_api) -> None:
    procore_api.respond("GET", "/companies", json_body=[])
    with patch.object(config.procore, "bearer_token", "configured-token"), \
            patch.object(config.procore, "company_id", "55"):
        response = client.post("/mcp/rpc", json={
            "jsonrpc": "2.0", "id": 1, "method": "tools/call", "params": {"name": "list-companies"},
        })

    assert response.status_code == 200
    assert response.json()["result"]["isError"] is False
    request = procore_api.last_request
    assert request.headers["Authorization"] == "Bearer configured-token"
    assert request.headers["Procore-Company-Id"] == "55"


def test_rpc_header_credentials(client, procore_api, header_credentials) -> None:
    procore_api.respond("GET", "/companies", json_body=[])

    response = client.post(
        "/mcp/rpc",
        json={"jsonrpc": "2.0", "id": 1, "method": "tools/call", "params": {"name": "list-companies"}},
        headers={"Authorization": "Bearer caller-token", "Procore-Company-Id": "8"},
    )

    assert response.status_code == 200
    request = procore_api.last_request
    assert request.headers["Authorization"] == "Bearer caller-token"
    assert request.headers["Procore-Company-Id"] == "8"


def test_rpc_header_credentials_missing(client, header_credentials) -> None:
    response = client.post("/mcp/rpc", json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"})

    assert response.status_code == 401
    assert "error" in response.json()


def test_mcp_test_requires_bearer(client) -> None:
    response = client.get("/mcp/test")

    assert response.status_code == 401
    assert response.json() == {"error": "Missing or invalid Authorization header. Expected: 'Bearer <token>'"}


def test_mcp_test_rejects_invalid_token(client) -> None:
    with patch("procore_mcp.main.is_valid_token", AsyncMock(return_value=False)):
        response = client.get("/mcp/test", headers={"Authorization": "Bearer expired"})

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid or expired bearer token"}


def test_mcp_test_with_valid_token(client) -> None:
    validator = AsyncMock(return_value=True)
    with patch("procore_mcp.main.is_valid_token", validator):
        response = client.get(
            "/mcp/test", headers={"Authorization": "Bearer good", "Procore-Company-Id": "31"},
        )

    assert response.status_code == 200
    data = response.json()
    assert data["availableTools"][0] == "list-companies"
    assert data["rpcEndpoint"].endswith("/mcp/rpc")
    assert data["companyId"] == "31"
    validator.assert_awaited_once_with("good")
