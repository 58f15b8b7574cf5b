"""Unit tests for the user directory client"""

import asyncio
import httpx
import pytest
from coop_lending.domain.exceptions import DirectoryAPIError
from coop_lending.domain.roles import Role
from coop_lending.infrastructure.clients.directory import DirectoryClient


def make_client(handler) -> DirectoryClient:
    return DirectoryClient(base_url="http://directory.test", timeout=1.0, transport=httpx.MockTransport(handler))


def test_get_user_parses_response():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/users/cashier-a"
        return httpx.Response(200, json={"id": "cashier-a", "fullName": "Abebe Kebede", "role": "CASHIER"})

    user = asyncio.run(make_client(handler).get_user("cashier-a"))

    assert user.id == "cashier-a"
    assert user.full_name == "Abebe Kebede"
    assert user.role == Role.CASHIER


def test_get_user_unknown_returns_none():
    user = asyncio.run(make_client(lambda request: httpx.Response(404)).get_user("ghost"))
    assert user is None


def test_get_user_server_error():
    with pytest.raises(DirectoryAPIError, match="500"):
        asyncio.run(make_client(lambda request: httpx.Response(500)).get_user("cashier-a"))


def test_get_user_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(DirectoryAPIError, match="timeout"):
        asyncio.run(make_client(handler).get_user("cashier-a"))


def test_get_user_malformed_payload():
    handler = lambda request: httpx.Response(200, json={"id": "x", "role": "WIZARD"})
    with pytest.raises(DirectoryAPIError, match="Invalid user data"):
        asyncio.run(make_client(handler).get_user("x"))
