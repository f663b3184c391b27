#!/usr/bin/env python3
"""Tests for StoreAPIClient.

The low-level ``_request`` is replaced with an AsyncMock so no HTTP session
is needed; these tests cover paging parameters, error mapping, retry and
circuit breaking on top of it.
"""
import base64
from unittest.mock import AsyncMock

import pytest

from src.storesync.api.client import StoreAPIClient
from src.storesync.api.exceptions import (
    APIError,
    AuthenticationError,
    CircuitOpenError,
    ConfigurationError,
    InvalidCredentialsError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServerError,
    ValidationError,
)


def make_client(**kwargs) -> StoreAPIClient:
    kwargs.setdefault("retry_delay", 0)
    return StoreAPIClient("https://shop.example.com/wp-json/", "ck_test", "cs_test", **kwargs)


class TestConfiguration:
    """Test constructor validation."""

    def test_missing_base_url(self):
        with pytest.raises(ConfigurationError) as exc_info:
            StoreAPIClient("", "ck", "cs")
        assert "STORE_BASE_URL" in exc_info.value.details["missing_keys"]

    def test_missing_credentials(self):
        with pytest.raises(ConfigurationError) as exc_info:
            StoreAPIClient("https://shop.example.com", "", "")
        assert exc_info.value.details["missing_keys"] == ["STORE_CONSUMER_KEY", "STORE_CONSUMER_SECRET"]

    def test_trailing_slash_stripped(self):
        assert make_client().base_url == "https://shop.example.com/wp-json"

    @pytest.mark.asyncio
    async def test_request_outside_context_manager(self):
        with pytest.raises(RuntimeError):
            await make_client()._request("GET", "/wc/v3/products")

    @pytest.mark.asyncio
    async def test_session_sends_basic_auth_header(self):
        expected = "Basic " + base64.b64encode(b"ck_test:cs_test").decode("ascii")

        async with make_client() as client:
            assert client._session.headers["Authorization"] == expected


class TestErrorMapping:
    """Test status code to exception mapping."""

    @pytest.mark.parametrize(
        "status,expected",
        [
            (401, InvalidCredentialsError),
            (403, AuthenticationError),
            (404, NotFoundError),
            (429, RateLimitError),
            (400, ValidationError),
            (422, ValidationError),
            (500, ServerError),
            (503, ServerError),
            (409, APIError),
        ],
    )
    def test_status_maps_to_exception(self, status, expected):
        error = make_client()._create_api_error(status, "GET", "/wc/v3/orders", "{}")
        assert type(error) is expected

    def test_rejected_key_is_authentication_error(self):
        error = make_client()._create_api_error(401, "GET", "/wc/v3/orders", "")
        assert isinstance(error, AuthenticationError)
        assert error.code == "INVALID_CREDENTIALS"

    def test_retry_after_header_parsed(self):
        error = make_client()._create_api_error(429, "GET", "/wc/v3/orders", "", retry_after="7")
        assert error.retry_after == 7

    def test_server_error_is_recoverable(self):
        error = make_client()._create_api_error(502, "GET", "/wc/v3/orders", "")
        assert error.recoverable is True
        assert error.status_code == 502


class TestGetPage:
    """Test page fetching."""

    @pytest.mark.asyncio
    async def test_sends_page_params(self):
        client = make_client()
        client._request = AsyncMock(return_value=[{"id": 1}])

        items = await client.get_page("/wc/v3/products", 2, 25, {"status": "publish", "search": None})

        assert items == [{"id": 1}]
        client._request.assert_awaited_once_with(
            "GET",
            "/wc/v3/products",
            params={"status": "publish", "page": 2, "per_page": 25},
            json_body=None,
        )

    @pytest.mark.asyncio
    async def test_rejects_page_zero(self):
        with pytest.raises(ValueError):
            await make_client().get_page("/wc/v3/products", 0, 25)

    @pytest.mark.asyncio
    async def test_non_list_body_is_api_error(self):
        client = make_client()
        client._request = AsyncMock(return_value={"code": "oops"})

        with pytest.raises(APIError):
            await client.get_page("/wc/v3/products", 1, 25)


class TestRetryAndCircuit:
    """Test resilience wiring."""

    @pytest.mark.asyncio
    async def test_transient_error_retried(self):
        client = make_client(max_retries=3)
        client._request = AsyncMock(side_effect=[NetworkError("blip"), [{"id": 1}]])

        items = await client.get_page("/wc/v3/products", 1, 25)

        assert items == [{"id": 1}]
        assert client._request.await_count == 2

    @pytest.mark.asyncio
    async def test_not_found_not_retried(self):
        client = make_client(max_retries=3)
        client._request = AsyncMock(side_effect=NotFoundError("Resource", "/wc/v3/products/9"))

        with pytest.raises(NotFoundError):
            await client.get("/wc/v3/products/9")

        assert client._request.await_count == 1

    @pytest.mark.asyncio
    async def test_circuit_opens_after_exhausted_retries(self):
        client = make_client(max_retries=1, circuit_failure_threshold=2)
        client._request = AsyncMock(side_effect=ServerError("down", status_code=503))

        for _ in range(2):
            with pytest.raises(ServerError):
                await client.get("/wc/v3/orders")

        with pytest.raises(CircuitOpenError):
            await client.get("/wc/v3/orders")
        assert client.circuit_status["state"] == "open"

    def test_circuit_breaker_can_be_disabled(self):
        assert make_client(enable_circuit_breaker=False).circuit_status is None
