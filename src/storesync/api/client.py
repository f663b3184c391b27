#!/usr/bin/env python3
"""Async HTTP client for a WooCommerce-style store REST API.

The client knows how to talk to the store (auth, paging parameters, retry,
circuit breaking, error mapping) but not what a product or an order is. The
remote page adapters in ``storesync.sync.adapters`` compose it.

Usage:
    async with StoreAPIClient(base_url, key, secret) as client:
        page = await client.get_page("/wc/v3/products", page_number=1, page_size=25)
"""
import asyncio
import base64
import logging
from typing import Any, Optional

import aiohttp

from .exceptions import (
    APIError,
    AuthenticationError,
    ConfigurationError,
    ConnectionError,
    InvalidCredentialsError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServerError,
    TimeoutError,
    ValidationError,
)
from .resilience import CircuitBreaker, retry_async

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 30


class StoreAPIClient:
    """Async client for the store REST API.

    Use as an async context manager so the aiohttp session is closed:

        async with StoreAPIClient(...) as client:
            items = await client.get_page("/wc/v3/orders", 1, 25)

    Attributes:
        base_url: Site URL including the REST prefix, e.g.
            "https://shop.example.com/wp-json"
    """

    def __init__(
        self,
        base_url: str,
        consumer_key: str,
        consumer_secret: str,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        enable_circuit_breaker: bool = True,
        circuit_failure_threshold: int = 5,
        circuit_timeout: float = 60.0,
    ):
        if not base_url:
            raise ConfigurationError(
                "Store base URL is required",
                missing_keys=["STORE_BASE_URL"],
            )
        missing = [
            name
            for name, value in (
                ("STORE_CONSUMER_KEY", consumer_key),
                ("STORE_CONSUMER_SECRET", consumer_secret),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError("Store API credentials are required", missing_keys=missing)

        self.base_url = base_url.rstrip("/")
        token = base64.b64encode(f"{consumer_key}:{consumer_secret}".encode("utf-8")).decode("ascii")
        self._auth_header = f"Basic {token}"
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._session: Optional[aiohttp.ClientSession] = None

        self._circuit_breaker: Optional[CircuitBreaker] = None
        if enable_circuit_breaker:
            self._circuit_breaker = CircuitBreaker(
                failure_threshold=circuit_failure_threshold,
                timeout=circuit_timeout,
                name="store_api",
            )

    async def __aenter__(self) -> "StoreAPIClient":
        self._session = aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(limit=10, limit_per_host=10),
            timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT_SECONDS, connect=10),
            headers={"Accept": "application/json", "Authorization": self._auth_header},
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    # ----------------------------------------
    # Low-Level Request Methods
    # ----------------------------------------

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json_body: Optional[dict] = None,
    ) -> Any:
        """Send one request and decode the JSON body. No retry.

        Raises:
            APIError subclasses for non-2xx responses
            ConnectionError, TimeoutError, NetworkError for transport failures
        """
        if not self._session:
            raise RuntimeError(
                "StoreAPIClient must be used as async context manager: "
                "async with StoreAPIClient(...) as client:"
            )

        url = f"{self.base_url}{endpoint}"
        try:
            async with self._session.request(
                method=method,
                url=url,
                params=params,
                json=json_body,
            ) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise self._create_api_error(
                        status=response.status,
                        method=method,
                        endpoint=endpoint,
                        response_body=body,
                        retry_after=response.headers.get("Retry-After"),
                    )
                return await response.json(content_type=None)

        except aiohttp.ClientConnectionError as e:
            raise ConnectionError(
                f"Failed to connect to {self.base_url}",
                host=self.base_url,
                cause=e,
            )
        except asyncio.TimeoutError as e:
            raise TimeoutError(
                f"Request to {endpoint} timed out",
                timeout_seconds=REQUEST_TIMEOUT_SECONDS,
                cause=e,
            )
        except aiohttp.ContentTypeError as e:
            raise APIError(
                f"Response from {endpoint} is not JSON",
                status_code=e.status or 200,
                endpoint=endpoint,
                method=method,
                cause=e,
            )
        except aiohttp.ClientError as e:
            raise NetworkError(f"Network error during {method} {endpoint}: {e}", cause=e)

    def _create_api_error(
        self,
        status: int,
        method: str,
        endpoint: str,
        response_body: str,
        retry_after: Optional[str] = None,
    ) -> Exception:
        """Map an error status to the matching exception type."""
        if status == 401:
            return InvalidCredentialsError(
                f"Store did not accept the consumer key for {method} {endpoint}",
                details={"endpoint": endpoint, "status_code": status},
            )
        if status == 403:
            return AuthenticationError(
                f"Store rejected credentials ({status}) for {method} {endpoint}",
                details={"endpoint": endpoint, "status_code": status},
            )
        if status == 404:
            return NotFoundError(
                resource_type="Resource",
                resource_id=endpoint,
                endpoint=endpoint,
                method=method,
                response_body=response_body,
            )
        if status == 429:
            seconds = int(retry_after) if retry_after and retry_after.isdigit() else None
            return RateLimitError(
                f"Rate limit exceeded for {endpoint}",
                retry_after=seconds,
                endpoint=endpoint,
                method=method,
                response_body=response_body,
            )
        if status in (400, 422):
            return ValidationError(
                f"Validation failed for {method} {endpoint}",
                status_code=status,
                endpoint=endpoint,
                method=method,
                response_body=response_body,
            )
        if status >= 500:
            return ServerError(
                f"Server error ({status}) for {method} {endpoint}",
                status_code=status,
                endpoint=endpoint,
                method=method,
                response_body=response_body,
            )
        return APIError(
            f"{method} {endpoint} failed",
            status_code=status,
            endpoint=endpoint,
            method=method,
            response_body=response_body,
        )

    async def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json_body: Optional[dict] = None,
    ) -> Any:
        """Send a request through the circuit breaker with retry on transient errors."""

        async def attempt() -> Any:
            return await retry_async(
                self._request,
                method,
                endpoint,
                params=params,
                json_body=json_body,
                max_attempts=self.max_retries,
                initial_delay=self.retry_delay,
            )

        if self._circuit_breaker:
            return await self._circuit_breaker.call(attempt)
        return await attempt()

    @property
    def circuit_status(self) -> Optional[dict[str, Any]]:
        if self._circuit_breaker:
            return self._circuit_breaker.get_status()
        return None

    # ----------------------------------------
    # High-Level Request Methods
    # ----------------------------------------

    async def get(self, endpoint: str, params: Optional[dict] = None) -> Any:
        return await self._request_with_retry("GET", endpoint, params=params)

    async def get_page(
        self,
        endpoint: str,
        page_number: int,
        page_size: int,
        params: Optional[dict] = None,
    ) -> list[dict]:
        """Fetch one page of a collection endpoint.

        Args:
            endpoint: Collection path, e.g. "/wc/v3/products"
            page_number: 1-based page number
            page_size: Items per page (the API caps this at 100)
            params: Extra filters, passed through as query parameters

        Returns:
            The decoded JSON array for that page

        Raises:
            APIError: The endpoint did not return a JSON array
        """
        if page_number < 1:
            raise ValueError(f"page_number must be >= 1, got {page_number}")

        query = {k: v for k, v in (params or {}).items() if v is not None}
        query["page"] = page_number
        query["per_page"] = page_size

        data = await self.get(endpoint, params=query)
        if not isinstance(data, list):
            raise APIError(
                f"Expected a JSON array from {endpoint}, got {type(data).__name__}",
                status_code=200,
                endpoint=endpoint,
            )
        logger.debug(f"GET {endpoint} page={page_number}: {len(data)} item(s)")
        return data


__all__ = ["StoreAPIClient"]
