#!/usr/bin/env python3
"""Exception hierarchy for the store sync client.

Every error raised by the transport, the local cache, the sync layer or the
settings service derives from StoreSyncError, so callers can catch the whole
family with one except clause while still branching on the concrete type.

Exception Hierarchy:
    StoreSyncError (base)
    ├── ConfigurationError
    ├── AuthenticationError
    │   └── InvalidCredentialsError
    ├── APIError
    │   ├── RateLimitError
    │   ├── NotFoundError
    │   ├── ValidationError
    │   └── ServerError
    ├── NetworkError
    │   ├── ConnectionError
    │   └── TimeoutError
    ├── DatabaseError
    │   ├── ConnectionPoolError
    │   ├── TransactionError
    │   └── IntegrityError
    ├── SyncError
    │   ├── PartialSyncError
    │   ├── PageSyncError
    │   └── CircuitOpenError
    ├── ProjectionError
    │   └── QueryError
    └── SettingsError
"""
from datetime import datetime, timezone
from typing import Any, Optional

# ============================================
# Base Exception
# ============================================


class StoreSyncError(Exception):
    """Base exception for all store sync errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "RATE_LIMIT_EXCEEDED")
        details: Additional context as a dictionary
        timestamp: When the error occurred (UTC)
        cause: The original exception, if any
        recoverable: Whether retrying the same operation may succeed
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__.upper()
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)
        self.cause = cause
        self.recoverable = recoverable

        if cause:
            self.__cause__ = cause

    def __str__(self) -> str:
        parts = [f"[{self.code}]", self.message]
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            parts.append(f"({detail_str})")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"recoverable={self.recoverable})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for logging or JSON output."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "recoverable": self.recoverable,
            "cause": str(self.cause) if self.cause else None,
        }


# ============================================
# Configuration Errors
# ============================================


class ConfigurationError(StoreSyncError):
    """Raised when required configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list[str]] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(
            message,
            code="CONFIGURATION_ERROR",
            details=details,
            recoverable=False,
            **kwargs,
        )


# ============================================
# Authentication Errors
# ============================================


class AuthenticationError(StoreSyncError):
    """Raised when the store rejects the request credentials (401/403)."""

    def __init__(self, message: str = "Authentication failed", **kwargs):
        kwargs.setdefault("code", "AUTHENTICATION_ERROR")
        kwargs.setdefault("recoverable", False)
        super().__init__(message, **kwargs)


class InvalidCredentialsError(AuthenticationError):
    """Raised on HTTP 401: the store did not accept the consumer key/secret pair."""

    def __init__(self, message: str = "Invalid consumer credentials", **kwargs):
        super().__init__(message, code="INVALID_CREDENTIALS", **kwargs)


# ============================================
# API Errors
# ============================================


class APIError(StoreSyncError):
    """Raised when the REST API answers with an error status.

    Attributes:
        status_code: HTTP status code
        endpoint: API endpoint that was called
        method: HTTP method
        response_body: Raw response body, truncated to 500 characters
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        endpoint: Optional[str] = None,
        response_body: Optional[str] = None,
        method: str = "GET",
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        details["status_code"] = status_code
        if endpoint:
            details["endpoint"] = endpoint
        if method:
            details["method"] = method
        if response_body:
            details["response_body"] = response_body[:500]

        kwargs.setdefault("recoverable", status_code in (429, 500, 502, 503, 504))
        kwargs.setdefault("code", f"API_ERROR_{status_code}")

        super().__init__(message, details=details, **kwargs)
        self.status_code = status_code
        self.endpoint = endpoint
        self.response_body = response_body
        self.method = method


class RateLimitError(APIError):
    """Raised on HTTP 429.

    Attributes:
        retry_after: Seconds to wait before retrying (Retry-After header)
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[int] = None,
        **kwargs,
    ):
        kwargs.setdefault("status_code", 429)
        details = kwargs.pop("details", {})
        if retry_after:
            details["retry_after_seconds"] = retry_after
        super().__init__(
            message,
            code="RATE_LIMIT_EXCEEDED",
            details=details,
            **kwargs,
        )
        self.retry_after = retry_after or 60


class NotFoundError(APIError):
    """Raised on HTTP 404, e.g. a product that was deleted remotely."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        **kwargs,
    ):
        message = f"{resource_type} not found"
        if resource_id:
            message = f"{resource_type} '{resource_id}' not found"

        kwargs.setdefault("status_code", 404)
        details = kwargs.pop("details", {})
        details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id

        super().__init__(
            message,
            code="NOT_FOUND",
            details=details,
            recoverable=False,
            **kwargs,
        )


class ValidationError(APIError):
    """Raised on HTTP 400/422 (bad filter, bad page parameters)."""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        kwargs.setdefault("status_code", 400)
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        super().__init__(
            message,
            code="VALIDATION_ERROR",
            details=details,
            recoverable=False,
            **kwargs,
        )


class ServerError(APIError):
    """Raised on HTTP 5xx."""

    def __init__(self, message: str = "Server error", **kwargs):
        kwargs.setdefault("status_code", 500)
        super().__init__(
            message,
            code="SERVER_ERROR",
            recoverable=True,
            **kwargs,
        )


# ============================================
# Network Errors
# ============================================


class NetworkError(StoreSyncError):
    """Base class for transport-level failures. Usually transient."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)


class ConnectionError(NetworkError):
    """Raised when the store host cannot be reached."""

    def __init__(
        self,
        message: str = "Failed to connect to store",
        host: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if host:
            details["host"] = host
        super().__init__(message, code="CONNECTION_ERROR", details=details, **kwargs)


class TimeoutError(NetworkError):
    """Raised when a request exceeds its timeout."""

    def __init__(
        self,
        message: str = "Request timed out",
        timeout_seconds: Optional[float] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if timeout_seconds:
            details["timeout_seconds"] = timeout_seconds
        super().__init__(message, code="TIMEOUT_ERROR", details=details, **kwargs)


# ============================================
# Database Errors
# ============================================


class DatabaseError(StoreSyncError):
    """Base class for local cache persistence failures."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)


class ConnectionPoolError(DatabaseError):
    """Raised when no connection can be acquired from the pool."""

    def __init__(self, message: str = "Database connection pool error", **kwargs):
        super().__init__(message, code="CONNECTION_POOL_ERROR", **kwargs)


class TransactionError(DatabaseError):
    """Raised when a cache write transaction fails and is rolled back."""

    def __init__(
        self,
        message: str = "Database transaction failed",
        operation: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if operation:
            details["operation"] = operation
        super().__init__(message, code="TRANSACTION_ERROR", details=details, **kwargs)


class IntegrityError(DatabaseError):
    """Raised when a cache row violates a constraint."""

    def __init__(
        self,
        message: str = "Database integrity error",
        constraint: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if constraint:
            details["constraint"] = constraint
        super().__init__(
            message,
            code="INTEGRITY_ERROR",
            details=details,
            recoverable=False,
            **kwargs,
        )


# ============================================
# Sync Errors
# ============================================


class SyncError(StoreSyncError):
    """Base class for synchronization errors."""


class PartialSyncError(SyncError):
    """Raised when some items of a page could not be mapped or stored.

    Attributes:
        succeeded: Number of items handled successfully
        failed: Number of items that failed
        errors: The individual errors
    """

    def __init__(
        self,
        message: str,
        succeeded: int = 0,
        failed: int = 0,
        errors: Optional[list[Exception]] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        details["succeeded"] = succeeded
        details["failed"] = failed
        if errors:
            details["sample_errors"] = [str(e)[:100] for e in errors[:5]]
        super().__init__(
            message,
            code="PARTIAL_SYNC_ERROR",
            details=details,
            recoverable=True,
            **kwargs,
        )
        self.succeeded = succeeded
        self.failed = failed
        self.errors = errors or []


class PageSyncError(SyncError):
    """Raised when a page fetch failed and the caller asked for an exception.

    Attributes:
        page_number: The page that failed
    """

    def __init__(self, page_number: int, message: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        details["page_number"] = page_number
        kwargs.setdefault("recoverable", True)
        super().__init__(
            message or f"Failed to synchronize page {page_number}",
            code="PAGE_SYNC_ERROR",
            details=details,
            **kwargs,
        )
        self.page_number = page_number


class CircuitOpenError(SyncError):
    """Raised when the circuit breaker rejects a request.

    Attributes:
        reset_at: When the breaker will let a probe request through
    """

    def __init__(
        self,
        message: str = "Circuit breaker is open, requests rejected",
        reset_at: Optional[datetime] = None,
        failure_count: int = 0,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if reset_at:
            details["reset_at"] = reset_at.isoformat()
        details["failure_count"] = failure_count
        super().__init__(
            message,
            code="CIRCUIT_OPEN",
            details=details,
            recoverable=True,
            **kwargs,
        )
        self.reset_at = reset_at
        self.failure_count = failure_count


# ============================================
# Projection Errors
# ============================================


class ProjectionError(StoreSyncError):
    """Raised when a results projection cannot be (re)computed."""

    def __init__(self, message: str, entity_type: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if entity_type:
            details["entity_type"] = entity_type
        kwargs.setdefault("code", "PROJECTION_ERROR")
        super().__init__(message, details=details, **kwargs)


class QueryError(ProjectionError):
    """Raised for a malformed predicate or sort. A programming error."""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        super().__init__(
            message,
            code="QUERY_ERROR",
            details=details,
            recoverable=False,
            **kwargs,
        )


# ============================================
# Settings Errors
# ============================================


class SettingsError(StoreSyncError):
    """Raised when persisted settings cannot be read or written."""

    def __init__(self, message: str, key: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if key:
            details["key"] = key
        super().__init__(message, code="SETTINGS_ERROR", details=details, **kwargs)


# ============================================
# Error Aggregation
# ============================================


class ErrorCollector:
    """Collect per-item errors while processing a page.

    Example:
        collector = ErrorCollector()
        for raw in items:
            try:
                entities.append(mapper.map_to_entity(raw, site_id))
            except Exception as e:
                collector.add(e, context={"id": raw.get("id")})

        if collector.has_errors():
            logger.warning(str(collector.to_exception()))
    """

    def __init__(self, max_errors: int = 100):
        self.errors: list[tuple[Exception, dict[str, Any]]] = []
        self.max_errors = max_errors

    def add(self, error: Exception, context: Optional[dict[str, Any]] = None):
        """Add an error with optional context."""
        if len(self.errors) < self.max_errors:
            self.errors.append((error, context or {}))

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def count(self) -> int:
        return len(self.errors)

    def get_errors(self) -> list[tuple[Exception, dict[str, Any]]]:
        return list(self.errors)

    def to_exception(self, succeeded: int = 0) -> PartialSyncError:
        """Convert collected errors to a PartialSyncError."""
        if not self.errors:
            raise ValueError("No errors to convert")

        return PartialSyncError(
            message=f"{len(self.errors)} error(s) occurred during operation",
            succeeded=succeeded,
            failed=len(self.errors),
            errors=[e for e, _ in self.errors],
        )


__all__ = [
    "StoreSyncError",
    "ConfigurationError",
    "AuthenticationError",
    "InvalidCredentialsError",
    "APIError",
    "RateLimitError",
    "NotFoundError",
    "ValidationError",
    "ServerError",
    "NetworkError",
    "ConnectionError",
    "TimeoutError",
    "DatabaseError",
    "ConnectionPoolError",
    "TransactionError",
    "IntegrityError",
    "SyncError",
    "PartialSyncError",
    "PageSyncError",
    "CircuitOpenError",
    "ProjectionError",
    "QueryError",
    "SettingsError",
    "ErrorCollector",
]
