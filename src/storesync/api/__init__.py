"""Store API modules.

Classes:
    StoreAPIClient: Async REST client with page fetching, retry and circuit breaker

Exceptions:
    StoreSyncError: Base exception for all storesync errors
    ConfigurationError: Missing or invalid configuration
    AuthenticationError: Rejected credentials
    APIError: API request failures
    RateLimitError: Rate limit exceeded
    NetworkError: Network connectivity issues
    DatabaseError: Database operation failures
    SyncError: Synchronization failures
    ProjectionError: Local store query failures
    SettingsError: Settings persistence failures

Resilience:
    CircuitBreaker: Prevent cascading failures
    retry_async: Retry a coroutine with exponential backoff
"""
from .client import StoreAPIClient
from .database import (
    close_pool,
    create_pool,
    database_connection,
    database_transaction,
)
from .exceptions import (
    APIError,
    AuthenticationError,
    CircuitOpenError,
    ConfigurationError,
    ConnectionPoolError,
    DatabaseError,
    ErrorCollector,
    IntegrityError,
    InvalidCredentialsError,
    NetworkError,
    NotFoundError,
    PageSyncError,
    PartialSyncError,
    ProjectionError,
    QueryError,
    RateLimitError,
    ServerError,
    SettingsError,
    StoreSyncError,
    SyncError,
    TransactionError,
    ValidationError,
)
from .resilience import RETRYABLE_EXCEPTIONS, CircuitBreaker, CircuitState, retry_async

__all__ = [
    # Client
    "StoreAPIClient",
    # Database
    "close_pool",
    "create_pool",
    "database_connection",
    "database_transaction",
    # Exceptions
    "APIError",
    "AuthenticationError",
    "CircuitOpenError",
    "ConfigurationError",
    "ConnectionPoolError",
    "DatabaseError",
    "ErrorCollector",
    "IntegrityError",
    "InvalidCredentialsError",
    "NetworkError",
    "NotFoundError",
    "PageSyncError",
    "PartialSyncError",
    "ProjectionError",
    "QueryError",
    "RateLimitError",
    "ServerError",
    "SettingsError",
    "StoreSyncError",
    "SyncError",
    "TransactionError",
    "ValidationError",
    # Resilience
    "RETRYABLE_EXCEPTIONS",
    "CircuitBreaker",
    "CircuitState",
    "retry_async",
]
