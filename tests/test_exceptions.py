#!/usr/bin/env python3
"""Tests for the exception hierarchy and ErrorCollector."""
import pytest

from src.storesync.api.exceptions import (
    APIError,
    ErrorCollector,
    NotFoundError,
    PageSyncError,
    PartialSyncError,
    ProjectionError,
    QueryError,
    RateLimitError,
    ServerError,
    StoreSyncError,
    SyncError,
)


class TestHierarchy:
    """Test exception classification."""

    def test_query_error_is_projection_error(self):
        error = QueryError("Unknown field 'colour'", field="colour")
        assert isinstance(error, ProjectionError)
        assert isinstance(error, StoreSyncError)
        assert error.code == "QUERY_ERROR"
        assert error.details["field"] == "colour"

    def test_recoverable_flags(self):
        assert RateLimitError("slow down").recoverable is True
        assert ServerError("down", status_code=503).recoverable is True
        assert NotFoundError("product", "5").recoverable is False

    def test_rate_limit_default_retry_after(self):
        assert RateLimitError("slow down").retry_after == 60

    def test_page_sync_error(self):
        error = PageSyncError(3)
        assert isinstance(error, SyncError)
        assert error.details["page_number"] == 3

    def test_str_includes_code_and_details(self):
        error = NotFoundError("order", "17")
        text = str(error)
        assert text.startswith("[")
        assert "order" in text

    def test_to_dict(self):
        data = APIError("bad gateway", status_code=502, endpoint="/wc/v3/orders").to_dict()
        assert data["message"] == "bad gateway"
        assert data["details"]["status_code"] == 502
        assert data["details"]["endpoint"] == "/wc/v3/orders"


class TestErrorCollector:
    """Test per-item error aggregation."""

    def test_collects_with_context(self):
        collector = ErrorCollector()
        collector.add(ValueError("bad price"), context={"id": 7})

        assert collector.has_errors()
        assert collector.count() == 1
        assert collector.get_errors()[0][1] == {"id": 7}

    def test_respects_max_errors(self):
        collector = ErrorCollector(max_errors=2)
        for i in range(5):
            collector.add(ValueError(str(i)))
        assert collector.count() == 2

    def test_to_exception(self):
        collector = ErrorCollector()
        collector.add(ValueError("a"))
        collector.add(KeyError("b"))

        error = collector.to_exception(succeeded=23)

        assert isinstance(error, PartialSyncError)
        assert error.details["succeeded"] == 23
        assert error.details["failed"] == 2

    def test_to_exception_without_errors(self):
        with pytest.raises(ValueError):
            ErrorCollector().to_exception()
