"""Environment-driven configuration.

Entry points call ``load_dotenv()`` first, so a local ``.env`` file can
provide any of these variables.
"""

import os
from dataclasses import dataclass
from typing import Optional

from .api.exceptions import ConfigurationError


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


@dataclass
class SyncingConfig:
    """Pagination tuning for one coordinator.

    Attributes:
        page_size: Items requested per page
        prefetch_threshold: Trailing items of a page that trigger a prefetch
            of the next page when they become visible
        page_ttl_seconds: How long a synced page counts as fresh (None = until
            the next first-page sync)
        strict_queries: Raise malformed-query errors instead of logging them
    """

    page_size: int = 25
    prefetch_threshold: int = 5
    page_ttl_seconds: Optional[float] = None
    strict_queries: bool = False


class StoreConfig:
    """Configuration loaded from environment variables."""

    def __init__(self):
        self.base_url = os.getenv("STORE_BASE_URL", "").rstrip("/")
        self.consumer_key = os.getenv("STORE_CONSUMER_KEY", "")
        self.consumer_secret = os.getenv("STORE_CONSUMER_SECRET", "")
        self.site_id = _env_int("STORE_SITE_ID", 0)
        self.database_url = os.getenv("DATABASE_URL") or None
        self.settings_file = os.getenv("SETTINGS_FILE") or None

        self.page_size = _env_int("SYNC_PAGE_SIZE", 25)
        self.prefetch_threshold = _env_int("SYNC_PREFETCH_THRESHOLD", 5)
        ttl = os.getenv("SYNC_PAGE_TTL_SECONDS")
        self.page_ttl_seconds = float(ttl) if ttl else None
        self.strict_queries = _env_bool("SYNC_STRICT_QUERIES")

    def validate(self) -> None:
        """Raise ConfigurationError listing every missing required variable."""
        missing = [
            name
            for name, value in (
                ("STORE_BASE_URL", self.base_url),
                ("STORE_CONSUMER_KEY", self.consumer_key),
                ("STORE_CONSUMER_SECRET", self.consumer_secret),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}",
                missing_keys=missing,
            )
        if self.page_size < 1:
            raise ConfigurationError(f"SYNC_PAGE_SIZE must be positive, got {self.page_size}")

    def syncing_config(self) -> SyncingConfig:
        return SyncingConfig(
            page_size=self.page_size,
            prefetch_threshold=self.prefetch_threshold,
            page_ttl_seconds=self.page_ttl_seconds,
            strict_queries=self.strict_queries,
        )

    def __repr__(self):
        return (
            f"StoreConfig("
            f"base_url={self.base_url!r}, "
            f"site_id={self.site_id}, "
            f"page_size={self.page_size}, "
            f"database={'yes' if self.database_url else 'no'})"
        )
