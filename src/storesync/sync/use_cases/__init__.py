"""Use cases layer - Business logic orchestration."""

from .sync_page import SyncPageUseCase

__all__ = ["SyncPageUseCase"]
