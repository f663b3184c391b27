"""Locally persisted app settings."""

from .accessors import GENERAL_SETTING_ACCESSORS, BetaFeature, GeneralSetting, SettingAccessor
from .models import (
    DateRangeKind,
    GeneralAppSettings,
    OrderDateRangeFilter,
    OrdersSettings,
    ProductsSettings,
    ProductsSortOrder,
)
from .service import AppSettingsService
from .stores import InMemorySettingsStore, JSONFileSettingsStore

__all__ = [
    "AppSettingsService",
    "BetaFeature",
    "DateRangeKind",
    "GENERAL_SETTING_ACCESSORS",
    "GeneralAppSettings",
    "GeneralSetting",
    "InMemorySettingsStore",
    "JSONFileSettingsStore",
    "OrderDateRangeFilter",
    "OrdersSettings",
    "ProductsSettings",
    "ProductsSortOrder",
    "SettingAccessor",
]
