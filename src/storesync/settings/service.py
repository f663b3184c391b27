"""App settings service: typed operations over an ISettingsStore.

Products and orders settings are kept per site in one document each;
general settings are a single document.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from ..api.exceptions import SettingsError
from ..sync.domain.ports import ISettingsStore
from .accessors import GENERAL_SETTING_ACCESSORS, BetaFeature, GeneralSetting
from .models import (
    GeneralAppSettings,
    OrderDateRangeFilter,
    OrdersSettings,
    ProductsSettings,
    ProductsSortOrder,
)

logger = logging.getLogger(__name__)

PRODUCTS_SETTINGS_KEY = "products_settings"
ORDERS_SETTINGS_KEY = "orders_settings"
GENERAL_SETTINGS_KEY = "general_settings"

JETPACK_BANNER_SNOOZE = timedelta(days=5)

M = TypeVar("M", bound=BaseModel)


class AppSettingsService:
    """Load, update and reset locally persisted settings.

    Example:
        service = AppSettingsService(JSONFileSettingsStore("settings.json"))
        service.upsert_products_settings(42, sort=ProductsSortOrder.DATE_DESCENDING)
        service.load_products_settings(42).sort
    """

    def __init__(self, store: ISettingsStore):
        self.store = store

    # ----------------------------------------
    # Per-site documents
    # ----------------------------------------

    def _load_site_document(self, key: str) -> dict[str, Any]:
        return self.store.load(key) or {}

    def _parse(self, model: type[M], data: Any, key: str) -> M:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise SettingsError(f"Stored '{key}' settings are invalid: {e}", key=key, cause=e)

    def _load_site_settings(self, key: str, model: type[M], site_id: int) -> Optional[M]:
        raw = self._load_site_document(key).get(str(site_id))
        if raw is None:
            return None
        return self._parse(model, raw, key)

    def _save_site_settings(self, key: str, settings: BaseModel, site_id: int) -> None:
        document = self._load_site_document(key)
        document[str(site_id)] = settings.model_dump(mode="json")
        self.store.save(key, document)

    # ----------------------------------------
    # Products Settings
    # ----------------------------------------

    def load_products_settings(self, site_id: int) -> Optional[ProductsSettings]:
        """Return the stored products settings for a site, or None if never saved."""
        return self._load_site_settings(PRODUCTS_SETTINGS_KEY, ProductsSettings, site_id)

    def upsert_products_settings(
        self,
        site_id: int,
        sort: Optional[ProductsSortOrder] = None,
        stock_status_filter: Optional[str] = None,
        product_status_filter: Optional[str] = None,
        product_type_filter: Optional[str] = None,
        product_category_filter: Optional[int] = None,
    ) -> ProductsSettings:
        """Replace a site's products settings; omitted values are cleared."""
        settings = ProductsSettings(
            site_id=site_id,
            sort=sort,
            stock_status_filter=stock_status_filter,
            product_status_filter=product_status_filter,
            product_type_filter=product_type_filter,
            product_category_filter=product_category_filter,
        )
        self._save_site_settings(PRODUCTS_SETTINGS_KEY, settings, site_id)
        return settings

    def reset_products_settings(self) -> None:
        self.store.delete(PRODUCTS_SETTINGS_KEY)

    # ----------------------------------------
    # Orders Settings
    # ----------------------------------------

    def load_orders_settings(self, site_id: int) -> Optional[OrdersSettings]:
        return self._load_site_settings(ORDERS_SETTINGS_KEY, OrdersSettings, site_id)

    def upsert_orders_settings(
        self,
        site_id: int,
        order_statuses_filter: Optional[list[str]] = None,
        date_range_filter: Optional[OrderDateRangeFilter] = None,
    ) -> OrdersSettings:
        settings = OrdersSettings(
            site_id=site_id,
            order_statuses_filter=order_statuses_filter,
            date_range_filter=date_range_filter,
        )
        self._save_site_settings(ORDERS_SETTINGS_KEY, settings, site_id)
        return settings

    def reset_orders_settings(self) -> None:
        self.store.delete(ORDERS_SETTINGS_KEY)

    # ----------------------------------------
    # General Settings
    # ----------------------------------------

    def load_general_settings(self) -> GeneralAppSettings:
        raw = self.store.load(GENERAL_SETTINGS_KEY)
        if raw is None:
            return GeneralAppSettings()
        return self._parse(GeneralAppSettings, raw, GENERAL_SETTINGS_KEY)

    def _save_general_settings(self, settings: GeneralAppSettings) -> None:
        self.store.save(GENERAL_SETTINGS_KEY, settings.model_dump(mode="json"))

    def reset_general_settings(self) -> None:
        self.store.delete(GENERAL_SETTINGS_KEY)

    def get_setting(self, setting: GeneralSetting) -> Any:
        return GENERAL_SETTING_ACCESSORS[setting].getter(self.load_general_settings())

    def set_setting(self, setting: GeneralSetting, value: Any) -> None:
        """Write one general setting.

        Raises:
            TypeError: ``value`` does not match the setting's type
        """
        accessor = GENERAL_SETTING_ACCESSORS[setting]
        accessor.check(value)
        self._save_general_settings(accessor.setter(self.load_general_settings(), value))

    def is_beta_feature_enabled(self, feature: BetaFeature) -> bool:
        return self.get_setting(feature.setting)

    def set_beta_feature_enabled(self, feature: BetaFeature, enabled: bool) -> None:
        logger.info(f"Beta feature '{feature.value}' {'enabled' if enabled else 'disabled'}")
        self.set_setting(feature.setting, enabled)

    def set_installation_date_if_necessary(self, date: datetime) -> bool:
        """Store ``date`` as the installation date unless an earlier one is known.

        Returns:
            True if the stored date changed
        """
        current = self.get_setting(GeneralSetting.INSTALLATION_DATE)
        if current is not None and _as_utc(current) <= _as_utc(date):
            return False
        self.set_setting(GeneralSetting.INSTALLATION_DATE, date)
        return True

    def set_jetpack_benefits_banner_dismissed(self, time: datetime) -> None:
        self.set_setting(GeneralSetting.JETPACK_BENEFITS_BANNER_DISMISSED_TIME, time)

    def is_jetpack_benefits_banner_visible(self, now: Optional[datetime] = None) -> bool:
        """The banner stays hidden for five days after it was last dismissed."""
        dismissed = self.get_setting(GeneralSetting.JETPACK_BENEFITS_BANNER_DISMISSED_TIME)
        if dismissed is None:
            return True
        now = now or datetime.now(timezone.utc)
        return _as_utc(now) - _as_utc(dismissed) >= JETPACK_BANNER_SNOOZE


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
