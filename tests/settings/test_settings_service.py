"""Tests for AppSettingsService and the settings stores."""

import json
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from src.storesync.api.exceptions import SettingsError
from src.storesync.settings.accessors import BetaFeature, GeneralSetting
from src.storesync.settings.models import (
    DateRangeKind,
    GeneralAppSettings,
    OrderDateRangeFilter,
    ProductsSettings,
    ProductsSortOrder,
)
from src.storesync.settings.service import AppSettingsService
from src.storesync.settings.stores import InMemorySettingsStore, JSONFileSettingsStore

JUNE_1 = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def service() -> AppSettingsService:
    return AppSettingsService(InMemorySettingsStore())


class TestProductsSettings:
    """Test per-site products settings."""

    def test_load_returns_none_when_never_saved(self, service):
        assert service.load_products_settings(1) is None

    def test_upsert_then_load(self, service):
        service.upsert_products_settings(1, sort=ProductsSortOrder.DATE_DESCENDING, stock_status_filter="instock")

        loaded = service.load_products_settings(1)

        assert loaded.sort is ProductsSortOrder.DATE_DESCENDING
        assert loaded.stock_status_filter == "instock"
        assert loaded.has_filters is True

    def test_upsert_replaces_whole_record(self, service):
        service.upsert_products_settings(1, sort=ProductsSortOrder.NAME_DESCENDING, product_type_filter="simple")
        service.upsert_products_settings(1, product_category_filter=7)

        loaded = service.load_products_settings(1)

        assert loaded.sort is None
        assert loaded.effective_sort is ProductsSortOrder.NAME_ASCENDING
        assert loaded.product_type_filter is None
        assert loaded.product_category_filter == 7

    def test_sites_are_independent(self, service):
        service.upsert_products_settings(1, sort=ProductsSortOrder.DATE_ASCENDING)
        service.upsert_products_settings(2, sort=ProductsSortOrder.NAME_DESCENDING)

        assert service.load_products_settings(1).sort is ProductsSortOrder.DATE_ASCENDING
        assert service.load_products_settings(2).sort is ProductsSortOrder.NAME_DESCENDING

    def test_reset_clears_all_sites(self, service):
        service.upsert_products_settings(1)
        service.upsert_products_settings(2)

        service.reset_products_settings()

        assert service.load_products_settings(1) is None
        assert service.load_products_settings(2) is None

    def test_defaults_have_no_filters(self):
        assert ProductsSettings(site_id=1).has_filters is False

    def test_invalid_stored_document(self):
        store = InMemorySettingsStore()
        store.save("products_settings", {"1": {"site_id": 1, "sort": "by_price"}})

        with pytest.raises(SettingsError):
            AppSettingsService(store).load_products_settings(1)


class TestOrdersSettings:
    """Test per-site orders settings."""

    def test_round_trip_with_date_range(self, service):
        date_range = OrderDateRangeFilter(kind=DateRangeKind.CUSTOM, start=JUNE_1, end=JUNE_1 + timedelta(days=3))
        service.upsert_orders_settings(5, order_statuses_filter=["processing"], date_range_filter=date_range)

        loaded = service.load_orders_settings(5)

        assert loaded.order_statuses_filter == ["processing"]
        assert loaded.date_range_filter == date_range

    def test_reset(self, service):
        service.upsert_orders_settings(5, order_statuses_filter=["completed"])
        service.reset_orders_settings()
        assert service.load_orders_settings(5) is None

    def test_custom_range_must_be_ordered(self):
        with pytest.raises(ValidationError):
            OrderDateRangeFilter(kind=DateRangeKind.CUSTOM, start=JUNE_1, end=JUNE_1 - timedelta(days=1))

    def test_open_ended_custom_range_allowed(self):
        assert OrderDateRangeFilter(kind=DateRangeKind.CUSTOM, start=JUNE_1).end is None

    def test_naive_bounds_are_utc(self):
        date_range = OrderDateRangeFilter(kind=DateRangeKind.CUSTOM, start=JUNE_1, end=datetime(2024, 6, 10))
        assert date_range.end == datetime(2024, 6, 10, tzinfo=timezone.utc)

    def test_load_mixed_naive_and_aware_range(self):
        store = InMemorySettingsStore()
        store.save("orders_settings", {"5": {
            "site_id": 5,
            "date_range_filter": {"kind": "custom", "start": "2024-06-01T00:00:00+00:00", "end": "2024-06-10T00:00:00"},
        }})

        loaded = AppSettingsService(store).load_orders_settings(5)

        assert loaded.date_range_filter.start == datetime(2024, 6, 1, tzinfo=timezone.utc)
        assert loaded.date_range_filter.end == datetime(2024, 6, 10, tzinfo=timezone.utc)

    def test_load_reversed_mixed_range_is_settings_error(self):
        store = InMemorySettingsStore()
        store.save("orders_settings", {"5": {
            "site_id": 5,
            "date_range_filter": {"kind": "custom", "start": "2024-06-10T00:00:00", "end": "2024-06-01T00:00:00+00:00"},
        }})

        with pytest.raises(SettingsError):
            AppSettingsService(store).load_orders_settings(5)


class TestGeneralSettings:
    """Test installation-wide settings."""

    def test_defaults(self, service):
        assert service.load_general_settings() == GeneralAppSettings()
        assert service.get_setting(GeneralSetting.INSTALLATION_DATE) is None

    def test_set_and_get_setting(self, service):
        service.set_setting(GeneralSetting.COUPON_MANAGEMENT, True)

        assert service.get_setting(GeneralSetting.COUPON_MANAGEMENT) is True
        assert service.load_general_settings().is_coupon_management_switch_enabled is True

    @pytest.mark.parametrize(
        "setting,value",
        [
            (GeneralSetting.VIEW_ADD_ONS, "yes"),
            (GeneralSetting.VIEW_ADD_ONS, 1),
            (GeneralSetting.INSTALLATION_DATE, "2024-06-01"),
            (GeneralSetting.INSTALLATION_DATE, True),
        ],
    )
    def test_set_setting_rejects_wrong_type(self, service, setting, value):
        with pytest.raises(TypeError):
            service.set_setting(setting, value)

    def test_nullable_setting_accepts_none(self, service):
        service.set_setting(GeneralSetting.INSTALLATION_DATE, JUNE_1)
        service.set_setting(GeneralSetting.INSTALLATION_DATE, None)
        assert service.get_setting(GeneralSetting.INSTALLATION_DATE) is None

    def test_beta_features(self, service):
        assert all(not service.is_beta_feature_enabled(feature) for feature in BetaFeature)

        service.set_beta_feature_enabled(BetaFeature.PRODUCT_SKU_SCANNER, True)

        assert service.is_beta_feature_enabled(BetaFeature.PRODUCT_SKU_SCANNER) is True
        assert service.is_beta_feature_enabled(BetaFeature.VIEW_ADD_ONS) is False
        assert service.load_general_settings().is_product_sku_input_scanner_switch_enabled is True

    def test_beta_feature_titles(self):
        assert BetaFeature.VIEW_ADD_ONS.title == "View Add-Ons"

    def test_installation_date_keeps_earliest(self, service):
        assert service.set_installation_date_if_necessary(JUNE_1) is True
        assert service.set_installation_date_if_necessary(JUNE_1 + timedelta(days=1)) is False
        assert service.set_installation_date_if_necessary(JUNE_1 - timedelta(days=1)) is True

        assert service.get_setting(GeneralSetting.INSTALLATION_DATE) == JUNE_1 - timedelta(days=1)

    def test_jetpack_banner_snoozed_for_five_days(self, service):
        assert service.is_jetpack_benefits_banner_visible(now=JUNE_1) is True

        service.set_jetpack_benefits_banner_dismissed(JUNE_1)

        assert service.is_jetpack_benefits_banner_visible(now=JUNE_1 + timedelta(days=4, hours=23)) is False
        assert service.is_jetpack_benefits_banner_visible(now=JUNE_1 + timedelta(days=5)) is True

    def test_reset(self, service):
        service.set_setting(GeneralSetting.VIEW_ADD_ONS, True)
        service.reset_general_settings()
        assert service.get_setting(GeneralSetting.VIEW_ADD_ONS) is False


class TestJSONFileSettingsStore:
    """Test file persistence."""

    def test_missing_file_loads_nothing(self, tmp_path):
        assert JSONFileSettingsStore(tmp_path / "settings.json").load("general_settings") is None

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "nested" / "settings.json"
        AppSettingsService(JSONFileSettingsStore(path)).upsert_products_settings(
            3, sort=ProductsSortOrder.DATE_DESCENDING
        )

        reloaded = AppSettingsService(JSONFileSettingsStore(path)).load_products_settings(3)

        assert reloaded.sort is ProductsSortOrder.DATE_DESCENDING
        assert json.loads(path.read_text())["products_settings"]["3"]["sort"] == "date_descending"

    def test_delete_removes_key(self, tmp_path):
        store = JSONFileSettingsStore(tmp_path / "settings.json")
        store.save("a", {"x": 1})
        store.save("b", {"y": 2})

        store.delete("a")

        assert store.load("a") is None
        assert store.load("b") == {"y": 2}

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{not json")

        with pytest.raises(SettingsError):
            JSONFileSettingsStore(path).load("general_settings")

    def test_non_object_file(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("[1, 2, 3]")

        with pytest.raises(SettingsError):
            JSONFileSettingsStore(path).load("general_settings")


class TestInMemorySettingsStore:
    def test_returns_copies(self):
        store = InMemorySettingsStore()
        data = {"nested": {"value": 1}}
        store.save("key", data)

        data["nested"]["value"] = 2
        loaded = store.load("key")
        loaded["nested"]["value"] = 3

        assert store.load("key") == {"nested": {"value": 1}}
