"""Explicit accessor table for general app settings.

Every readable/writable general setting is listed in
``GENERAL_SETTING_ACCESSORS`` with a typed getter and setter. Setters return
an updated copy; the models are never mutated in place.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from .models import GeneralAppSettings


class GeneralSetting(Enum):
    INSTALLATION_DATE = "installation_date"
    VIEW_ADD_ONS = "view_add_ons"
    PRODUCT_SKU_INPUT_SCANNER = "product_sku_input_scanner"
    COUPON_MANAGEMENT = "coupon_management"
    PRODUCT_MULTI_SELECTION = "product_multi_selection"
    JETPACK_BENEFITS_BANNER_DISMISSED_TIME = "jetpack_benefits_banner_dismissed_time"


@dataclass(frozen=True)
class SettingAccessor:
    value_type: type
    getter: Callable[[GeneralAppSettings], Any]
    setter: Callable[[GeneralAppSettings, Any], GeneralAppSettings]
    nullable: bool = False

    def check(self, value: Any) -> None:
        if value is None and self.nullable:
            return
        # bool is an int subclass; reject ints for bool settings and vice versa
        if not isinstance(value, self.value_type) or (
            self.value_type is not bool and isinstance(value, bool)
        ):
            raise TypeError(
                f"Expected {self.value_type.__name__}, got {type(value).__name__}"
            )


GENERAL_SETTING_ACCESSORS: dict[GeneralSetting, SettingAccessor] = {
    GeneralSetting.INSTALLATION_DATE: SettingAccessor(
        value_type=datetime,
        getter=lambda s: s.installation_date,
        setter=lambda s, v: s.model_copy(update={"installation_date": v}),
        nullable=True,
    ),
    GeneralSetting.VIEW_ADD_ONS: SettingAccessor(
        value_type=bool,
        getter=lambda s: s.is_view_add_ons_switch_enabled,
        setter=lambda s, v: s.model_copy(update={"is_view_add_ons_switch_enabled": v}),
    ),
    GeneralSetting.PRODUCT_SKU_INPUT_SCANNER: SettingAccessor(
        value_type=bool,
        getter=lambda s: s.is_product_sku_input_scanner_switch_enabled,
        setter=lambda s, v: s.model_copy(update={"is_product_sku_input_scanner_switch_enabled": v}),
    ),
    GeneralSetting.COUPON_MANAGEMENT: SettingAccessor(
        value_type=bool,
        getter=lambda s: s.is_coupon_management_switch_enabled,
        setter=lambda s, v: s.model_copy(update={"is_coupon_management_switch_enabled": v}),
    ),
    GeneralSetting.PRODUCT_MULTI_SELECTION: SettingAccessor(
        value_type=bool,
        getter=lambda s: s.is_product_multi_selection_switch_enabled,
        setter=lambda s, v: s.model_copy(update={"is_product_multi_selection_switch_enabled": v}),
    ),
    GeneralSetting.JETPACK_BENEFITS_BANNER_DISMISSED_TIME: SettingAccessor(
        value_type=datetime,
        getter=lambda s: s.last_jetpack_benefits_banner_dismissed_time,
        setter=lambda s, v: s.model_copy(update={"last_jetpack_benefits_banner_dismissed_time": v}),
        nullable=True,
    ),
}


class BetaFeature(Enum):
    """User-toggleable beta features, each backed by a bool general setting."""

    VIEW_ADD_ONS = "view_add_ons"
    PRODUCT_SKU_SCANNER = "product_sku_scanner"
    COUPON_MANAGEMENT = "coupon_management"
    PRODUCT_MULTI_SELECTION = "product_multi_selection"

    @property
    def setting(self) -> GeneralSetting:
        return BETA_FEATURE_SETTINGS[self]

    @property
    def title(self) -> str:
        return BETA_FEATURE_TITLES[self]


BETA_FEATURE_SETTINGS: dict[BetaFeature, GeneralSetting] = {
    BetaFeature.VIEW_ADD_ONS: GeneralSetting.VIEW_ADD_ONS,
    BetaFeature.PRODUCT_SKU_SCANNER: GeneralSetting.PRODUCT_SKU_INPUT_SCANNER,
    BetaFeature.COUPON_MANAGEMENT: GeneralSetting.COUPON_MANAGEMENT,
    BetaFeature.PRODUCT_MULTI_SELECTION: GeneralSetting.PRODUCT_MULTI_SELECTION,
}

BETA_FEATURE_TITLES: dict[BetaFeature, str] = {
    BetaFeature.VIEW_ADD_ONS: "View Add-Ons",
    BetaFeature.PRODUCT_SKU_SCANNER: "Product SKU Scanner",
    BetaFeature.COUPON_MANAGEMENT: "Coupon Management",
    BetaFeature.PRODUCT_MULTI_SELECTION: "Product Multi-Selection",
}
