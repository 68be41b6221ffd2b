"""Accessory categories a parent asset can be cross-linked to.

Each category owns three attribute keys on the parent record:
``has<Stem>`` (checkbox), ``has<Stem>Radio`` (``'yes'`` create new /
``'no'`` pick existing) and ``selected<Stem>Id``.
"""

from __future__ import annotations

from dataclasses import dataclass

from .asset_types import (
    ASSET_TYPE_CHARGING_CABLE,
    ASSET_TYPE_HUB,
    ASSET_TYPE_KEYBOARD,
    ASSET_TYPE_LAPTOP_CHARGER,
    ASSET_TYPE_MEMORY_ADAPTER,
    ASSET_TYPE_MONITOR,
    ASSET_TYPE_MOUSE,
    ASSET_TYPE_MOUSEPAD,
    ASSET_TYPE_NETWORK_ADAPTER,
    ASSET_TYPE_PHONE_CHARGER,
    ASSET_TYPE_STAND,
    normalize_asset_type,
)

RADIO_CREATE_NEW = "yes"
RADIO_SELECT_EXISTING = "no"
RADIO_CHOICES = (RADIO_CREATE_NEW, RADIO_SELECT_EXISTING)


@dataclass(frozen=True)
class AccessoryCategory:
    asset_type: str
    stem: str
    label: str

    @property
    def flag_key(self) -> str:
        return f"has{self.stem}"

    @property
    def radio_key(self) -> str:
        return f"has{self.stem}Radio"

    @property
    def selected_key(self) -> str:
        return f"selected{self.stem}Id"

    @property
    def keys(self) -> tuple[str, str, str]:
        return (self.flag_key, self.radio_key, self.selected_key)


MOUSE = AccessoryCategory(ASSET_TYPE_MOUSE, "Mouse", "mouse")
KEYBOARD = AccessoryCategory(ASSET_TYPE_KEYBOARD, "Teclado", "teclado")
MONITOR = AccessoryCategory(ASSET_TYPE_MONITOR, "Monitor", "monitor")
STAND = AccessoryCategory(ASSET_TYPE_STAND, "Stand", "soporte")
MEMORY_ADAPTER = AccessoryCategory(ASSET_TYPE_MEMORY_ADAPTER, "MemoryAdapter", "adaptador de memoria")
NETWORK_ADAPTER = AccessoryCategory(ASSET_TYPE_NETWORK_ADAPTER, "NetworkAdapter", "adaptador de red")
HUB = AccessoryCategory(ASSET_TYPE_HUB, "Hub", "HUB")
MOUSEPAD = AccessoryCategory(ASSET_TYPE_MOUSEPAD, "Mousepad", "mousepad")
LAPTOP_CHARGER = AccessoryCategory(ASSET_TYPE_LAPTOP_CHARGER, "LaptopCharger", "cargador de laptop")
PHONE_CHARGER = AccessoryCategory(ASSET_TYPE_PHONE_CHARGER, "CellCharger", "cargador de celular")
CHARGING_CABLE = AccessoryCategory(ASSET_TYPE_CHARGING_CABLE, "ChargingCable", "cable de carga")

ACCESSORY_CATEGORIES: dict[str, AccessoryCategory] = {
    category.asset_type: category
    for category in (
        MOUSE,
        KEYBOARD,
        MONITOR,
        STAND,
        MEMORY_ADAPTER,
        NETWORK_ADAPTER,
        HUB,
        MOUSEPAD,
        LAPTOP_CHARGER,
        PHONE_CHARGER,
        CHARGING_CABLE,
    )
}

COMPUTER_ACCESSORIES = (
    MOUSE,
    KEYBOARD,
    MONITOR,
    STAND,
    MEMORY_ADAPTER,
    NETWORK_ADAPTER,
    HUB,
    MOUSEPAD,
    LAPTOP_CHARGER,
)
MOBILE_ACCESSORIES = (PHONE_CHARGER, CHARGING_CABLE)


def get_category(name: str | None) -> AccessoryCategory:
    """Look up a category by its asset type tag; ``KeyError`` when unknown."""

    normalized = normalize_asset_type(name)
    try:
        return ACCESSORY_CATEGORIES[normalized]
    except KeyError:
        raise KeyError(f"Unknown accessory category: {name!r}") from None


__all__ = [
    "ACCESSORY_CATEGORIES",
    "AccessoryCategory",
    "COMPUTER_ACCESSORIES",
    "MOBILE_ACCESSORIES",
    "RADIO_CHOICES",
    "RADIO_CREATE_NEW",
    "RADIO_SELECT_EXISTING",
    "get_category",
]
