"""Shared asset type and status constants and helpers."""

ASSET_TYPE_LAPTOP = "laptop"
ASSET_TYPE_DESKTOP = "desktop"
ASSET_TYPE_SERVER = "server"
ASSET_TYPE_SMARTPHONE = "smartphone"
ASSET_TYPE_TABLET = "tablet"
ASSET_TYPE_IP_PHONE = "ip-phone"
ASSET_TYPE_PRINTER = "printer"
ASSET_TYPE_MONITOR = "monitor"
ASSET_TYPE_KEYBOARD = "teclado"
ASSET_TYPE_MOUSE = "mouse"
ASSET_TYPE_MOUSEPAD = "mousepad"
ASSET_TYPE_STAND = "soporte"
ASSET_TYPE_MEMORY_ADAPTER = "adaptador-memoria"
ASSET_TYPE_NETWORK_ADAPTER = "adaptador-red"
ASSET_TYPE_HUB = "hub"
ASSET_TYPE_LAPTOP_CHARGER = "cargador-laptop"
ASSET_TYPE_PHONE_CHARGER = "cargador-celular"
ASSET_TYPE_CHARGING_CABLE = "cable-carga"

# Display labels in the order the type picker lists them.
ASSET_TYPE_LABELS: dict[str, str] = {
    ASSET_TYPE_LAPTOP: "Laptop",
    ASSET_TYPE_DESKTOP: "PC/Sobremesa",
    ASSET_TYPE_SMARTPHONE: "Smartphone",
    ASSET_TYPE_TABLET: "Tablet",
    ASSET_TYPE_MONITOR: "Monitor",
    ASSET_TYPE_MOUSE: "Mouse",
    ASSET_TYPE_MOUSEPAD: "Mousepad",
    ASSET_TYPE_STAND: "Soporte",
    ASSET_TYPE_HUB: "HUB",
    ASSET_TYPE_MEMORY_ADAPTER: "Adaptador Memoria",
    ASSET_TYPE_NETWORK_ADAPTER: "Adaptador Red",
    ASSET_TYPE_KEYBOARD: "Teclado",
    ASSET_TYPE_SERVER: "Servidor",
    ASSET_TYPE_PRINTER: "Impresora",
    ASSET_TYPE_IP_PHONE: "Teléfono IP",
    ASSET_TYPE_LAPTOP_CHARGER: "Cargador Laptop",
    ASSET_TYPE_PHONE_CHARGER: "Cargador Celular",
    ASSET_TYPE_CHARGING_CABLE: "Cable de Carga",
}

ASSET_TYPE_CHOICES = tuple(ASSET_TYPE_LABELS)

# Types whose phone number must be unique across the inventory.
MOBILE_ASSET_TYPES = {ASSET_TYPE_SMARTPHONE, ASSET_TYPE_TABLET}

STATUS_AVAILABLE = "available"
STATUS_ASSIGNED = "assigned"
STATUS_MAINTENANCE = "maintenance"
STATUS_DECOMMISSIONED = "decommissioned"

STATUS_LABELS: dict[str, str] = {
    STATUS_AVAILABLE: "Disponible",
    STATUS_MAINTENANCE: "Mantenimiento",
    STATUS_DECOMMISSIONED: "Dado de baja",
}

# ``assigned`` is derived by the server from open assignments.
SETTABLE_STATUSES = tuple(STATUS_LABELS)
STATUS_CHOICES = SETTABLE_STATUSES + (STATUS_ASSIGNED,)


def normalize_asset_type(value: str | None) -> str:
    """Return a lowercase, trimmed asset type tag."""

    return (value or "").strip().lower()


def type_label(asset_type: str) -> str:
    normalized = normalize_asset_type(asset_type)
    if normalized in ASSET_TYPE_LABELS:
        return ASSET_TYPE_LABELS[normalized]
    return normalized[:1].upper() + normalized[1:]


__all__ = [
    "ASSET_TYPE_CHOICES",
    "ASSET_TYPE_LABELS",
    "MOBILE_ASSET_TYPES",
    "SETTABLE_STATUSES",
    "STATUS_AVAILABLE",
    "STATUS_ASSIGNED",
    "STATUS_CHOICES",
    "STATUS_DECOMMISSIONED",
    "STATUS_LABELS",
    "STATUS_MAINTENANCE",
    "normalize_asset_type",
    "type_label",
]
