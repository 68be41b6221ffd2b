"""Typed attribute schemas per asset type.

Every asset type maps to a fixed tuple of ``FieldDescriptor`` objects. The
table below is the single source of truth for which ``attributesJson`` keys a
record of that type may carry, how the form renders them, and how submitted
values are coerced before they reach the inventory API.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ..core import asset_types as types
from ..core.accessories import (
    COMPUTER_ACCESSORIES,
    MOBILE_ACCESSORIES,
    RADIO_CHOICES,
    AccessoryCategory,
)
from ..core.errors import AttributeValidationError

logger = logging.getLogger(__name__)

# Closed enums render a "none" option that is stored as an empty string.
NONE_CHOICE = "none"

_TRUE_STRINGS = {"true", "yes", "si", "sí", "1", "on"}
_FALSE_STRINGS = {"false", "no", "0", "off", ""}


class FieldKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    CHOICE = "choice"
    LIST = "list"


@dataclass(frozen=True)
class FieldDescriptor:
    key: str
    kind: FieldKind
    label: str
    choices: Tuple[str, ...] = ()
    unit: Optional[str] = None
    placeholder: Optional[str] = None
    # The field only applies while ``attributes[depends_on] == depends_value``.
    depends_on: Optional[str] = None
    depends_value: Any = True
    min_items: int = 0
    accessory: Optional[str] = None

    def is_active(self, attributes: Mapping[str, Any]) -> bool:
        if self.depends_on is None:
            return True
        return attributes.get(self.depends_on) == self.depends_value

    def as_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"key": self.key, "kind": self.kind.value, "label": self.label}
        if self.choices:
            data["choices"] = list(self.choices)
        if self.unit:
            data["unit"] = self.unit
        if self.placeholder:
            data["placeholder"] = self.placeholder
        if self.depends_on:
            data["dependsOn"] = {"key": self.depends_on, "value": self.depends_value}
        if self.min_items:
            data["minItems"] = self.min_items
        if self.accessory:
            data["accessory"] = self.accessory
        return data


def _text(key: str, label: str, placeholder: str | None = None, **kwargs: Any) -> FieldDescriptor:
    return FieldDescriptor(key, FieldKind.TEXT, label, placeholder=placeholder, **kwargs)


def _number(key: str, label: str, unit: str | None = None, **kwargs: Any) -> FieldDescriptor:
    return FieldDescriptor(key, FieldKind.NUMBER, label, unit=unit, **kwargs)


def _flag(key: str, label: str, **kwargs: Any) -> FieldDescriptor:
    return FieldDescriptor(key, FieldKind.BOOLEAN, label, **kwargs)


def _choice(key: str, label: str, choices: Iterable[str], **kwargs: Any) -> FieldDescriptor:
    return FieldDescriptor(key, FieldKind.CHOICE, label, choices=tuple(choices), **kwargs)


def accessory_block(category: AccessoryCategory) -> Tuple[FieldDescriptor, ...]:
    """The checkbox / radio / selection triple for one accessory category."""

    return (
        _flag(category.flag_key, f"¿Tiene {category.label}?", accessory=category.asset_type),
        _choice(
            category.radio_key,
            f"Agregar nuevo o asignar {category.label} existente",
            RADIO_CHOICES,
            depends_on=category.flag_key,
            accessory=category.asset_type,
        ),
        _text(
            category.selected_key,
            f"{category.label} seleccionado",
            depends_on=category.flag_key,
            accessory=category.asset_type,
        ),
    )


def _blocks(categories: Iterable[AccessoryCategory]) -> Tuple[FieldDescriptor, ...]:
    fields: List[FieldDescriptor] = []
    for category in categories:
        fields.extend(accessory_block(category))
    return tuple(fields)


_COMPUTER_FIELDS = (
    _text("cpu", "CPU/Procesador", "Intel Core i5-1135G7"),
    _number("ram", "RAM", unit="GB"),
    _text("storage", "Almacenamiento", "512GB SSD"),
    _flag("hasBag", "¿Tiene maletín/bolso?"),
) + _blocks(COMPUTER_ACCESSORIES)

_MOBILE_FIELDS = (
    FieldDescriptor("imeis", FieldKind.LIST, "IMEI", min_items=1),
    _text("cpu", "Procesador"),
    _number("ram", "RAM", unit="GB"),
    _flag("hasMicas", "¿Tiene micas?"),
) + _blocks(MOBILE_ACCESSORIES) + (
    _flag("hasChip", "¿Tiene chip?"),
    _text("operator", "Operadora", "Claro, Movistar...", depends_on="hasChip"),
    _text("chipNumber", "Número de chip", "+593 99 123 4567", depends_on="hasChip"),
    _flag("hasCase", "¿Tiene estuche/case?"),
)

_CHARGER_FIELDS = (
    _text("color", "Color"),
    _number("wattage", "Potencia", unit="W"),
    _text("connectorType", "Tipo de conector", "USB-C, Magsafe..."),
)

ATTRIBUTE_SCHEMAS: Dict[str, Tuple[FieldDescriptor, ...]] = {
    types.ASSET_TYPE_LAPTOP: _COMPUTER_FIELDS,
    types.ASSET_TYPE_SERVER: _COMPUTER_FIELDS,
    types.ASSET_TYPE_DESKTOP: (),
    types.ASSET_TYPE_SMARTPHONE: _MOBILE_FIELDS,
    types.ASSET_TYPE_TABLET: _MOBILE_FIELDS,
    types.ASSET_TYPE_IP_PHONE: (
        _text("extension", "Extensión"),
        _text("phoneNumber", "Número telefónico"),
    ),
    types.ASSET_TYPE_PRINTER: (
        _choice("printerType", "Tipo de impresora", ("laser", "inkjet", "dot-matrix", "thermal")),
        _flag("isColor", "¿Imprime a color?"),
        _choice("connectivity", "Conectividad", ("usb", "wifi", "ethernet", "bluetooth")),
        _number("printSpeed", "Velocidad de impresión", unit="ppm"),
        _flag("hasScanner", "¿Tiene escáner?"),
        _flag("hasFax", "¿Tiene fax?"),
    ),
    types.ASSET_TYPE_MONITOR: (
        _number("screenSize", "Tamaño", unit="pulgadas"),
        _text("resolution", "Resolución (px)", "1920x1080"),
        _text("panelType", "Tipo de panel", "IPS, TN, VA..."),
        _flag("hasHDMI", "¿Tiene HDMI?"),
        _flag("hasVGA", "¿Tiene VGA?"),
        _flag("hasPowerCable", "¿Tiene cable de poder?"),
    ),
    types.ASSET_TYPE_KEYBOARD: (
        _choice("connectionType", "Tipo de conexión", ("USB", "Bluetooth", "Wireless", "Wired")),
        _text("color", "Color", "Negro, Blanco..."),
        _flag("hasBatteries", "¿Requiere baterías?"),
    ),
    types.ASSET_TYPE_MOUSE: (
        _text("color", "Color", "Negro, Blanco, Azul..."),
        _flag("isWireless", "¿Es inalámbrico?"),
        _choice("batteryType", "Tipo de batería", ("interna", "externa"), depends_on="isWireless"),
        _flag(
            "hasChargeCable",
            "¿Se entrega con cable de carga?",
            depends_on="batteryType",
            depends_value="interna",
        ),
        _flag(
            "hasBatteryIncluded",
            "¿Se entrega con batería?",
            depends_on="batteryType",
            depends_value="externa",
        ),
    ),
    types.ASSET_TYPE_MOUSEPAD: (_text("color", "Color", "Negro, RGB, Gris..."),),
    types.ASSET_TYPE_STAND: (
        _text("color", "Color", "Negro, Gris..."),
        _text("material", "Material", "Metal, Plástico..."),
    ),
    types.ASSET_TYPE_MEMORY_ADAPTER: (
        _text("color", "Color"),
        _choice("connectionType", "Tipo de conexión", ("USB-A", "USB-C")),
    ),
    types.ASSET_TYPE_NETWORK_ADAPTER: (
        _text("color", "Color"),
        _choice("connectionType", "Tipo de conexión", ("USB-A", "USB-C", "RJ45")),
    ),
    types.ASSET_TYPE_HUB: (
        _text("model", "Modelo", "Ej: UH400"),
        _choice("connectionType", "Tipo de conexión", ("USB-A", "USB-C")),
        _number("portCount", "Número de puertos"),
    ),
    types.ASSET_TYPE_LAPTOP_CHARGER: _CHARGER_FIELDS,
    types.ASSET_TYPE_PHONE_CHARGER: _CHARGER_FIELDS,
    types.ASSET_TYPE_CHARGING_CABLE: (
        _text("color", "Color"),
        _number("length", "Longitud", unit="cm"),
        _text("connectorType", "Tipo de conector", "USB-C, Lightning..."),
    ),
}


def fields_for(asset_type: str | None) -> Tuple[FieldDescriptor, ...]:
    """Return the field set of ``asset_type``; unknown types have none."""

    return ATTRIBUTE_SCHEMAS.get(types.normalize_asset_type(asset_type), ())


def field_keys(asset_type: str | None) -> frozenset[str]:
    return frozenset(field.key for field in fields_for(asset_type))


def visible_fields(asset_type: str | None, attributes: Mapping[str, Any] | None) -> List[FieldDescriptor]:
    """Fields to render right now, hiding those whose gate does not hold."""

    attributes = attributes or {}
    return [field for field in fields_for(asset_type) if field.is_active(attributes)]


def accessory_categories_for(asset_type: str | None) -> List[str]:
    seen: List[str] = []
    for field in fields_for(asset_type):
        if field.accessory and field.accessory not in seen:
            seen.append(field.accessory)
    return seen


def default_attributes(asset_type: str | None) -> Dict[str, Any]:
    """Starting attribute values for a freshly selected type."""

    defaults: Dict[str, Any] = {}
    for field in fields_for(asset_type):
        if field.kind is FieldKind.LIST and field.min_items:
            defaults[field.key] = [""] * field.min_items
    return defaults


def _coerce_number(field: FieldDescriptor, value: Any) -> int | float | None:
    if isinstance(value, bool):
        raise AttributeValidationError(f"{field.label} debe ser numérico", details={"key": field.key})
    if isinstance(value, (int, float)):
        number = value
    else:
        text = str(value).strip().replace(",", ".")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            raise AttributeValidationError(
                f"{field.label} debe ser numérico", details={"key": field.key, "value": value}
            ) from None
    if number < 0:
        raise AttributeValidationError(
            f"{field.label} no puede ser negativo", details={"key": field.key, "value": value}
        )
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


def _coerce_boolean(field: FieldDescriptor, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    lowered = str(value).strip().lower()
    if lowered in _TRUE_STRINGS:
        return True
    if lowered in _FALSE_STRINGS:
        return False
    raise AttributeValidationError(
        f"{field.label} debe ser sí o no", details={"key": field.key, "value": value}
    )


def _coerce_choice(field: FieldDescriptor, value: Any) -> str:
    text = str(value).strip()
    if text in ("", NONE_CHOICE):
        return ""
    if text not in field.choices:
        raise AttributeValidationError(
            f"Valor no permitido para {field.label}",
            details={"key": field.key, "value": value, "choices": list(field.choices)},
        )
    return text


def _coerce_list(field: FieldDescriptor, value: Any) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise AttributeValidationError(
            f"{field.label} debe ser una lista", details={"key": field.key}
        )
    items: List[str] = []
    for item in value:
        if item is None:
            continue
        if not isinstance(item, (str, int)) or isinstance(item, bool):
            raise AttributeValidationError(
                f"{field.label} contiene un valor inválido", details={"key": field.key, "value": item}
            )
        cleaned = str(item).strip()
        # The form always renders an empty slot; blank entries are not data.
        if cleaned:
            items.append(cleaned)
    return items


def _coerce(field: FieldDescriptor, value: Any) -> Any:
    if field.kind is FieldKind.NUMBER:
        return _coerce_number(field, value)
    if field.kind is FieldKind.BOOLEAN:
        return _coerce_boolean(field, value)
    if field.kind is FieldKind.CHOICE:
        return _coerce_choice(field, value)
    if field.kind is FieldKind.LIST:
        return _coerce_list(field, value)
    if isinstance(value, (dict, list)):
        raise AttributeValidationError(
            f"{field.label} debe ser texto", details={"key": field.key}
        )
    if field.accessory:
        # Selected ids keep the server's type; an empty selection is no selection.
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        return str(value).strip() or None
    return str(value).strip()


def sanitize_attributes(asset_type: str | None, attributes: Mapping[str, Any] | None) -> Dict[str, Any]:
    """Return ``attributes`` restricted to, and coerced by, the type's schema.

    * Keys outside the schema are dropped.
    * Fields whose gate does not hold are dropped, so an unchecked accessory
      never carries a stale radio or selection.
    * Values that cannot be coerced raise ``AttributeValidationError``.
    """

    attributes = attributes or {}
    schema = fields_for(asset_type)
    allowed = {field.key for field in schema}
    dropped = sorted(key for key in attributes if key not in allowed)
    if dropped:
        logger.debug(
            "Dropping attributes outside the %s schema",
            asset_type,
            extra={"extra_data": {"dropped_keys": dropped}},
        )

    cleaned: Dict[str, Any] = {}
    # Schema order puts every gate before the fields it controls.
    for field in schema:
        if field.key not in attributes or attributes[field.key] is None:
            continue
        if not field.is_active(cleaned):
            continue
        value = _coerce(field, attributes[field.key])
        if value is None:
            continue
        cleaned[field.key] = value
    return cleaned


__all__ = [
    "ATTRIBUTE_SCHEMAS",
    "FieldDescriptor",
    "FieldKind",
    "NONE_CHOICE",
    "accessory_block",
    "accessory_categories_for",
    "default_attributes",
    "field_keys",
    "fields_for",
    "sanitize_attributes",
    "visible_fields",
]
