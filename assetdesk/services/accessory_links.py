"""Cross-linking a parent asset to accessory assets.

For each accessory category the parent's attributes carry a checkbox, a radio
(``'yes'`` create a new unit, ``'no'`` pick an available one) and the selected
accessory id. ``AccessoryLinkResolver`` is the only code that moves those
three keys between states:

    unset --check--> checked --'no'--> awaiting selection --select--> selected
                        |
                        +--'yes'--> pending creation --nested save--> created

Unchecking always returns the category to ``unset``. Only one creation may be
pending at a time; the nested form that fulfils it is a single instance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, MutableMapping, Optional

from ..core.accessories import (
    RADIO_CREATE_NEW,
    RADIO_SELECT_EXISTING,
    AccessoryCategory,
    get_category,
)
from ..core.errors import AccessoryLinkError
from ..schemas.asset import AssetId
from .availability import AccessoryPool

logger = logging.getLogger(__name__)

LINK_UNSET = "unset"
LINK_CHECKED = "checked"
LINK_PENDING_CREATION = "pending_creation"
LINK_CREATED = "created"
LINK_CREATION_CANCELLED = "creation_cancelled"
LINK_AWAITING_SELECTION = "awaiting_selection"
LINK_SELECTED = "selected"


@dataclass(frozen=True)
class PendingAccessory:
    """The one accessory category whose nested create form is open."""

    category: str
    parent: Optional[str] = None


@dataclass(frozen=True)
class LinkState:
    category: str
    has_accessory: bool
    radio: Optional[str]
    selected_id: Optional[AssetId]
    pending: bool

    @property
    def status(self) -> str:
        if not self.has_accessory:
            return LINK_UNSET
        if self.radio == RADIO_CREATE_NEW:
            if self.pending:
                return LINK_PENDING_CREATION
            return LINK_CREATED if self.selected_id is not None else LINK_CREATION_CANCELLED
        if self.radio == RADIO_SELECT_EXISTING:
            return LINK_SELECTED if self.selected_id is not None else LINK_AWAITING_SELECTION
        return LINK_CHECKED

    def as_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "hasAccessory": self.has_accessory,
            "radio": self.radio,
            "selectedId": self.selected_id,
            "pending": self.pending,
            "status": self.status,
        }


def _clear(attributes: MutableMapping[str, Any], category: AccessoryCategory) -> None:
    attributes.pop(category.radio_key, None)
    attributes.pop(category.selected_key, None)


def _created_id(attributes: MutableMapping[str, Any], category: AccessoryCategory) -> Optional[AssetId]:
    if attributes.get(category.radio_key) != RADIO_CREATE_NEW:
        return None
    selected = attributes.get(category.selected_key)
    return selected if selected not in ("", None) else None


class AccessoryLinkResolver:
    """Applies accessory choices to a form's attribute mapping."""

    def __init__(self, pool: AccessoryPool, parent: Optional[str] = None) -> None:
        self.pool = pool
        self.parent = parent
        self.pending: Optional[PendingAccessory] = None

    def link_state(self, attributes: MutableMapping[str, Any], category: str) -> LinkState:
        cat = get_category(category)
        selected = attributes.get(cat.selected_key)
        return LinkState(
            category=cat.asset_type,
            has_accessory=bool(attributes.get(cat.flag_key)),
            radio=attributes.get(cat.radio_key),
            selected_id=selected if selected not in ("", None) else None,
            pending=self.pending is not None and self.pending.category == cat.asset_type,
        )

    def set_has(self, attributes: MutableMapping[str, Any], category: str, checked: bool) -> LinkState:
        cat = get_category(category)
        attributes[cat.flag_key] = bool(checked)
        if not checked:
            self._release_created(attributes, cat)
            _clear(attributes, cat)
            if self.pending and self.pending.category == cat.asset_type:
                self.pending = None
        return self.link_state(attributes, category)

    def choose_new(self, attributes: MutableMapping[str, Any], category: str) -> PendingAccessory:
        """Arm the creation of a new accessory for ``category``."""

        cat = get_category(category)
        if not attributes.get(cat.flag_key):
            raise AccessoryLinkError(f"Marca primero ¿Tiene {cat.label}?")
        if self.pending and self.pending.category != cat.asset_type:
            raise AccessoryLinkError(
                "Ya hay un accesorio pendiente de crear",
                details={"pending": self.pending.category, "requested": cat.asset_type},
            )
        self._release_created(attributes, cat)
        attributes[cat.radio_key] = RADIO_CREATE_NEW
        attributes.pop(cat.selected_key, None)
        if self.pending is None:
            self.pending = PendingAccessory(category=cat.asset_type, parent=self.parent)
            logger.debug("Armed accessory creation", extra={"extra_data": {"category": cat.asset_type}})
        return self.pending

    def choose_existing(self, attributes: MutableMapping[str, Any], category: str) -> LinkState:
        cat = get_category(category)
        if not attributes.get(cat.flag_key):
            raise AccessoryLinkError(f"Marca primero ¿Tiene {cat.label}?")
        self._release_created(attributes, cat)
        attributes[cat.radio_key] = RADIO_SELECT_EXISTING
        if self.pending and self.pending.category == cat.asset_type:
            self.pending = None
        return self.link_state(attributes, category)

    def select(self, attributes: MutableMapping[str, Any], category: str, asset_id: AssetId) -> LinkState:
        cat = get_category(category)
        if attributes.get(cat.radio_key) != RADIO_SELECT_EXISTING:
            raise AccessoryLinkError(f"Elige primero asignar un {cat.label} existente")
        if not self.pool.contains(cat.asset_type, asset_id):
            raise AccessoryLinkError(
                f"El {cat.label} seleccionado no está disponible",
                details={"category": cat.asset_type, "selectedId": asset_id},
            )
        attributes[cat.selected_key] = asset_id
        return self.link_state(attributes, category)

    def resolve_pending(self, attributes: MutableMapping[str, Any], asset_id: AssetId) -> str:
        """Back-link the newly created accessory and disarm the marker."""

        if self.pending is None:
            raise AccessoryLinkError("No hay un accesorio pendiente de crear")
        cat = get_category(self.pending.category)
        attributes[cat.selected_key] = asset_id
        self.pending = None
        self.pool.claim(asset_id)
        logger.info(
            "Linked newly created accessory",
            extra={"extra_data": {"category": cat.asset_type, "asset_id": asset_id}},
        )
        return cat.asset_type

    def _release_created(self, attributes: MutableMapping[str, Any], cat: AccessoryCategory) -> None:
        created = _created_id(attributes, cat)
        if created is not None:
            self.pool.release(created)

    def cancel_pending(self) -> Optional[str]:
        if self.pending is None:
            return None
        category = self.pending.category
        self.pending = None
        return category

    def stale_selections(self, attributes: MutableMapping[str, Any], categories: List[str]) -> List[Dict[str, Any]]:
        """Existing-unit selections that the current pool no longer offers."""

        stale = []
        for name in categories:
            state = self.link_state(attributes, name)
            if state.status != LINK_SELECTED:
                continue
            if not self.pool.contains(name, state.selected_id):
                stale.append({"category": name, "selectedId": state.selected_id})
        return stale
