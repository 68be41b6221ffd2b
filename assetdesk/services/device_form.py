"""The device form: one editable asset record plus its accessory links.

``DeviceForm`` is a plain object holding what the console's device dialog
holds: the base fields, the typed attributes of the chosen type, the
accessory link choices, and, while the user is adding a new accessory, a
nested ``DeviceForm`` fixed to that accessory's type. The same class serves
the top-level editor and the nested accessory editor; nesting stops at one
level.

Typical flow::

    form = DeviceForm(client, mode="create")
    form.open()                       # refreshes the accessory pools
    form.set_field("asset_type", "laptop")
    form.check_accessory("mouse", True)
    form.choose_existing_accessory("mouse")
    form.select_accessory("mouse", "M1")
    asset = form.submit()             # validates, checks phone, saves
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Literal, Optional, Union
from uuid import uuid4

from ..core.accessories import ACCESSORY_CATEGORIES, get_category
from ..core.asset_codes import apply_type_prefix, code_prefix_for, generate_unique_code
from ..core.asset_types import (
    ASSET_TYPE_CHOICES,
    ASSET_TYPE_LAPTOP,
    SETTABLE_STATUSES,
    STATUS_AVAILABLE,
    normalize_asset_type,
)
from ..core.config import get_settings
from ..core.errors import (
    ACTIVE_ASSIGNMENT_MESSAGE,
    AccessoryLinkError,
    AssetFormError,
    AttributeValidationError,
    FormStateError,
    InventoryApiError,
    friendly_save_error,
)
from ..schemas.asset import Asset, AssetId, AssetPatch, AssetPayload
from .accessory_links import AccessoryLinkResolver, LinkState
from .attribute_schema import (
    accessory_categories_for,
    default_attributes,
    field_keys,
    sanitize_attributes,
    visible_fields,
)
from .availability import AccessoryPool
from .phone_registry import PhoneRegistry

logger = logging.getLogger(__name__)

FormMode = Literal["create", "edit"]
SaveHandler = Callable[[Union[AssetPayload, AssetPatch]], Asset]

# Base fields a user may type into; ``assigned_person_id`` is display-only.
EDITABLE_FIELDS = (
    "asset_code",
    "asset_type",
    "brand",
    "model",
    "serial_number",
    "status",
    "branch_id",
    "purchase_date",
    "delivery_date",
    "received_date",
    "notes",
)

_ACCESSORY_KEYS = frozenset(key for category in ACCESSORY_CATEGORIES.values() for key in category.keys)


@dataclass
class FormValues:
    asset_code: str = ""
    asset_type: str = ASSET_TYPE_LAPTOP
    brand: str = ""
    model: str = ""
    serial_number: str = ""
    status: str = STATUS_AVAILABLE
    branch_id: Optional[AssetId] = None
    assigned_person_id: Optional[AssetId] = None
    purchase_date: str = ""
    delivery_date: str = ""
    received_date: str = ""
    notes: str = ""
    attributes: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_asset(cls, asset: Asset) -> "FormValues":
        return cls(
            asset_code=asset.asset_code,
            asset_type=normalize_asset_type(asset.asset_type),
            brand=asset.brand or "",
            model=asset.model or "",
            serial_number=asset.serial_number or "",
            status=asset.status or STATUS_AVAILABLE,
            branch_id=asset.branch_id,
            assigned_person_id=asset.assigned_person_id,
            purchase_date=asset.purchase_date or "",
            delivery_date=asset.delivery_date or "",
            received_date=asset.received_date or "",
            notes=asset.notes or "",
            attributes=dict(asset.attributes_json or {}),
        )


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class DeviceForm:
    """Editable state and save logic of one device dialog."""

    def __init__(
        self,
        client: Any,
        pool: AccessoryPool | None = None,
        *,
        mode: FormMode = "create",
        fixed_type: str | None = None,
        device: Asset | None = None,
        on_save: SaveHandler | None = None,
        phone_registry: PhoneRegistry | None = None,
        parent: "DeviceForm | None" = None,
    ) -> None:
        if mode not in ("create", "edit"):
            raise ValueError(f"Unknown form mode: {mode!r}")
        if mode == "edit" and device is None:
            raise ValueError("Edit mode requires the device being edited")
        self.id = uuid4().hex
        self.client = client
        self.pool = pool or AccessoryPool(client)
        self.mode: FormMode = mode
        self.fixed_type = normalize_asset_type(fixed_type) or None
        self.device = device
        self.on_save = on_save
        self.phone_registry = phone_registry or PhoneRegistry(client)
        self.parent = parent
        self.links = AccessoryLinkResolver(self.pool, parent=self.id)
        self.values = FormValues()
        self.nested: DeviceForm | None = None
        self.delivery_date_auto = ""
        self.received_pending = True
        self.error: str | None = None
        self.saved: Asset | None = None
        self.is_open = False

    # ---- lifecycle

    def open(self, *, refresh_pool: bool = True) -> "DeviceForm":
        """Load the initial values and take a fresh accessory snapshot."""

        if refresh_pool:
            self.pool.refresh()
        if self.mode == "edit":
            self.values = FormValues.from_asset(self.device)  # type: ignore[arg-type]
            self.delivery_date_auto = self._derive_delivery_date()
        else:
            asset_type = self.fixed_type or ASSET_TYPE_LAPTOP
            self.values = FormValues(
                asset_type=asset_type,
                asset_code=apply_type_prefix("", asset_type),
                attributes=default_attributes(asset_type),
            )
            self.delivery_date_auto = ""
        for key, value in default_attributes(self.values.asset_type).items():
            self.values.attributes.setdefault(key, value)
        self.received_pending = not self.values.received_date
        self.error = None
        self.saved = None
        self.nested = None
        self.links.cancel_pending()
        self.is_open = True
        return self

    def close(self) -> None:
        if self.nested is not None:
            self.cancel_nested()
        self.is_open = False

    def _derive_delivery_date(self) -> str:
        """Date of the latest assignment when it is still open, else ``""``."""

        try:
            assignments = self.client.list_assignments(self.device.id)  # type: ignore[union-attr]
        except InventoryApiError as exc:
            logger.warning(
                "Could not load assignments for delivery date",
                extra={"extra_data": {"asset_id": self.device.id, "error": exc.message}},  # type: ignore[union-attr]
            )
            return ""
        related = [a for a in assignments if str(a.asset_id) == str(self.device.id)]  # type: ignore[union-attr]
        if not related:
            return ""
        latest = max(related, key=lambda a: a.assignment_date or "")
        if not latest.is_open or not latest.assignment_date:
            return ""
        return latest.assignment_date[:16]

    @property
    def has_active_assignment(self) -> bool:
        if self.device is None:
            return False
        return bool(self.device.assigned_person_id or self.delivery_date_auto)

    # ---- field edits

    def _ensure_open(self) -> None:
        if not self.is_open:
            raise FormStateError("El formulario no está abierto")

    def set_asset_type(self, asset_type: str) -> None:
        self._ensure_open()
        new_type = normalize_asset_type(asset_type)
        if new_type not in ASSET_TYPE_CHOICES:
            raise AttributeValidationError(
                f"Tipo de dispositivo desconocido: {asset_type}", details={"assetType": asset_type}
            )
        if self.fixed_type and new_type != self.fixed_type:
            raise FormStateError(f"Este formulario solo crea {self.fixed_type}")
        if new_type == self.values.asset_type:
            return
        if self.nested is not None:
            self.cancel_nested()
        self.values.asset_type = new_type
        if self.mode == "create":
            self.values.asset_code = apply_type_prefix(self.values.asset_code, new_type)
        for key, value in default_attributes(new_type).items():
            self.values.attributes.setdefault(key, value)

    def set_field(self, name: str, value: Any) -> None:
        self._ensure_open()
        if name == "asset_type":
            self.set_asset_type(value)
            return
        if name == "assigned_person_id":
            raise FormStateError("La persona asignada se gestiona desde las asignaciones")
        if name not in EDITABLE_FIELDS:
            raise AttributeValidationError(f"Campo desconocido: {name}", details={"field": name})
        if name == "status":
            if self.has_active_assignment:
                raise FormStateError(ACTIVE_ASSIGNMENT_MESSAGE)
            if value not in SETTABLE_STATUSES:
                raise AttributeValidationError(
                    f"Estado no permitido: {value}", details={"choices": list(SETTABLE_STATUSES)}
                )
        if name == "branch_id":
            self.values.branch_id = _blank_to_none(value)
            return
        if name == "received_date":
            self.received_pending = not value
        setattr(self.values, name, "" if value is None else value)

    def set_received_pending(self, pending: bool) -> None:
        """Tick "reception pending": clears the received date."""

        self._ensure_open()
        if self.has_active_assignment:
            raise FormStateError(ACTIVE_ASSIGNMENT_MESSAGE)
        self.received_pending = bool(pending)
        if pending:
            self.values.received_date = ""

    def set_attribute(self, key: str, value: Any) -> None:
        self._ensure_open()
        if key in _ACCESSORY_KEYS:
            raise FormStateError(
                "Los accesorios se vinculan con las opciones de accesorio", details={"key": key}
            )
        if key not in field_keys(self.values.asset_type):
            raise AttributeValidationError(
                f"El atributo {key} no aplica a {self.values.asset_type}",
                details={"key": key, "assetType": self.values.asset_type},
            )
        if value is None:
            self.values.attributes.pop(key, None)
        else:
            self.values.attributes[key] = value

    def suggest_asset_code(self) -> str:
        """Fill the asset code with the type prefix and an unused suffix."""

        self._ensure_open()
        prefix = code_prefix_for(self.values.asset_type)
        if not prefix:
            raise FormStateError(f"{self.values.asset_type} no tiene prefijo de código")
        page = self.client.list_assets(
            filters={"assetType": self.values.asset_type},
            page=1,
            page_size=get_settings().POOL_PAGE_SIZE,
        )
        code = generate_unique_code(prefix, (asset.asset_code for asset in page.items))
        self.values.asset_code = code
        return code

    # ---- accessories

    def _category(self, category: str) -> str:
        try:
            name = get_category(category).asset_type
        except KeyError as exc:
            raise AccessoryLinkError(str(exc.args[0])) from None
        if name not in accessory_categories_for(self.values.asset_type):
            raise AccessoryLinkError(
                f"{self.values.asset_type} no admite {name}",
                details={"assetType": self.values.asset_type, "category": name},
            )
        return name

    def accessory_state(self, category: str) -> LinkState:
        return self.links.link_state(self.values.attributes, self._category(category))

    def accessory_states(self) -> List[LinkState]:
        return [
            self.links.link_state(self.values.attributes, name)
            for name in accessory_categories_for(self.values.asset_type)
        ]

    def linked_ids(self) -> List[AssetId]:
        return [state.selected_id for state in self.accessory_states() if state.selected_id is not None]

    def accessory_options(self, category: str, query: str | None = None) -> List[Dict[str, str]]:
        """Pool entries for ``category``, minus units this form already links."""

        return self.pool.options(self._category(category), query, exclude=self.linked_ids())

    def check_accessory(self, category: str, checked: bool) -> LinkState:
        self._ensure_open()
        name = self._category(category)
        pending_here = self.links.pending is not None and self.links.pending.category == name
        state = self.links.set_has(self.values.attributes, name, checked)
        if not checked and pending_here:
            self._drop_nested()
        return state

    def choose_existing_accessory(self, category: str) -> LinkState:
        self._ensure_open()
        name = self._category(category)
        pending_here = self.links.pending is not None and self.links.pending.category == name
        state = self.links.choose_existing(self.values.attributes, name)
        if pending_here:
            self._drop_nested()
        return state

    def select_accessory(self, category: str, asset_id: AssetId) -> LinkState:
        self._ensure_open()
        return self.links.select(self.values.attributes, self._category(category), asset_id)

    def choose_new_accessory(self, category: str) -> "DeviceForm":
        """Switch ``category`` to "add new" and open the nested create form."""

        self._ensure_open()
        name = self._category(category)
        if self.parent is not None:
            raise AccessoryLinkError("Un accesorio no puede crear otros accesorios")
        pending = self.links.choose_new(self.values.attributes, name)
        if self.nested is None:
            self.nested = DeviceForm(
                self.client,
                self.pool,
                mode="create",
                fixed_type=pending.category,
                phone_registry=self.phone_registry,
                parent=self,
            ).open(refresh_pool=False)
        return self.nested

    def submit_nested(self) -> Asset:
        """Save the nested accessory and back-link it into this form."""

        if self.nested is None or self.links.pending is None:
            raise FormStateError("No hay un accesorio en creación")
        created = self.nested.submit()
        category = self.links.resolve_pending(self.values.attributes, created.id)
        self.nested = None
        self.pool.refresh()
        logger.info(
            "Accessory created from device form",
            extra={"extra_data": {"category": category, "asset_id": created.id, "form": self.id}},
        )
        return created

    def _drop_nested(self) -> None:
        if self.nested is not None:
            self.nested.is_open = False
        self.nested = None

    def cancel_nested(self) -> None:
        self.links.cancel_pending()
        self._drop_nested()

    # ---- save

    def _base_data(self, attributes: Dict[str, Any]) -> Dict[str, Any]:
        values = self.values
        return {
            "asset_code": values.asset_code.strip(),
            "asset_type": values.asset_type,
            "brand": _blank_to_none(values.brand),
            "model": _blank_to_none(values.model),
            "serial_number": _blank_to_none(values.serial_number),
            "status": values.status or STATUS_AVAILABLE,
            "branch_id": _blank_to_none(values.branch_id),
            "assigned_person_id": values.assigned_person_id,
            "purchase_date": _blank_to_none(values.purchase_date),
            "delivery_date": _blank_to_none(self.delivery_date_auto or values.delivery_date),
            "received_date": _blank_to_none(values.received_date),
            "notes": _blank_to_none(values.notes),
            "attributes_json": attributes or None,
        }

    def compose_payload(self) -> Union[AssetPayload, AssetPatch]:
        """Build the request body: base fields, typed attributes and accessory links."""

        if not self.values.asset_code.strip():
            raise AttributeValidationError("El código es obligatorio", details={"field": "asset_code"})
        attributes = sanitize_attributes(self.values.asset_type, self.values.attributes)
        data = self._base_data(attributes)
        if self.mode == "create":
            return AssetPayload(**data)
        if self.has_active_assignment or data["status"] not in SETTABLE_STATUSES:
            # Locked while an assignment is open; server-derived statuses are never sent back.
            data.pop("status")
        data.pop("assigned_person_id")
        return AssetPatch(**data)

    def _changed_selections(self, attributes: Dict[str, Any]) -> List[str]:
        original = self.device.attributes_json if self.device else {}
        changed = []
        for state in self.accessory_states():
            key = get_category(state.category).selected_key
            if state.selected_id is not None and str(attributes.get(key)) != str(original.get(key)):
                changed.append(state.category)
        return changed

    def _revalidate_accessories(self) -> None:
        categories = self._changed_selections(self.values.attributes)
        if not categories:
            return
        self.pool.refresh()
        stale = self.links.stale_selections(self.values.attributes, categories)
        if stale:
            raise AccessoryLinkError(
                "Uno de los accesorios seleccionados ya no está disponible", details={"stale": stale}
            )

    def _save(self, payload: Union[AssetPayload, AssetPatch]) -> Asset:
        if self.on_save is not None:
            return self.on_save(payload)
        if self.mode == "create":
            return self.client.create_asset(payload)
        return self.client.update_asset(self.device.id, payload)  # type: ignore[union-attr]

    def submit(self) -> Asset:
        """Validate and save; on failure the form keeps every value it had."""

        self._ensure_open()
        self.error = None
        try:
            if self.links.pending is not None:
                raise FormStateError(
                    "Termina o cancela la creación del accesorio pendiente",
                    details={"pending": self.links.pending.category},
                )
            payload = self.compose_payload()
            editing_id = self.device.id if self.mode == "edit" and self.device else None
            self.phone_registry.ensure_unique(payload.asset_type, payload.attributes_json, editing_id)
            if get_settings().REVALIDATE_ACCESSORIES:
                self._revalidate_accessories()
            saved = self._save(payload)
        except InventoryApiError as exc:
            message = friendly_save_error(exc)
            self.error = message
            logger.warning(
                "Device save rejected",
                extra={"extra_data": {"form": self.id, "error": exc.message}},
            )
            if message == exc.message:
                raise
            raise InventoryApiError(message, upstream_status=exc.upstream_status, details=exc.details) from exc
        except AssetFormError as exc:
            self.error = exc.message
            raise

        self.saved = saved
        self.is_open = False
        logger.info(
            "Device saved",
            extra={"extra_data": {"form": self.id, "mode": self.mode, "asset_id": saved.id}},
        )
        return saved

    # ---- presentation

    def snapshot(self) -> Dict[str, Any]:
        values = self.values
        return {
            "id": self.id,
            "mode": self.mode,
            "fixedType": self.fixed_type,
            "isOpen": self.is_open,
            "values": {
                "assetCode": values.asset_code,
                "assetType": values.asset_type,
                "brand": values.brand,
                "model": values.model,
                "serialNumber": values.serial_number,
                "status": values.status,
                "branchId": values.branch_id,
                "assignedPersonId": values.assigned_person_id,
                "purchaseDate": values.purchase_date,
                "deliveryDate": self.delivery_date_auto or values.delivery_date,
                "receivedDate": values.received_date,
                "notes": values.notes,
                "attributesJson": dict(values.attributes),
            },
            "fields": [f.as_dict() for f in visible_fields(values.asset_type, values.attributes)],
            "accessories": [state.as_dict() for state in self.accessory_states()],
            "pendingAccessory": self.links.pending.category if self.links.pending else None,
            "nested": self.nested.snapshot() if self.nested is not None else None,
            "hasActiveAssignment": self.has_active_assignment,
            "receivedPending": self.received_pending,
            "codePrefix": code_prefix_for(values.asset_type),
            "error": self.error,
            "savedId": self.saved.id if self.saved is not None else None,
        }
