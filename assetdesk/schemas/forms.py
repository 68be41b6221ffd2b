"""Pydantic schemas for the device form endpoints."""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import Field, model_validator

from .asset import AssetId, CamelModel

# Base fields a PATCH may carry.
PATCHABLE_FIELDS = (
    "asset_code",
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


class FormOpenRequest(CamelModel):
    mode: Literal["create", "edit"] = "create"
    asset_type: Optional[str] = None
    fixed_type: Optional[str] = None
    device_id: Optional[AssetId] = None

    @model_validator(mode="after")
    def validate_target(self) -> "FormOpenRequest":
        if self.mode == "edit" and self.device_id is None:
            raise ValueError("deviceId is required to edit a device")
        return self


class FormPatch(CamelModel):
    asset_type: Optional[str] = None
    asset_code: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    status: Optional[str] = None
    branch_id: Optional[AssetId] = None
    purchase_date: Optional[str] = None
    delivery_date: Optional[str] = None
    received_date: Optional[str] = None
    notes: Optional[str] = None
    received_pending: Optional[bool] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)

    def field_updates(self) -> Dict[str, Any]:
        """Base field changes the client actually sent, ``None`` meaning clear."""

        return {name: getattr(self, name) for name in PATCHABLE_FIELDS if name in self.model_fields_set}


class AccessoryChoice(CamelModel):
    has_accessory: Optional[bool] = None
    radio: Optional[Literal["yes", "no"]] = None
    selected_id: Optional[AssetId] = None

    @model_validator(mode="after")
    def validate_choice(self) -> "AccessoryChoice":
        if self.has_accessory is False and (self.radio or self.selected_id is not None):
            raise ValueError("radio and selectedId require hasAccessory")
        if self.selected_id is not None and self.radio == "yes":
            raise ValueError("selectedId only applies when assigning an existing unit")
        return self
