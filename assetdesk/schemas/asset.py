"""Pydantic schemas for inventory records as the external API ships them.

The inventory speaks camelCase JSON; Python code uses snake_case attributes.
``populate_by_name`` lets tests and callers build models either way.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

AssetId = Union[int, str]
AssetStatus = Literal["available", "assigned", "maintenance", "decommissioned"]
SettableStatus = Literal["available", "maintenance", "decommissioned"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Serialize for the inventory API: camelCase keys, unset optionals absent."""

        return self.model_dump(by_alias=True, exclude_none=True)


class Asset(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: AssetId
    asset_code: str = ""
    asset_type: str = ""
    brand: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    # Open ended on read: the inventory also reports statuses such as "loaned".
    status: str = "available"
    branch_id: Optional[AssetId] = None
    assigned_person_id: Optional[AssetId] = None
    purchase_date: Optional[str] = None
    delivery_date: Optional[str] = None
    received_date: Optional[str] = None
    notes: Optional[str] = None
    attributes_json: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_available(self) -> bool:
        return self.status == "available" and not self.assigned_person_id


class AssetPayload(CamelModel):
    """Body of ``POST /assets``."""

    asset_code: str
    asset_type: str
    brand: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    status: AssetStatus = "available"
    branch_id: Optional[AssetId] = None
    assigned_person_id: Optional[AssetId] = None
    purchase_date: Optional[str] = None
    delivery_date: Optional[str] = None
    received_date: Optional[str] = None
    notes: Optional[str] = None
    attributes_json: Optional[Dict[str, Any]] = None


class AssetPatch(CamelModel):
    """Body of ``PUT /assets/{id}``; every field optional."""

    asset_code: Optional[str] = None
    asset_type: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    status: Optional[AssetStatus] = None
    branch_id: Optional[AssetId] = None
    assigned_person_id: Optional[AssetId] = None
    purchase_date: Optional[str] = None
    delivery_date: Optional[str] = None
    received_date: Optional[str] = None
    notes: Optional[str] = None
    attributes_json: Optional[Dict[str, Any]] = None


class AssetPage(BaseModel):
    items: List[Asset] = Field(default_factory=list)
    total: int = 0


class PhoneCheckResult(CamelModel):
    exists: bool = False
    device_id: Optional[AssetId] = None


class Assignment(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: AssetId
    asset_id: AssetId
    person_id: Optional[AssetId] = None
    branch_id: Optional[AssetId] = None
    assignment_date: Optional[str] = None
    return_date: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return not self.return_date
