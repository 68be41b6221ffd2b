"""Device form endpoints used by the browser console.

A console dialog maps to one form session: open it, patch values as the user
types, drive accessory choices, and submit. The session holds the accessory
pools and the nested accessory form between calls.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..clients.inventory import InventoryClient
from ..core.accessories import RADIO_CREATE_NEW, RADIO_SELECT_EXISTING
from ..core.asset_codes import code_prefix_for
from ..core.asset_types import ASSET_TYPE_CHOICES, normalize_asset_type, type_label
from ..deps.auth import require_api_key
from ..deps.forms import get_form_store, get_inventory_client, open_form
from ..schemas.forms import AccessoryChoice, FormOpenRequest, FormPatch
from ..services.attribute_schema import accessory_categories_for, fields_for
from ..services.device_form import DeviceForm
from ..services.form_sessions import FormSessionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["device-forms"], dependencies=[Depends(require_api_key)])


def _apply_patch(form: DeviceForm, payload: FormPatch) -> None:
    if payload.asset_type is not None:
        form.set_asset_type(payload.asset_type)
    for name, value in payload.field_updates().items():
        form.set_field(name, value)
    if payload.received_pending is not None:
        form.set_received_pending(payload.received_pending)
    for key, value in payload.attributes.items():
        form.set_attribute(key, value)


def _apply_choice(form: DeviceForm, category: str, choice: AccessoryChoice) -> None:
    if choice.has_accessory is not None:
        form.check_accessory(category, choice.has_accessory)
    if choice.radio == RADIO_CREATE_NEW:
        form.choose_new_accessory(category)
    elif choice.radio == RADIO_SELECT_EXISTING:
        form.choose_existing_accessory(category)
    if choice.selected_id is not None:
        form.select_accessory(category, choice.selected_id)


def _nested(form: DeviceForm) -> DeviceForm:
    if form.nested is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No nested accessory form")
    return form.nested


# ---------- asset types ----------


@router.get("/asset-types")
def api_asset_types() -> List[Dict[str, Any]]:
    return [
        {
            "value": asset_type,
            "label": type_label(asset_type),
            "codePrefix": code_prefix_for(asset_type),
            "accessories": accessory_categories_for(asset_type),
        }
        for asset_type in ASSET_TYPE_CHOICES
    ]


@router.get("/asset-types/{asset_type}/fields")
def api_asset_type_fields(asset_type: str) -> List[Dict[str, Any]]:
    normalized = normalize_asset_type(asset_type)
    if normalized not in ASSET_TYPE_CHOICES:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown asset type")
    return [field.as_dict() for field in fields_for(normalized)]


# ---------- form sessions ----------


@router.post("/device-forms", status_code=status.HTTP_201_CREATED)
def api_open_form(
    payload: FormOpenRequest,
    client: InventoryClient = Depends(get_inventory_client),
    store: FormSessionStore = Depends(get_form_store),
):
    device = client.get_asset(payload.device_id) if payload.mode == "edit" else None
    form = DeviceForm(client, mode=payload.mode, fixed_type=payload.fixed_type, device=device).open()
    if payload.asset_type and payload.mode == "create":
        form.set_asset_type(payload.asset_type)
    store.add(form)
    return form.snapshot()


@router.get("/device-forms/{session_id}")
def api_get_form(form: DeviceForm = Depends(open_form)):
    return form.snapshot()


@router.patch("/device-forms/{session_id}")
def api_patch_form(payload: FormPatch, form: DeviceForm = Depends(open_form)):
    _apply_patch(form, payload)
    return form.snapshot()


@router.post("/device-forms/{session_id}/asset-code")
def api_suggest_code(form: DeviceForm = Depends(open_form)):
    form.suggest_asset_code()
    return form.snapshot()


@router.delete("/device-forms/{session_id}")
def api_close_form(session_id: str, store: FormSessionStore = Depends(get_form_store)):
    form = store.discard(session_id)
    if form is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found")
    return {"status": "closed"}


@router.post("/device-forms/{session_id}/submit")
def api_submit_form(form: DeviceForm = Depends(open_form), store: FormSessionStore = Depends(get_form_store)):
    saved = form.submit()
    store.discard(form.id)
    return saved.to_wire()


# ---------- accessories ----------


@router.put("/device-forms/{session_id}/accessories/{category}")
def api_set_accessory(category: str, choice: AccessoryChoice, form: DeviceForm = Depends(open_form)):
    _apply_choice(form, category, choice)
    return form.snapshot()


@router.get("/device-forms/{session_id}/accessories/{category}/options")
def api_accessory_options(
    category: str,
    q: Optional[str] = Query(default=None, max_length=100),
    form: DeviceForm = Depends(open_form),
):
    return form.accessory_options(category, q)


@router.patch("/device-forms/{session_id}/nested")
def api_patch_nested(payload: FormPatch, form: DeviceForm = Depends(open_form)):
    _apply_patch(_nested(form), payload)
    return form.snapshot()


@router.post("/device-forms/{session_id}/nested/submit")
def api_submit_nested(form: DeviceForm = Depends(open_form)):
    _nested(form)
    form.submit_nested()
    return form.snapshot()


@router.delete("/device-forms/{session_id}/nested")
def api_cancel_nested(form: DeviceForm = Depends(open_form)):
    _nested(form)
    form.cancel_nested()
    return form.snapshot()
