from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status

from ..clients.inventory import InventoryClient
from ..middlewares import form_session_ctx_var
from ..services.device_form import DeviceForm
from ..services.form_sessions import FormSessionStore


def get_inventory_client(request: Request) -> InventoryClient:
    return request.app.state.inventory_client


def get_form_store(request: Request) -> FormSessionStore:
    return request.app.state.form_store


async def open_form(
    session_id: str,
    request: Request,
    store: FormSessionStore = Depends(get_form_store),
) -> DeviceForm:
    """The open form behind ``session_id``, or 404.

    Stays async: a sync handler's worker thread copies the context set here.
    """

    form_session_ctx_var.set(session_id)
    request.state.form_session = session_id
    try:
        return store.require_open(session_id)
    except KeyError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found") from None
