"""HTTP client for the external inventory API.

API contract (as the console uses it):
  Base: ``settings.INVENTORY_API_URL``
  Auth: ``Authorization: Bearer <token>`` (optional)
  List:   GET  /assets?page=<n>&limit=<n>[&assetType=..&status=..]
          -> a bare JSON list, or ``{"data"|"items": [...], "total": n}``
  Get:    GET  /assets/{id}
  Phone:  GET  /assets/check-phone?phone=<normalized> -> {"exists", "deviceId"?}
  Create: POST /assets
  Update: PUT  /assets/{id}
  Assignments: GET /assignments[?assetId=<id>]
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ..core.config import AppSettings, get_settings
from ..core.errors import UNKNOWN_ERROR_MESSAGE, InventoryApiError
from ..schemas.asset import (
    Asset,
    AssetId,
    AssetPage,
    AssetPatch,
    AssetPayload,
    Assignment,
    PhoneCheckResult,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def extract_items(data: Any) -> List[Dict[str, Any]]:
    """Accept the list shapes the inventory has shipped over time."""

    if isinstance(data, list):
        return [item for item in data if isinstance(item, dict)]
    if isinstance(data, dict):
        for key in ("data", "items"):
            value = data.get(key)
            if isinstance(value, list):
                return [item for item in value if isinstance(item, dict)]
    return []


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("message") or body.get("detail")
        if isinstance(message, list):
            message = "; ".join(str(item) for item in message)
        if message:
            return str(message)
    return f"Error {response.status_code}" if response.status_code else UNKNOWN_ERROR_MESSAGE


def _parse(model: Type[ModelT], data: Any, context: str) -> ModelT:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        logger.error("Unexpected %s payload from inventory during %s", model.__name__, context)
        raise InventoryApiError(f"Respuesta inválida del inventario durante {context}") from exc


def _parse_items(model: Type[ModelT], data: Any, context: str) -> List[ModelT]:
    """Validate each listed record; ones that do not fit are skipped and logged."""

    parsed: List[ModelT] = []
    for item in extract_items(data):
        try:
            parsed.append(model.model_validate(item))
        except ValidationError as exc:
            logger.warning(
                "Skipping unreadable %s record during %s",
                model.__name__,
                context,
                extra={"extra_data": {"id": item.get("id"), "errors": exc.error_count()}},
            )
    return parsed


def _raise_for_status(response: httpx.Response, context: str) -> None:
    if response.is_success:
        return
    if response.status_code in {401, 403}:
        logger.warning("Inventory authentication failed for %s", context)
    elif response.status_code >= 500:
        logger.error("Inventory service error %s during %s", response.status_code, context)
    else:
        logger.info("Inventory rejected %s with %s", context, response.status_code)
    raise InventoryApiError(_error_message(response), upstream_status=response.status_code)


class InventoryClient:
    """Thin synchronous wrapper around the inventory REST endpoints."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
        app_settings: AppSettings | None = None,
    ) -> None:
        cfg = app_settings or get_settings()
        headers = {"Accept": "application/json"}
        token = cfg.INVENTORY_API_TOKEN if token is None else token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(
            base_url=(base_url or cfg.inventory_base_url).rstrip("/"),
            headers=headers,
            timeout=cfg.INVENTORY_TIMEOUT if timeout is None else timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "InventoryClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(self, method: str, path: str, context: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("Inventory request failed during %s: %s", context, exc)
            raise InventoryApiError(f"No se pudo contactar el inventario: {exc}") from exc
        _raise_for_status(response, context)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise InventoryApiError(f"Respuesta inválida del inventario durante {context}") from exc

    # ---- assets

    def list_assets(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        page: int = 1,
        page_size: int = 100,
    ) -> AssetPage:
        params: Dict[str, Any] = {"page": page, "limit": page_size}
        for key, value in (filters or {}).items():
            if value is not None and value != "":
                params[key] = value
        data = self._request("GET", "/assets", "list_assets", params=params)
        items = _parse_items(Asset, data, "list_assets")
        total = data.get("total") if isinstance(data, dict) else None
        return AssetPage(items=items, total=total if isinstance(total, int) else len(items))

    def get_asset(self, asset_id: AssetId) -> Asset:
        data = self._request("GET", f"/assets/{asset_id}", "get_asset")
        return _parse(Asset, data, "get_asset")

    def check_phone_unique(self, normalized_number: str) -> PhoneCheckResult:
        data = self._request(
            "GET", "/assets/check-phone", "check_phone_unique", params={"phone": normalized_number}
        )
        if not isinstance(data, dict):
            raise InventoryApiError("Respuesta inválida al verificar el número telefónico")
        return _parse(PhoneCheckResult, data, "check_phone_unique")

    def create_asset(self, payload: AssetPayload) -> Asset:
        body = payload.to_wire()
        logger.info(
            "Creating asset",
            extra={"extra_data": {"asset_code": payload.asset_code, "asset_type": payload.asset_type}},
        )
        data = self._request("POST", "/assets", "create_asset", json=body)
        return _parse(Asset, data, "create_asset")

    def update_asset(self, asset_id: AssetId, payload: AssetPatch) -> Asset:
        body = payload.to_wire()
        logger.info("Updating asset", extra={"extra_data": {"asset_id": asset_id}})
        data = self._request("PUT", f"/assets/{asset_id}", "update_asset", json=body)
        return _parse(Asset, data, "update_asset")

    # ---- assignments

    def list_assignments(self, asset_id: AssetId | None = None) -> List[Assignment]:
        params = {"assetId": asset_id} if asset_id is not None else None
        data = self._request("GET", "/assignments", "list_assignments", params=params)
        return _parse_items(Assignment, data, "list_assignments")
