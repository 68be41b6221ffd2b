from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

ACTIVE_ASSIGNMENT_MARKER = "asignación activa"
ACTIVE_ASSIGNMENT_MESSAGE = (
    "No puedes editar este dispositivo hasta que deje de tener una asignación activa"
)
DUPLICATE_PHONE_MESSAGE = "El número telefónico ya está registrado en otro dispositivo."
UNKNOWN_ERROR_MESSAGE = "Error desconocido"


class AssetFormError(Exception):
    """Base class for every failure a device form reports back to the user."""

    code = "form_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, *, details: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class AttributeValidationError(AssetFormError):
    code = "attribute_validation_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class DuplicatePhoneNumberError(AssetFormError):
    code = "duplicate_phone_number"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, phone_number: str, conflicting_id: Any | None = None) -> None:
        details: dict[str, Any] = {"phoneNumber": phone_number}
        if conflicting_id is not None:
            details["deviceId"] = conflicting_id
        super().__init__(DUPLICATE_PHONE_MESSAGE, details=details)
        self.phone_number = phone_number
        self.conflicting_id = conflicting_id


class AccessoryLinkError(AssetFormError):
    code = "accessory_link_error"
    status_code = status.HTTP_409_CONFLICT


class FormStateError(AssetFormError):
    code = "form_state_error"
    status_code = status.HTTP_409_CONFLICT


class InventoryApiError(AssetFormError):
    """The external inventory API rejected a call or could not be reached."""

    code = "inventory_api_error"
    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, *, upstream_status: int | None = None, details: Any | None = None) -> None:
        super().__init__(message, details=details)
        self.upstream_status = upstream_status
        # Client errors from the inventory are the user's to fix; pass them on.
        if upstream_status is not None and 400 <= upstream_status < 500:
            self.status_code = upstream_status


def friendly_save_error(exc: BaseException) -> str:
    """Turn a server-side save rejection into the message shown on the form."""

    raw = getattr(exc, "message", None) or str(exc) or UNKNOWN_ERROR_MESSAGE
    if ACTIVE_ASSIGNMENT_MARKER in raw:
        return ACTIVE_ASSIGNMENT_MESSAGE
    return raw


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


async def asset_form_exception_handler(request: Request, exc: AssetFormError):
    return ErrorEnvelope(
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        details=exc.details,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    if isinstance(detail, str):
        message = detail
    else:
        message = "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(
        status_code=exc.status_code,
        code="http_error",
        message=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc):  # type: ignore[override]
    from fastapi.encoders import jsonable_encoder
    from fastapi.exceptions import RequestValidationError

    if isinstance(exc, RequestValidationError):
        return ErrorEnvelope(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code="validation_error",
            message="Validation failed",
            details={"errors": jsonable_encoder(exc.errors())},
        )
    raise exc
