from __future__ import annotations

import hmac
from dataclasses import dataclass

from fastapi import Header, HTTPException, Request, status
from fastapi.security.utils import get_authorization_scheme_param

from ..core.config import settings
from ..middlewares import principal_ctx_var


@dataclass(frozen=True)
class AuthContext:
    subject: str
    scheme: str


def _presented_key(authorization: str | None, x_api_key: str | None) -> str:
    """``X-API-Key`` wins; otherwise the credentials of a Bearer header."""

    key = (x_api_key or "").strip()
    if key or not authorization:
        return key
    scheme, credentials = get_authorization_scheme_param(authorization)
    return credentials.strip() if scheme.lower() == "bearer" else ""


def _authenticated(request: Request, context: AuthContext) -> AuthContext:
    principal_ctx_var.set(context.subject)
    request.state.principal = context.subject
    return context


async def require_api_key(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> AuthContext:
    """Guard for the console-facing routes.

    The console authenticates with the service key. With no key configured
    the API is open, which is how local development runs.
    """

    expected = settings.API_KEY
    if not expected:
        return _authenticated(request, AuthContext(subject="anonymous", scheme="open"))

    presented = _presented_key(authorization, x_api_key)
    if not presented:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authorization required")
    if not hmac.compare_digest(expected.encode(), presented.encode()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")
    return _authenticated(request, AuthContext(subject="api-key", scheme="api_key"))
