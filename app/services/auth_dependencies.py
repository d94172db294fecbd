from __future__ import annotations

import structlog
from fastapi import Depends, HTTPException, Request

from app.api.deps import SettingsDep
from app.api.errors import NotPermittedError
from app.models.schemas import Principal
from app.services.auth_service import decode_session_token, principal_from_claims


def get_optional_principal(request: Request, settings: SettingsDep) -> Principal | None:
    """Resolve the session principal, if any, and expose it to request telemetry."""

    token = request.cookies.get(settings.jwt_cookie_name)
    if not token:
        return None

    try:
        principal = principal_from_claims(decode_session_token(token, settings))
    except Exception:  # noqa: BLE001
        structlog.get_logger("auth").info("invalid_session_cookie")
        return None

    request.state.principal = principal
    structlog.contextvars.bind_contextvars(user_id=str(principal.id))
    return principal


def get_current_principal(principal: Principal | None = Depends(get_optional_principal)) -> Principal:
    if principal is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return principal


def require_functional(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.functional:
        raise NotPermittedError("account is not functional")
    return principal
