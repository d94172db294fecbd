from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.deps import SettingsDep
from app.models.schemas import Principal, PrincipalResponse
from app.services.auth_dependencies import require_functional
from app.telemetry.events import derive_handle

router = APIRouter(prefix="/api", tags=["accounts"])


@router.get("/me", response_model=PrincipalResponse)
def me(settings: SettingsDep, principal: Principal = Depends(require_functional)) -> PrincipalResponse:
    return PrincipalResponse(
        id=str(principal.id),
        username=principal.username,
        domain=principal.domain,
        handle=derive_handle(principal, settings.default_handle_domain),
    )
