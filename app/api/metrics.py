from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.deps import SettingsDep
from app.api.errors import NotFoundError
from app.models.schemas import Principal
from app.observability.metrics import get_metrics
from app.services.auth_dependencies import get_current_principal


router = APIRouter(prefix="/api", tags=["metrics"])


@router.get("/metrics")
async def metrics(settings: SettingsDep, principal: Principal = Depends(get_current_principal)) -> dict:
    _ = principal  # auth gate
    if not settings.enable_metrics_endpoint:
        raise NotFoundError("metrics endpoint disabled")
    return get_metrics().snapshot()
