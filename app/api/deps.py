"""Shared request dependencies."""

from __future__ import annotations

__all__ = ["SettingsDep", "get_app_settings"]

from typing import Annotated

from fastapi import Depends, Request

from app.config import Settings, get_settings


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was built with (``create_app`` stores them)."""

    settings = getattr(request.app.state, "settings", None)
    if isinstance(settings, Settings):
        return settings
    return get_settings()


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
