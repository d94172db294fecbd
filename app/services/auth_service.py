from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from app.config import Settings, get_settings
from app.models.schemas import Principal


def create_session_token(principal: Principal, settings: Settings | None = None) -> str:
    settings = settings or get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(principal.id),
        "username": principal.username,
        "domain": principal.domain,
        "account_id": principal.account_id,
        "functional": principal.functional,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=settings.jwt_exp_minutes)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


def decode_session_token(token: str, settings: Settings | None = None) -> dict[str, Any]:
    settings = settings or get_settings()
    return jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])


def principal_from_claims(claims: dict[str, Any]) -> Principal:
    subject = claims.get("sub")
    if subject in (None, ""):
        raise ValueError("session token has no subject")
    return Principal(
        id=subject,
        username=claims.get("username"),
        domain=claims.get("domain"),
        account_id=claims.get("account_id"),
        functional=bool(claims.get("functional", True)),
    )
