from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Principal(BaseModel):
    """The authenticated user (and their account) behind a request."""

    model_config = ConfigDict(frozen=True)

    id: str | int
    username: str | None = None
    domain: str | None = None
    account_id: str | int | None = None
    functional: bool = True


class RequestContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    method: str
    path: str
    client_ip: str | None = None
    user_agent: str | None = None
    principal: Principal | None = None
    handler_name: str | None = None


class ResponseOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    status_code: int
    error_kind: str | None = None


class TelemetryEvent(BaseModel):
    """One api_request event, built after the handler finished."""

    model_config = ConfigDict(frozen=True)

    user_id: str | int | None
    path: str
    handler: str | None
    method: str
    status_code: int
    user_agent: str | None = None
    ip_address: str | None = None
    handle: str | None = None
    account_id: str | int | None = None


class PrincipalResponse(BaseModel):
    id: str
    username: str | None
    domain: str | None
    handle: str | None
