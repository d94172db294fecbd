from __future__ import annotations

import json
from typing import Any

from app.models.schemas import Principal, RequestContext, ResponseOutcome, TelemetryEvent


OBJECT_TYPE = "api_request"


def derive_handle(principal: Principal | None, default_domain: str) -> str | None:
    """Return ``username@domain`` for a resolved principal, else None."""

    if principal is None or principal.username is None:
        return None
    domain = principal.domain if principal.domain is not None else default_domain
    return f"{principal.username}@{domain}"


def build_event(context: RequestContext, outcome: ResponseOutcome, *, default_domain: str) -> TelemetryEvent:
    principal = context.principal
    return TelemetryEvent(
        user_id=principal.id if principal is not None else None,
        path=context.path,
        handler=context.handler_name,
        method=context.method,
        status_code=outcome.status_code,
        user_agent=context.user_agent,
        ip_address=context.client_ip,
        handle=derive_handle(principal, default_domain),
        account_id=principal.account_id if principal is not None else None,
    )


def object_state(event: TelemetryEvent) -> dict[str, Any]:
    return {
        "user_id": event.user_id,
        "path": event.path,
        "controller": event.handler,
        "method": event.method,
        "status_code": event.status_code,
    }


def to_record(event: TelemetryEvent) -> dict[str, Any]:
    """Transport fields of a backend object_update event."""

    return {
        "user_agent": event.user_agent,
        "ip_address": event.ip_address,
        "object_type": OBJECT_TYPE,
        "object_state": json.dumps(object_state(event), separators=(",", ":")),
        "identifiers_adjust_device_id": None,
        "identifiers_fxa_account_id": None,
        "identifiers_mastodon_account_handle": event.handle,
        "identifiers_mastodon_account_id": event.account_id,
        "identifiers_user_agent": event.user_agent,
    }
