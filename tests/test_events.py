import json

from app.models.schemas import Principal, RequestContext, ResponseOutcome
from app.telemetry.events import build_event, derive_handle, object_state, to_record


def _context(principal: Principal | None = None) -> RequestContext:
    return RequestContext(
        method="GET",
        path="/api/statuses?limit=20",
        client_ip="198.51.100.4",
        user_agent="Mozilla/5.0",
        principal=principal,
        handler_name="statuses",
    )


def test_handle_uses_principal_domain() -> None:
    principal = Principal(id=1, username="alice", domain="example.org")
    assert derive_handle(principal, "mozilla.social") == "alice@example.org"


def test_handle_falls_back_to_default_domain() -> None:
    principal = Principal(id=1, username="alice")
    assert derive_handle(principal, "mozilla.social") == "alice@mozilla.social"


def test_handle_absent_without_principal_or_username() -> None:
    assert derive_handle(None, "mozilla.social") is None
    assert derive_handle(Principal(id=1), "mozilla.social") is None


def test_build_event_without_principal_has_null_identity() -> None:
    event = build_event(_context(), ResponseOutcome(status_code=200), default_domain="mozilla.social")

    assert event.user_id is None
    assert event.handle is None
    assert event.account_id is None
    assert event.status_code == 200
    assert event.path == "/api/statuses?limit=20"


def test_record_carries_object_state_and_identifiers() -> None:
    principal = Principal(id=7, username="alice", account_id=42)
    event = build_event(_context(principal), ResponseOutcome(status_code=404), default_domain="mozilla.social")

    record = to_record(event)

    assert record["object_type"] == "api_request"
    assert record["ip_address"] == "198.51.100.4"
    assert record["user_agent"] == "Mozilla/5.0"
    assert record["identifiers_user_agent"] == "Mozilla/5.0"
    assert record["identifiers_mastodon_account_handle"] == "alice@mozilla.social"
    assert record["identifiers_mastodon_account_id"] == 42
    assert record["identifiers_adjust_device_id"] is None
    assert record["identifiers_fxa_account_id"] is None
    assert json.loads(record["object_state"]) == {
        "user_id": 7,
        "path": "/api/statuses?limit=20",
        "controller": "statuses",
        "method": "GET",
        "status_code": 404,
    }
    assert list(object_state(event)) == ["user_id", "path", "controller", "method", "status_code"]
