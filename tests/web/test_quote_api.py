"""
Tests for the quote REST API.

Tests:
- Admin quote endpoints and the X-User-* actor headers
- Error body shape and status mapping
- Send endpoints reporting email failures with 502
- Public approval links
- Notification settings administration
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from notifications import NotificationType
from quotes import build_memory_platform
from web.app import create_app


ADMIN_HEADERS = {"X-User-Id": "user-admin", "X-User-Name": "Alex Admin", "X-User-Role": "ADMIN"}
SUPER_HEADERS = {"X-User-Id": "user-super", "X-User-Name": "Sam Super", "X-User-Role": "SUPER_ADMIN"}
EDITOR_HEADERS = {"X-User-Id": "user-editor", "X-User-Name": "Eddie Editor", "X-User-Role": "EDITOR"}

QUOTE_BODY = {
    "title": "Team Polos",
    "customer_name": "Walk-in Customer",
    "customer_email": "walkin@example.test",
    "line_items": [
        {"name": "Embroidered Polo", "quantity": 10, "unit_price": "25.00"},
        {"name": "Setup Fee", "item_type": "SETUP_FEE", "quantity": 1, "unit_price": "50.00"},
    ],
}

ARTWORK_QUOTE_BODY = {**QUOTE_BODY, "artwork_required": True}


@pytest.fixture
def client(platform):
    return TestClient(create_app(platform))


@pytest.fixture
def created(client):
    response = client.post("/api/quotes", json=QUOTE_BODY, headers=ADMIN_HEADERS)
    assert response.status_code == 201
    return response.json()


class TestAdminQuoteEndpoints:
    """Tests for the /api/quotes endpoints."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_create_quote(self, created):
        assert created["quote_number"] == "Q2026-0001"
        assert created["status"] == "PENDING"
        assert Decimal(created["total"]) == Decimal("300")

    def test_missing_user_header_is_unauthorized(self, client):
        response = client.post("/api/quotes", json=QUOTE_BODY)

        assert response.status_code == 401
        assert response.json()["message"] == "Authentication required"

    def test_unknown_role_rejected(self, client):
        headers = {**ADMIN_HEADERS, "X-User-Role": "JANITOR"}

        response = client.get("/api/quotes", headers=headers)

        assert response.status_code == 400

    def test_list_and_get(self, client, created):
        listing = client.get("/api/quotes", headers=ADMIN_HEADERS).json()
        single = client.get(f"/api/quotes/{created['id']}", headers=ADMIN_HEADERS).json()

        assert listing["count"] == 1
        assert listing["quotes"][0]["id"] == created["id"]
        assert single["title"] == "Team Polos"

    def test_patch_updates_fields(self, client, created):
        response = client.patch(
            f"/api/quotes/{created['id']}",
            json={"title": "Summer Polos"},
            headers=ADMIN_HEADERS,
        )

        assert response.status_code == 200
        assert response.json()["title"] == "Summer Polos"

    def test_audit_logs_are_paginated(self, client, created):
        client.patch(f"/api/quotes/{created['id']}", json={"title": "Summer Polos"}, headers=ADMIN_HEADERS)

        response = client.get(f"/api/quotes/{created['id']}/audit-logs?limit=1", headers=ADMIN_HEADERS)

        data = response.json()
        assert data["total"] == 2
        assert data["limit"] == 1
        assert len(data["entries"]) == 1
        assert data["entries"][0]["action"] == "UPDATED"

    def test_delete_requires_super_admin(self, client, created):
        forbidden = client.delete(f"/api/quotes/{created['id']}", headers=ADMIN_HEADERS)
        deleted = client.delete(f"/api/quotes/{created['id']}", headers=SUPER_HEADERS)

        assert forbidden.status_code == 403
        assert forbidden.json()["code"] == "PermissionDeniedError"
        assert deleted.status_code == 204
        assert client.get(f"/api/quotes/{created['id']}", headers=ADMIN_HEADERS).status_code == 404

    def test_audit_logs_survive_delete(self, client, created):
        client.delete(f"/api/quotes/{created['id']}", headers=SUPER_HEADERS)

        data = client.get(f"/api/quotes/{created['id']}/audit-logs", headers=ADMIN_HEADERS).json()

        assert [e["action"] for e in data["entries"]] == ["DELETED", "CREATED"]


class TestErrorResponses:
    """Tests for the error body and status mapping."""

    def test_validation_error_is_400(self, client):
        body = {**QUOTE_BODY, "line_items": []}

        response = client.post("/api/quotes", json=body, headers=ADMIN_HEADERS)

        data = response.json()
        assert response.status_code == 400
        assert data["error"] is True
        assert data["code"] == "QuoteValidationError"
        assert data["message"] == "At least one line item is required"

    def test_invalid_transition_is_409(self, client, created):
        response = client.patch(
            f"/api/quotes/{created['id']}",
            json={"status": "APPROVED"},
            headers=ADMIN_HEADERS,
        )

        data = response.json()
        assert response.status_code == 409
        assert data["code"] == "InvalidTransitionError"
        assert data["details"] == {"current_status": "PENDING", "target_status": "APPROVED"}

    def test_missing_quote_is_404(self, client):
        response = client.get("/api/quotes/does-not-exist", headers=ADMIN_HEADERS)

        assert response.status_code == 404
        assert response.json()["details"] == {"quote_id": "does-not-exist"}

    def test_malformed_body_is_422(self, client):
        response = client.post("/api/quotes", json={"line_items": "many"}, headers=ADMIN_HEADERS)

        assert response.status_code == 422
        assert response.json()["code"] == "ValidationError"


class TestSendEndpoints:
    """Tests for sending quotes and artwork."""

    def test_send_quote(self, client, created, email_provider):
        response = client.post(f"/api/quotes/{created['id']}/send", headers=ADMIN_HEADERS)

        data = response.json()
        assert response.status_code == 200
        assert data["success"] is True
        assert data["quote"]["status"] == "SENT"
        assert len(email_provider.messages_to("walkin@example.test")) == 1

    def test_failed_email_returns_502_after_saving(self, app_settings, failing_email_provider, clock):
        """Test that a failed email still commits the status change."""
        platform = build_memory_platform(
            settings=app_settings, email_provider=failing_email_provider, clock=clock,
        )
        client = TestClient(create_app(platform))
        quote = client.post("/api/quotes", json=QUOTE_BODY, headers=ADMIN_HEADERS).json()

        response = client.post(f"/api/quotes/{quote['id']}/send", headers=ADMIN_HEADERS)

        data = response.json()
        assert response.status_code == 502
        assert data["success"] is False
        assert "Connection refused" in data["message"]
        assert platform.lifecycle.get_quote(quote["id"]).status.value == "SENT"

    def test_send_artwork(self, client):
        created = client.post("/api/quotes", json=ARTWORK_QUOTE_BODY, headers=ADMIN_HEADERS).json()
        client.post(
            f"/api/quotes/{created['id']}/artwork",
            json={"url": "https://files.test/logo-v1.png", "file_name": "logo-v1.png"},
            headers=ADMIN_HEADERS,
        )

        response = client.post(f"/api/quotes/{created['id']}/artwork/send", headers=ADMIN_HEADERS)
        versions = client.get(f"/api/quotes/{created['id']}/artwork/versions", headers=ADMIN_HEADERS).json()

        assert response.status_code == 200
        assert response.json()["quote"]["status"] == "ARTWORK_PENDING"
        assert len(versions["versions"]) == 1


class TestPublicLinks:
    """Tests for the customer approval links."""

    def test_quote_link_hides_internal_fields(self, client, created):
        sent = client.post(f"/api/quotes/{created['id']}/send", headers=ADMIN_HEADERS).json()
        token = sent["quote"]["access_token"]

        response = client.get(f"/api/quote/{token}")

        data = response.json()
        assert response.status_code == 200
        assert data["quote_number"] == "Q2026-0001"
        assert data["response"] == "pending"
        assert "internal_notes" not in data
        assert "access_token" not in data

    def test_customer_approves_quote(self, client, created):
        sent = client.post(f"/api/quotes/{created['id']}/send", headers=ADMIN_HEADERS).json()
        token = sent["quote"]["access_token"]

        response = client.post(f"/api/quote/{token}", json={"action": "approve", "notes": "Looks great"})

        assert response.status_code == 200
        assert response.json()["quote"]["status"] == "APPROVED"
        assert response.json()["quote"]["response"] == "approved"

    def test_unknown_token_is_404(self, client):
        response = client.get("/api/quote/" + "0" * 64)

        assert response.status_code == 404
        assert response.json()["code"] == "TokenError"

    def test_artwork_decline(self, client):
        created = client.post("/api/quotes", json=ARTWORK_QUOTE_BODY, headers=ADMIN_HEADERS).json()
        client.post(
            f"/api/quotes/{created['id']}/artwork",
            json={"url": "https://files.test/logo-v1.png", "file_name": "logo-v1.png"},
            headers=ADMIN_HEADERS,
        )
        sent = client.post(f"/api/quotes/{created['id']}/artwork/send", headers=ADMIN_HEADERS).json()
        token = sent["quote"]["artwork_token"]

        viewed = client.get(f"/api/artwork/{token}").json()
        response = client.post(f"/api/artwork/{token}", json={"action": "decline", "notes": "Logo too small"})

        assert viewed["artwork_file_name"] == "logo-v1.png"
        assert response.status_code == 200
        assert response.json()["artwork"]["response"] == "declined"
        assert response.json()["artwork"]["artwork_notes"] == "Logo too small"


class TestNotificationSettingsEndpoints:
    """Tests for /api/notification-settings."""

    def test_list_settings(self, client):
        response = client.get("/api/notification-settings", headers=ADMIN_HEADERS)

        types = {s["type"] for s in response.json()["settings"]}
        assert response.status_code == 200
        assert "CUSTOMER_QUOTE_SENT" in types
        assert len(types) == 7

    def test_editor_forbidden(self, client):
        response = client.get("/api/notification-settings", headers=EDITOR_HEADERS)

        assert response.status_code == 403
        assert response.json()["message"] == "Admin access required"

    def test_initialize_is_idempotent(self, client):
        response = client.post("/api/notification-settings/initialize", headers=ADMIN_HEADERS)

        assert response.json() == {"created": []}

    def test_update_setting(self, client, platform):
        response = client.put(
            "/api/notification-settings/INTERNAL_QUOTE_CREATED",
            json={"enabled": True, "recipient_emails": ["sales@logoz.test"]},
            headers=ADMIN_HEADERS,
        )

        stored = platform.notification_settings.get(NotificationType.INTERNAL_QUOTE_CREATED)
        assert response.status_code == 200
        assert response.json()["enabled"] is True
        assert stored.recipient_emails == ["sales@logoz.test"]

    def test_enabled_setting_sends_and_logs(self, client, email_provider):
        client.put(
            "/api/notification-settings/INTERNAL_QUOTE_CREATED",
            json={"enabled": True, "recipient_emails": ["sales@logoz.test"]},
            headers=ADMIN_HEADERS,
        )
        client.post("/api/quotes", json=QUOTE_BODY, headers=ADMIN_HEADERS)

        logs = client.get("/api/notification-settings/logs?type=INTERNAL_QUOTE_CREATED", headers=ADMIN_HEADERS).json()

        assert len(email_provider.messages_to("sales@logoz.test")) == 1
        assert [e["recipient"] for e in logs["entries"]] == ["sales@logoz.test"]
