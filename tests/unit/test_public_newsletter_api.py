"""
Unit tests for the public double opt-in endpoints.
"""

import json
from urllib.parse import parse_qs, urlparse

from fastapi.testclient import TestClient

from optin.adapters.clock import FrozenClock
from optin.adapters.dev_email import DevEmailProvider
from optin.adapters.kv_memory import InMemoryKVStore
from optin.api.deps import get_kv_store
from optin.api.main import app

EMAIL = "reader@example.com"


def token_from(link: str | None) -> str:
    assert link is not None
    return parse_qs(urlparse(link).query)["token"][0]


def record(kv: InMemoryKVStore, email: str = EMAIL) -> dict:
    raw = kv.get(f"subscriber:{email}")
    assert raw is not None
    return json.loads(raw)


def subscribe_and_confirm(client: TestClient, dev_provider: DevEmailProvider) -> str:
    """Run the full opt-in and return the unsubscribe token from the welcome email."""
    client.post("/subscribe", data={"email": EMAIL})
    confirmation = dev_provider.get_emails_of_kind("confirmation")[-1]
    client.get("/confirm", params={"token": token_from(confirmation.link)})
    welcome = dev_provider.get_emails_of_kind("welcome")[-1]
    return token_from(welcome.link)


class TestSubscribe:
    def test_subscribe_creates_pending_record(
        self, client: TestClient, kv: InMemoryKVStore, dev_provider: DevEmailProvider
    ) -> None:
        response = client.post("/subscribe", data={"email": "  Reader@Example.com "})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Confirmation email sent. Please check your inbox.",
        }
        stored = record(kv)
        assert stored["status"] == "pending"
        assert stored["subscribedAt"] == "2026-03-10T12:00:00.000Z"
        assert stored["tokenExpiresAt"] == "2026-03-11T12:00:00.000Z"

        sent = dev_provider.get_last_email()
        assert sent is not None
        assert sent.kind == "confirmation"
        assert sent.recipient == EMAIL
        assert sent.link == f"https://news.example.com/confirm?token={stored['confirmationToken']}"

    def test_records_client_provenance(self, client: TestClient, kv: InMemoryKVStore) -> None:
        client.post(
            "/subscribe",
            data={"email": EMAIL},
            headers={
                "User-Agent": "Mozilla/5.0",
                "X-Forwarded-For": "203.0.113.9, 10.0.0.1",
            },
        )

        stored = record(kv)
        assert stored["userAgent"] == "Mozilla/5.0"
        assert stored["ip"] == "203.0.113.9"

    def test_cloudflare_ip_header_wins(self, client: TestClient, kv: InMemoryKVStore) -> None:
        client.post(
            "/subscribe",
            data={"email": EMAIL},
            headers={"CF-Connecting-IP": "198.51.100.4", "X-Forwarded-For": "203.0.113.9"},
        )
        assert record(kv)["ip"] == "198.51.100.4"

    def test_invalid_email_rejected(self, client: TestClient, kv: InMemoryKVStore) -> None:
        response = client.post("/subscribe", data={"email": "not-an-email"})

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": "Please enter a valid email address",
        }
        assert kv.list_keys("subscriber:") == []

    def test_missing_email_rejected(self, client: TestClient) -> None:
        response = client.post("/subscribe", data={})
        assert response.status_code == 400

    def test_pending_duplicate_resends_same_token(
        self, client: TestClient, kv: InMemoryKVStore, dev_provider: DevEmailProvider
    ) -> None:
        client.post("/subscribe", data={"email": EMAIL})
        first_token = record(kv)["confirmationToken"]

        response = client.post("/subscribe", data={"email": EMAIL})

        assert response.status_code == 200
        assert response.json()["message"] == (
            "Confirmation email has been resent. Please check your inbox."
        )
        assert record(kv)["confirmationToken"] == first_token
        assert len(dev_provider.get_emails_of_kind("confirmation")) == 2

    def test_expired_pending_duplicate_is_gone(
        self, client: TestClient, kv: InMemoryKVStore, clock: FrozenClock
    ) -> None:
        client.post("/subscribe", data={"email": EMAIL})
        clock.advance(25 * 3600)

        response = client.post("/subscribe", data={"email": EMAIL})

        assert response.status_code == 410
        assert kv.get(f"subscriber:{EMAIL}") is None

    def test_active_duplicate_conflicts(
        self, client: TestClient, dev_provider: DevEmailProvider
    ) -> None:
        subscribe_and_confirm(client, dev_provider)

        response = client.post("/subscribe", data={"email": EMAIL})

        assert response.status_code == 409
        assert response.json()["message"] == "This email is already subscribed to our newsletter"

    def test_send_failure_rolls_back(
        self, client: TestClient, kv: InMemoryKVStore, dev_provider: DevEmailProvider
    ) -> None:
        dev_provider.fail_sends = True

        response = client.post("/subscribe", data={"email": EMAIL})

        assert response.status_code == 500
        assert response.json()["message"] == (
            "Failed to send confirmation email. Please try again."
        )
        assert kv.get(f"subscriber:{EMAIL}") is None

    def test_unsubscribed_address_can_resubscribe(
        self, client: TestClient, kv: InMemoryKVStore, dev_provider: DevEmailProvider
    ) -> None:
        unsubscribe_token = subscribe_and_confirm(client, dev_provider)
        client.get("/unsubscribe", params={"token": unsubscribe_token})

        response = client.post("/subscribe", data={"email": EMAIL})

        assert response.status_code == 200
        assert record(kv)["status"] == "pending"

    def test_store_not_configured(self, client: TestClient) -> None:
        app.dependency_overrides[get_kv_store] = lambda: None

        response = client.post("/subscribe", data={"email": EMAIL})

        assert response.status_code == 503
        assert response.json()["message"] == "Service temporarily unavailable"


class TestConfirm:
    def test_confirm_activates_and_welcomes(
        self, client: TestClient, kv: InMemoryKVStore, dev_provider: DevEmailProvider
    ) -> None:
        client.post("/subscribe", data={"email": EMAIL})
        token = token_from(dev_provider.get_last_email().link)

        response = client.get("/confirm", params={"token": token})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Email confirmed successfully! Welcome to our newsletter!",
            "email": EMAIL,
        }
        stored = record(kv)
        assert stored["status"] == "active"
        assert stored["confirmedAt"] == "2026-03-10T12:00:00.000Z"
        assert "confirmationToken" not in stored
        assert "tokenExpiresAt" not in stored
        assert stored["unsubscribeToken"]
        assert kv.get("subscriber_count") == "1"

        welcome = dev_provider.get_emails_of_kind("welcome")
        assert len(welcome) == 1
        assert welcome[0].link == (
            f"https://news.example.com/unsubscribe?token={stored['unsubscribeToken']}"
        )

    def test_confirm_twice_is_idempotent(
        self, client: TestClient, kv: InMemoryKVStore, dev_provider: DevEmailProvider
    ) -> None:
        client.post("/subscribe", data={"email": EMAIL})
        token = token_from(dev_provider.get_last_email().link)
        client.get("/confirm", params={"token": token})

        response = client.get("/confirm", params={"token": token})

        assert response.status_code == 200
        assert response.json()["message"] == "Email address already confirmed"
        assert kv.get("subscriber_count") == "1"

    def test_missing_token(self, client: TestClient) -> None:
        response = client.get("/confirm")
        assert response.status_code == 400
        assert response.json()["message"] == "Confirmation token is required"

    def test_unknown_token(self, client: TestClient) -> None:
        response = client.get("/confirm", params={"token": "nope"})
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid or expired confirmation token"

    def test_expired_token_deletes_pending(
        self,
        client: TestClient,
        kv: InMemoryKVStore,
        clock: FrozenClock,
        dev_provider: DevEmailProvider,
    ) -> None:
        client.post("/subscribe", data={"email": EMAIL})
        token = token_from(dev_provider.get_last_email().link)
        clock.advance(24 * 3600 + 1)

        response = client.get("/confirm", params={"token": token})

        assert response.status_code == 400
        assert kv.get(f"subscriber:{EMAIL}") is None

    def test_token_valid_at_exact_expiry(
        self,
        client: TestClient,
        clock: FrozenClock,
        dev_provider: DevEmailProvider,
    ) -> None:
        client.post("/subscribe", data={"email": EMAIL})
        token = token_from(dev_provider.get_last_email().link)
        clock.advance(24 * 3600)

        response = client.get("/confirm", params={"token": token})

        assert response.status_code == 200

    def test_welcome_failure_keeps_confirmation(
        self, client: TestClient, kv: InMemoryKVStore, dev_provider: DevEmailProvider
    ) -> None:
        client.post("/subscribe", data={"email": EMAIL})
        token = token_from(dev_provider.get_last_email().link)
        dev_provider.fail_sends = True

        response = client.get("/confirm", params={"token": token})

        assert response.status_code == 200
        assert record(kv)["status"] == "active"


class TestResendConfirmation:
    def test_resend_pending(self, client: TestClient, dev_provider: DevEmailProvider) -> None:
        client.post("/subscribe", data={"email": EMAIL})

        response = client.post("/confirm", data={"email": EMAIL})

        assert response.status_code == 200
        assert response.json()["message"] == (
            "Confirmation email has been resent. Please check your inbox."
        )
        tokens = {token_from(e.link) for e in dev_provider.get_emails_of_kind("confirmation")}
        assert len(tokens) == 1

    def test_resend_without_pending(self, client: TestClient) -> None:
        response = client.post("/confirm", data={"email": EMAIL})
        assert response.status_code == 404
        assert response.json()["message"] == (
            "No pending subscription found for this email address"
        )

    def test_resend_invalid_email(self, client: TestClient) -> None:
        response = client.post("/confirm", data={"email": "bad"})
        assert response.status_code == 400


class TestUnsubscribe:
    def test_unsubscribe_active(
        self, client: TestClient, kv: InMemoryKVStore, dev_provider: DevEmailProvider
    ) -> None:
        token = subscribe_and_confirm(client, dev_provider)

        response = client.get("/unsubscribe", params={"token": token})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Successfully unsubscribed from newsletter",
            "email": EMAIL,
        }
        stored = record(kv)
        assert stored["status"] == "unsubscribed"
        assert "unsubscribeToken" not in stored
        assert kv.get("subscriber_count") == "0"

    def test_unsubscribe_twice_is_idempotent(
        self, client: TestClient, kv: InMemoryKVStore, dev_provider: DevEmailProvider
    ) -> None:
        token = subscribe_and_confirm(client, dev_provider)
        client.get("/unsubscribe", params={"token": token})

        response = client.get("/unsubscribe", params={"token": token})

        assert response.status_code == 200
        assert response.json()["message"] == "Email address is already unsubscribed"
        assert kv.get("subscriber_count") == "0"

    def test_unknown_token_is_not_found(self, client: TestClient) -> None:
        response = client.get("/unsubscribe", params={"token": "nope"})
        assert response.status_code == 404
        assert response.json()["message"] == "Invalid or expired unsubscribe token"

    def test_missing_token(self, client: TestClient) -> None:
        response = client.get("/unsubscribe")
        assert response.status_code == 400
        assert response.json()["message"] == "Unsubscribe token is required"
