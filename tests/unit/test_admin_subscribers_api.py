"""
Unit tests for admin subscriber management endpoints.
"""

import json
from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from optin.adapters.kv_memory import InMemoryKVStore
from optin.api.deps import get_kv_store
from optin.api.main import app
from optin.components.subscribers import Subscriber, SubscriberStatus, SubscriberStore

BASE = datetime(2026, 1, 1, 9, 0, tzinfo=UTC)


@pytest.fixture
def seeded(kv: InMemoryKVStore) -> SubscriberStore:
    """Five subscribers, one per day, the last one unsubscribed."""
    store = SubscriberStore(kv)
    for i in range(5):
        status = SubscriberStatus.UNSUBSCRIBED if i == 4 else SubscriberStatus.ACTIVE
        store.put_subscriber(
            Subscriber(
                email=f"user{i}@example.com",
                subscribed_at=BASE + timedelta(days=i),
                status=status,
                confirmed_at=BASE + timedelta(days=i, hours=1),
                unsubscribe_token=f"unsub-{i}" if status == SubscriberStatus.ACTIVE else None,
            )
        )
    kv.put("subscriber_count", "4")
    return store


class TestAuthGuard:
    @pytest.mark.parametrize(
        "method,kwargs",
        [
            ("GET", {"params": {"action": "count"}}),
            ("POST", {"data": {"csv": "a@example.com"}}),
            ("DELETE", {"data": {"email": "a@example.com"}}),
        ],
    )
    def test_requires_admin_session(self, client: TestClient, method: str, kwargs: dict) -> None:
        response = client.request(method, "/admin/subscribers", **kwargs)

        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "message": "Unauthorized - Admin access required",
        }

    def test_rejects_unknown_session(self, client: TestClient) -> None:
        response = client.get(
            "/admin/subscribers",
            params={"action": "count"},
            headers={"Cookie": "admin_session=forged"},
        )
        assert response.status_code == 401


class TestCountAndList:
    def test_count(
        self, client: TestClient, admin_headers: dict[str, str], seeded: SubscriberStore
    ) -> None:
        response = client.get(
            "/admin/subscribers", params={"action": "count"}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "count": 4}

    def test_count_defaults_to_zero(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        response = client.get(
            "/admin/subscribers", params={"action": "count"}, headers=admin_headers
        )
        assert response.json()["count"] == 0

    def test_list_newest_first_with_pagination(
        self, client: TestClient, admin_headers: dict[str, str], seeded: SubscriberStore
    ) -> None:
        response = client.get(
            "/admin/subscribers",
            params={"action": "list", "page": 1, "limit": 2},
            headers=admin_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert [s["email"] for s in body["subscribers"]] == [
            "user4@example.com",
            "user3@example.com",
        ]
        assert body["subscribers"][1] == {
            "email": "user3@example.com",
            "subscribedAt": "2026-01-04T09:00:00.000Z",
            "status": "active",
            "confirmedAt": "2026-01-04T10:00:00.000Z",
            "tokenExpiresAt": None,
        }
        assert body["pagination"] == {
            "currentPage": 1,
            "totalPages": 3,
            "totalCount": 5,
            "limit": 2,
            "hasNext": True,
            "hasPrevious": False,
        }

    def test_list_last_page(
        self, client: TestClient, admin_headers: dict[str, str], seeded: SubscriberStore
    ) -> None:
        response = client.get(
            "/admin/subscribers",
            params={"action": "list", "page": 3, "limit": 2},
            headers=admin_headers,
        )

        body = response.json()
        assert [s["email"] for s in body["subscribers"]] == ["user0@example.com"]
        assert body["pagination"]["hasNext"] is False
        assert body["pagination"]["hasPrevious"] is True

    def test_list_masked(
        self, client: TestClient, admin_headers: dict[str, str], seeded: SubscriberStore
    ) -> None:
        response = client.get(
            "/admin/subscribers",
            params={"action": "list", "masked": "true", "limit": 1},
            headers=admin_headers,
        )
        assert response.json()["subscribers"][0]["email"] == "us***@example.com"

    def test_list_never_exposes_tokens(
        self, client: TestClient, admin_headers: dict[str, str], seeded: SubscriberStore
    ) -> None:
        response = client.get(
            "/admin/subscribers", params={"action": "list"}, headers=admin_headers
        )
        assert "unsub-" not in response.text

    @pytest.mark.parametrize("action", [None, "export", ""])
    def test_invalid_action(
        self, client: TestClient, admin_headers: dict[str, str], action: str | None
    ) -> None:
        params = {"action": action} if action is not None else {}
        response = client.get("/admin/subscribers", params=params, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid action"

    def test_store_not_configured(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        app.dependency_overrides[get_kv_store] = lambda: None

        response = client.get(
            "/admin/subscribers", params={"action": "count"}, headers=admin_headers
        )

        assert response.status_code == 503


class TestBulkImport:
    def test_import_counts_and_activates(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        kv: InMemoryKVStore,
        seeded: SubscriberStore,
    ) -> None:
        csv_text = "\n".join(
            [
                "email,name",
                "new1@example.com,Ann",
                "NEW2@example.com",
                "new3@example.com",
                "user0@example.com",
                "broken-address",
            ]
        )

        response = client.post(
            "/admin/subscribers",
            data={"csv": csv_text},
            headers={**admin_headers, "CF-Connecting-IP": "192.0.2.10"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["results"]["added"] == 3
        assert body["results"]["skipped"] == 1
        assert body["results"]["invalid"] == 1
        assert body["results"]["errors"] == ["Invalid email format: broken-address"]
        assert kv.get("subscriber_count") == "7"

        imported = json.loads(kv.get("subscriber:new2@example.com") or "{}")
        assert imported["status"] == "active"
        assert imported["unsubscribeToken"]
        assert imported["ip"] == "192.0.2.10"

    def test_import_requires_csv(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        response = client.post("/admin/subscribers", data={}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "CSV data is required"


class TestForceUnsubscribe:
    def test_force_unsubscribe(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        kv: InMemoryKVStore,
        seeded: SubscriberStore,
    ) -> None:
        response = client.request(
            "DELETE",
            "/admin/subscribers",
            data={"email": "User1@Example.com"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Successfully unsubscribed"}
        stored = json.loads(kv.get("subscriber:user1@example.com") or "{}")
        assert stored["status"] == "unsubscribed"
        assert kv.get("subscriber_count") == "3"

    def test_force_unsubscribe_by_query(
        self, client: TestClient, admin_headers: dict[str, str], seeded: SubscriberStore
    ) -> None:
        response = client.delete(
            "/admin/subscribers", params={"email": "user2@example.com"}, headers=admin_headers
        )
        assert response.status_code == 200

    def test_already_unsubscribed_is_idempotent(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        kv: InMemoryKVStore,
        seeded: SubscriberStore,
    ) -> None:
        response = client.delete(
            "/admin/subscribers", params={"email": "user4@example.com"}, headers=admin_headers
        )

        assert response.status_code == 200
        assert kv.get("subscriber_count") == "4"

    def test_unknown_subscriber(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        response = client.delete(
            "/admin/subscribers", params={"email": "ghost@example.com"}, headers=admin_headers
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Subscriber not found"

    def test_email_required(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        response = client.delete("/admin/subscribers", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Email is required"
