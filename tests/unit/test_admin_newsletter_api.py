"""
Unit tests for the admin newsletter broadcast endpoint.
"""

from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient

from optin.adapters.dev_email import DevEmailProvider
from optin.adapters.kv_memory import InMemoryKVStore
from optin.components.subscribers import Subscriber, SubscriberStatus, SubscriberStore

JOINED = datetime(2026, 2, 1, tzinfo=UTC)


@pytest.fixture
def audience(kv: InMemoryKVStore) -> SubscriberStore:
    store = SubscriberStore(kv)
    for email, status in [
        ("one@example.com", SubscriberStatus.ACTIVE),
        ("two@example.com", SubscriberStatus.ACTIVE),
        ("three@example.com", SubscriberStatus.ACTIVE),
        ("waiting@example.com", SubscriberStatus.PENDING),
        ("gone@example.com", SubscriberStatus.UNSUBSCRIBED),
    ]:
        store.put_subscriber(
            Subscriber(
                email=email,
                subscribed_at=JOINED,
                status=status,
                unsubscribe_token=f"u-{email}" if status == SubscriberStatus.ACTIVE else None,
            )
        )
    return store


def test_requires_admin_session(client: TestClient, audience: SubscriberStore) -> None:
    response = client.post("/admin/newsletter", data={"subject": "Hi", "content": "<p>x</p>"})
    assert response.status_code == 401


def test_broadcast_reaches_every_active_subscriber(
    client: TestClient,
    admin_headers: dict[str, str],
    audience: SubscriberStore,
    dev_provider: DevEmailProvider,
) -> None:
    response = client.post(
        "/admin/newsletter",
        data={"subject": "March issue", "content": "<h1>Hello</h1>"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Newsletter sending started for 3 active subscribers",
        "total": 3,
    }

    # TestClient runs background tasks before returning
    sent = dev_provider.get_emails_of_kind("newsletter")
    assert sorted(e.recipient for e in sent) == [
        "one@example.com",
        "three@example.com",
        "two@example.com",
    ]
    first = dev_provider.get_emails_to("one@example.com")[0]
    assert first.subject == "March issue"
    assert first.link == "https://news.example.com/unsubscribe?token=u-one%40example.com"
    assert "<h1>Hello</h1>" in first.body_html


def test_failed_sends_do_not_fail_the_request(
    client: TestClient,
    admin_headers: dict[str, str],
    audience: SubscriberStore,
    dev_provider: DevEmailProvider,
) -> None:
    dev_provider.fail_sends = True

    response = client.post(
        "/admin/newsletter",
        data={"subject": "March issue", "content": "<p>x</p>"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert dev_provider.email_count == 0


@pytest.mark.parametrize(
    "form",
    [
        {"subject": "", "content": "<p>x</p>"},
        {"subject": "Hi"},
        {},
    ],
)
def test_subject_and_content_required(
    client: TestClient,
    admin_headers: dict[str, str],
    audience: SubscriberStore,
    form: dict[str, str],
) -> None:
    response = client.post("/admin/newsletter", data=form, headers=admin_headers)

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Subject and content are required"}


def test_no_active_subscribers(
    client: TestClient, admin_headers: dict[str, str], dev_provider: DevEmailProvider
) -> None:
    response = client.post(
        "/admin/newsletter",
        data={"subject": "Hi", "content": "<p>x</p>"},
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert response.json()["message"] == "No active subscribers found"
    assert dev_provider.email_count == 0
