from collections.abc import Generator
from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient

from optin.adapters.clock import FrozenClock
from optin.adapters.dev_email import DevEmailProvider
from optin.adapters.kv_memory import InMemoryKVStore
from optin.api.deps import (
    Settings,
    get_clock,
    get_email_service,
    get_kv_store,
    get_rules,
    get_settings,
)
from optin.api.main import app
from optin.components.admin_auth import LoginInput, run_login
from optin.components.email.models import EmailProviderConfig, EmailServiceConfig
from optin.components.email.service import EmailService
from optin.rules.models import BroadcastRules, Rules

ADMIN_PASSWORD = "correct-horse"
SITE_URL = "https://news.example.com"


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 3, 10, 12, 0, tzinfo=UTC))


@pytest.fixture
def kv(clock: FrozenClock) -> InMemoryKVStore:
    return InMemoryKVStore(clock=clock)


@pytest.fixture
def dev_provider() -> DevEmailProvider:
    return DevEmailProvider()


@pytest.fixture
def email_service(dev_provider: DevEmailProvider) -> EmailService:
    config = EmailServiceConfig(
        provider="dev",
        providers=EmailProviderConfig(),
        site_url=SITE_URL,
        site_name="Test Newsletter",
    )
    return EmailService(config, provider=dev_provider)


@pytest.fixture
def rules() -> Rules:
    # No stagger: background sends run inline under TestClient
    return Rules(broadcast=BroadcastRules(stagger_ms=0, max_workers=2))


@pytest.fixture
def settings() -> Settings:
    s = Settings()
    s.admin_password = ADMIN_PASSWORD
    return s


@pytest.fixture
def client(
    kv: InMemoryKVStore,
    clock: FrozenClock,
    email_service: EmailService,
    rules: Rules,
    settings: Settings,
) -> Generator[TestClient, None, None]:
    """Test client wired to in-memory store, frozen clock and dev email."""
    app.dependency_overrides[get_kv_store] = lambda: kv
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_email_service] = lambda: email_service
    app.dependency_overrides[get_rules] = lambda: rules
    app.dependency_overrides[get_settings] = lambda: settings

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(kv: InMemoryKVStore, clock: FrozenClock) -> dict[str, str]:
    """Cookie header for a live admin session."""
    result = run_login(LoginInput(password=ADMIN_PASSWORD), kv, clock, ADMIN_PASSWORD)
    assert result.session is not None
    return {"Cookie": f"admin_session={result.session.token}"}
