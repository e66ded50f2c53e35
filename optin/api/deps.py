import os
from dataclasses import replace
from functools import lru_cache
from pathlib import Path

from fastapi import Depends, HTTPException, Request, status

from optin.adapters.clock import SystemClock
from optin.adapters.dev_email import DevEmailProvider
from optin.adapters.kv_memory import InMemoryKVStore
from optin.adapters.kv_sqlite import SQLiteKVStore
from optin.components.admin_auth import AdminSession, VerifySessionInput, run_verify_session
from optin.components.admin_auth.models import STORE_FAILURE, STORE_UNAVAILABLE
from optin.components.broadcast import BroadcastPolicy
from optin.components.email.models import EmailProviderConfig, EmailServiceConfig
from optin.components.email.service import (
    DEFAULT_SITE_NAME,
    DEFAULT_SITE_URL,
    EmailService,
    service_config_from_env,
)
from optin.components.subscribers import KVStorePort, SubscriberPolicy, SubscriberStore
from optin.rules.loader import load_rules
from optin.rules.models import Rules

SESSION_COOKIE = "admin_session"
DEV_PROVIDER = "dev"


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("NEWSLETTER_DATA_DIR", "./data"))
        self.kv_backend = os.environ.get("NEWSLETTER_KV", "sqlite").lower()
        self.kv_path = self.data_dir / "newsletter_kv.db"
        self.rules_path = Path(
            os.environ.get("NEWSLETTER_RULES_PATH", str(self.base_dir / "rules.yaml"))
        )
        self.admin_password = os.environ.get("ADMIN_PASSWORD") or None
        self.email_provider = os.environ.get("EMAIL_PROVIDER", "resend").lower()
        self.site_url = os.environ.get("SITE_URL") or DEFAULT_SITE_URL
        self.site_name = os.environ.get("SITE_NAME") or DEFAULT_SITE_NAME
        self.env: dict[str, str] = dict(os.environ)


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return load_rules(settings.rules_path)


def get_subscriber_policy(rules: Rules = Depends(get_rules)) -> SubscriberPolicy:
    return rules.subscriber_policy()


def get_broadcast_policy(rules: Rules = Depends(get_rules)) -> BroadcastPolicy:
    return rules.broadcast_policy()


# --- Store ---
@lru_cache
def get_kv_store(settings: Settings = Depends(get_settings)) -> KVStorePort | None:
    """Process-wide KV store, or None when no store is configured."""
    if settings.kv_backend == "none":
        return None
    if settings.kv_backend == "memory":
        return InMemoryKVStore()
    if settings.kv_backend == "sqlite":
        return SQLiteKVStore(str(settings.kv_path))
    raise ValueError(f"Unknown NEWSLETTER_KV backend: {settings.kv_backend}")


def get_subscriber_store(
    kv: KVStorePort | None = Depends(get_kv_store),
) -> SubscriberStore | None:
    return SubscriberStore(kv) if kv is not None else None


# --- Email ---
@lru_cache
def get_email_service(settings: Settings = Depends(get_settings)) -> EmailService:
    """
    Email facade, built once per process.

    `dev` is resolved here, not by EmailProviderFactory: the logging provider
    is an adapter and the factory only knows the real HTTP providers.

    Raises EmailConfigError for an unknown provider or missing credentials.
    """
    expiry_hours = get_rules(settings).tokens.confirmation_expiry_hours
    if settings.email_provider == DEV_PROVIDER:
        config = EmailServiceConfig(
            provider=DEV_PROVIDER,
            providers=EmailProviderConfig(),
            site_url=settings.site_url,
            site_name=settings.site_name,
            confirmation_expiry_hours=expiry_hours,
        )
        return EmailService(config, provider=DevEmailProvider())
    config = replace(
        service_config_from_env(settings.env), confirmation_expiry_hours=expiry_hours
    )
    return EmailService(config)


# --- Clock ---
def get_clock() -> SystemClock:
    return SystemClock()


# --- Request provenance ---
def client_ip(request: Request) -> str | None:
    """Client IP: CF-Connecting-IP, then the first X-Forwarded-For hop, then the peer."""
    cf_ip = request.headers.get("CF-Connecting-IP")
    if cf_ip:
        return cf_ip.strip()
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def user_agent(request: Request) -> str | None:
    return request.headers.get("User-Agent")


# --- Admin auth ---
SESSION_STORE_STATUS = {
    STORE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    STORE_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def require_admin_session(
    request: Request,
    kv: KVStorePort | None = Depends(get_kv_store),
    clock: SystemClock = Depends(get_clock),
) -> AdminSession:
    token = request.cookies.get(SESSION_COOKIE)
    result = run_verify_session(VerifySessionInput(token=token), kv, clock)
    if result.code in SESSION_STORE_STATUS:
        raise HTTPException(
            status_code=SESSION_STORE_STATUS[result.code],
            detail=result.error or "Service temporarily unavailable",
        )
    if not result.success or result.session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized - Admin access required",
        )
    return result.session
