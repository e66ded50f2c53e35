"""
AWS Signature Version 4 request signing.

Used by the SES adapter to call the SES query API without an SDK.

Algorithm:
1. Canonical request: method, path, query, sorted lowercase headers,
   signed-header list, hex SHA-256 of the payload.
2. String to sign: algorithm, timestamp, credential scope, hex SHA-256 of
   the canonical request.
3. Signing key: HMAC chain ``AWS4<secret> -> date -> region -> service ->
   "aws4_request"``.
4. Authorization header: algorithm, credential, signed headers, hex
   signature.
"""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass
from datetime import UTC, datetime

ALGORITHM = "AWS4-HMAC-SHA256"
TERMINATOR = "aws4_request"


@dataclass(frozen=True)
class AWSCredentials:
    access_key_id: str
    secret_access_key: str


def sha256_hex(data: str | bytes) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def _hmac(key: bytes, message: str) -> bytes:
    return hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()


def amz_timestamps(now: datetime) -> tuple[str, str]:
    """Return ``(amz_date, date_stamp)``, e.g. ``("20150830T123600Z", "20150830")``."""
    utc = now.astimezone(UTC)
    return utc.strftime("%Y%m%dT%H%M%SZ"), utc.strftime("%Y%m%d")


def credential_scope(date_stamp: str, region: str, service: str) -> str:
    return f"{date_stamp}/{region}/{service}/{TERMINATOR}"


def derive_signing_key(secret_access_key: str, date_stamp: str, region: str, service: str) -> bytes:
    k_date = _hmac(f"AWS4{secret_access_key}".encode(), date_stamp)
    k_region = _hmac(k_date, region)
    k_service = _hmac(k_region, service)
    return _hmac(k_service, TERMINATOR)


def canonical_request(
    method: str,
    path: str,
    query: str,
    headers: dict[str, str],
    payload_hash: str,
) -> tuple[str, str]:
    """Build the canonical request; returns ``(canonical_request, signed_headers)``."""
    normalized = {k.lower(): " ".join(v.strip().split()) for k, v in headers.items()}
    names = sorted(normalized)
    canonical_headers = "".join(f"{name}:{normalized[name]}\n" for name in names)
    signed_headers = ";".join(names)
    request = "\n".join(
        [method.upper(), path or "/", query, canonical_headers, signed_headers, payload_hash]
    )
    return request, signed_headers


def string_to_sign(amz_date: str, scope: str, canonical: str) -> str:
    return "\n".join([ALGORITHM, amz_date, scope, sha256_hex(canonical)])


def sign_request(
    *,
    method: str,
    host: str,
    path: str,
    headers: dict[str, str],
    payload: str | bytes,
    credentials: AWSCredentials,
    region: str,
    service: str,
    now: datetime,
    query: str = "",
) -> dict[str, str]:
    """
    Sign a request and return the full header set to send.

    ``headers`` must not include Host or X-Amz-Date; both are added here and
    covered by the signature along with every header passed in.
    """
    amz_date, date_stamp = amz_timestamps(now)
    signed = dict(headers)
    signed["Host"] = host
    signed["X-Amz-Date"] = amz_date

    canonical, signed_headers = canonical_request(
        method, path, query, signed, sha256_hex(payload)
    )
    scope = credential_scope(date_stamp, region, service)
    key = derive_signing_key(credentials.secret_access_key, date_stamp, region, service)
    signature = hmac.new(
        key, string_to_sign(amz_date, scope, canonical).encode("utf-8"), hashlib.sha256
    ).hexdigest()

    signed["Authorization"] = (
        f"{ALGORITHM} Credential={credentials.access_key_id}/{scope}, "
        f"SignedHeaders={signed_headers}, Signature={signature}"
    )
    return signed
