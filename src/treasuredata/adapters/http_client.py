"""httpx wrapper.

Why a wrapper:
- Standardizes timeouts, headers and TLS options for every API family.
- Eases testing: an `httpx.Client` with a mock transport (or respx) can be
  injected into `TreasureDataClient` instead.
"""

from __future__ import annotations

import logging
import ssl

import httpx

from treasuredata.core.config import AppSettings
from treasuredata.core.errors import InvalidArgumentError

logger = logging.getLogger(__name__)


def build_ssl_context(settings: AppSettings) -> ssl.SSLContext | bool:
    """Translate the TLS settings into what httpx accepts for `verify`.

    - `insecure_skip_verify` -> `False` (no verification at all).
    - custom CA and/or client certificate -> an `ssl.SSLContext`.
    - nothing set -> `True` (httpx defaults).
    """

    if settings.insecure_skip_verify:
        logger.warning("TLS certificate verification is disabled")
        return False

    if settings.ca_file is None and settings.cert_file is None and settings.key_file is None:
        return True

    if settings.key_file is not None and settings.cert_file is None:
        raise InvalidArgumentError("key_file", str(settings.key_file), "key_file requires cert_file")

    ctx = ssl.create_default_context(cafile=str(settings.ca_file) if settings.ca_file else None)
    if settings.cert_file is not None:
        ctx.load_cert_chain(
            certfile=str(settings.cert_file),
            keyfile=str(settings.key_file) if settings.key_file else None,
        )
    return ctx


def build_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
) -> httpx.Client:
    """Create an `httpx.Client` with safe defaults.

    Why a builder:
    - Centralizes timeouts/headers so every service behaves the same.
    - Keeps TLS handling in one place.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.Client(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        verify=build_ssl_context(settings),
    )
