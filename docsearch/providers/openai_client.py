"""Shared construction of the OpenAI SDK client.

Both the embedding and the completion provider talk to the same
OpenAI-compatible endpoint (``OPENAI_API_URL``) with the same key, over
the application's shared ``httpx.AsyncClient``.  SDK-level retries are
disabled: retry policy is decided by each provider.
"""

from __future__ import annotations

import httpx
import openai

from docsearch.config.settings import Settings
from docsearch.utils.errors import ProviderConfigError


def is_configured(settings: Settings) -> bool:
    """Return ``True`` when both the API key and base URL are set."""
    return bool(settings.openai_api_key) and bool(settings.openai_api_url)


def build_openai_client(
    settings: Settings,
    http_client: httpx.AsyncClient | None,
    provider_name: str,
) -> openai.AsyncOpenAI:
    """Return an ``AsyncOpenAI`` client or raise :class:`ProviderConfigError`."""
    if not settings.openai_api_key:
        raise ProviderConfigError(
            message="OPENAI_API_KEY is not configured",
            provider_name=provider_name,
        )
    if not settings.openai_api_url:
        raise ProviderConfigError(
            message="OPENAI_API_URL is not configured",
            provider_name=provider_name,
        )
    return openai.AsyncOpenAI(
        api_key=settings.openai_api_key,
        base_url=settings.openai_api_url.rstrip("/"),
        http_client=http_client,
        timeout=settings.provider_timeout_seconds,
        max_retries=0,
    )
