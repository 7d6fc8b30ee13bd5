"""Application composition root.

This module wires together configuration, the Airtable client, the field cache, and the LLM
settings for the HTTP runtime.
"""

from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass

from src.airtable.client import AirtableClient
from src.airtable.field_cache import TTLCache
from src.config.settings import Settings
from src.query.llm_client import LLMConfig


@dataclass(frozen=True)
class App:
    """Shared application dependencies for handlers."""

    settings: Settings
    airtable: AirtableClient
    field_cache: TTLCache[list[str]]
    llm: LLMConfig | None = None


def create_app(settings: Settings) -> App:
    """Create the application container.

    Note:
        The Airtable client owns an HTTP connection pool. Call `await app.airtable.aclose()` at
        shutdown.
    """

    airtable = AirtableClient(
        token=settings.airtable_token,
        base_id=settings.airtable_base_id,
        table=settings.airtable_table,
        api_base=settings.airtable_api_base,
        timeout_s=settings.airtable_timeout_s,
    )

    async def _load_fields(_key: Hashable) -> list[str]:
        return await airtable.list_fields()

    llm = None
    if settings.llm_enabled and settings.llm_api_key:
        llm = LLMConfig(
            api_key=settings.llm_api_key,
            model=settings.llm_model,
            api_base=settings.llm_api_base,
            timeout_s=settings.llm_timeout_s,
        )

    return App(
        settings=settings,
        airtable=airtable,
        field_cache=TTLCache(_load_fields, ttl_s=settings.field_cache_ttl_s),
        llm=llm,
    )
