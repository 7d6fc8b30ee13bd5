"""Tests for environment-driven settings."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from src.app import create_app
from src.config.logging import configure_logging
from src.config.settings import load_settings

_ENV_KEYS = (
    "AIRTABLE_TOKEN",
    "AIRTABLE_BASE_ID",
    "AIRTABLE_TABLE",
    "AIRTABLE_VIEW",
    "LLM_ENABLED",
    "LLM_API_KEY",
    "OPENAI_API_KEY",
    "FIELD_CACHE_TTL_S",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    # Keep a developer's local .env out of the picture.
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("AIRTABLE_TOKEN", "pat-test")
    monkeypatch.setenv("AIRTABLE_BASE_ID", "appTEST")


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_API_KEY", "sk-test")

    settings = load_settings()

    assert settings.airtable_table == "Rooms"
    assert settings.view == "Mapfluence_Rooms"
    assert settings.llm_model == "gpt-4.1-mini"
    assert settings.port == 8787


def test_openai_api_key_is_accepted(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")

    assert load_settings().llm_api_key == "sk-openai"


def test_llm_key_required_when_enabled() -> None:
    with pytest.raises(RuntimeError, match="Invalid environment configuration"):
        load_settings()


def test_llm_can_be_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_ENABLED", "false")

    settings = load_settings()

    assert settings.llm_api_key is None
    assert create_app(settings).llm is None


def test_empty_view_disables_scoping(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_ENABLED", "false")
    monkeypatch.setenv("AIRTABLE_VIEW", "  ")

    assert load_settings().view is None


def test_ttl_must_be_positive(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_ENABLED", "false")
    monkeypatch.setenv("FIELD_CACHE_TTL_S", "0")

    with pytest.raises(RuntimeError):
        load_settings()


def test_create_app_wires_dependencies(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_API_KEY", "sk-test")
    monkeypatch.setenv("AIRTABLE_TABLE", "Room Inventory")

    app = create_app(load_settings())

    assert app.airtable.table == "Room Inventory"
    assert app.airtable.base_id == "appTEST"
    assert app.llm is not None and app.llm.api_key == "sk-test"


def test_log_level_is_normalized(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_ENABLED", "false")
    monkeypatch.setenv("LOG_LEVEL", " debug ")

    assert load_settings().log_level == "DEBUG"


def test_unknown_log_level_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_ENABLED", "false")
    monkeypatch.setenv("LOG_LEVEL", "chatty")

    with pytest.raises(RuntimeError, match="unknown log level"):
        load_settings()


def test_configure_logging_quiets_http_loggers() -> None:
    configure_logging("debug")

    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("uvicorn.access").level == logging.WARNING
