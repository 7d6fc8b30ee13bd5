"""Pytest configuration and shared Airtable fakes.

The repository uses a flat `src/` layout without an installed package. This conftest ensures tests
can import from the `src.*` namespace when running `pytest` locally.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest

# Ensure `import src...` works when running pytest without installing the package.
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from src.airtable.client import AirtableClient  # noqa: E402

Responder = Callable[[httpx.Request], httpx.Response]


class FakeAirtable:
    """An `httpx.MockTransport` handler that records requests and replays canned responses."""

    def __init__(self, responses: list[httpx.Response | Responder] | None = None) -> None:
        self.responses = list(responses or [])
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"unexpected Airtable request: {request.url}")
        response = self.responses.pop(0)
        if callable(response):
            return response(request)
        return response

    def client(self, *, table: str = "Rooms") -> AirtableClient:
        return AirtableClient(
            token="pat-test",
            base_id="appTEST",
            table=table,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(self)),
        )

    def params(self, index: int) -> dict[str, str]:
        return dict(self.requests[index].url.params)


def page(records: list[dict], offset: str | None = None) -> httpx.Response:
    """Build a list-records page response."""

    body: dict = {"records": records}
    if offset:
        body["offset"] = offset
    return httpx.Response(200, json=body)


def row(record_id: str, **fields: object) -> dict:
    return {"id": record_id, "createdTime": "2025-01-01T00:00:00.000Z", "fields": fields}


@pytest.fixture
def fake_airtable() -> FakeAirtable:
    return FakeAirtable()
