"""HTTP request handlers for the query service.

Contract: every response is a JSON object with an `ok` flag. Schema violations are 400s carrying the
full error list; compiler gaps are 500s; backend and model failures are 502s carrying the raw
upstream diagnostic text.
"""

from __future__ import annotations

import logging
from time import monotonic
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.airtable.client import AirtableError
from src.app import App
from src.formula.builder import FormulaCompileError
from src.query.llm_client import LLMClientError
from src.query.pipeline import question_to_query_obj, run_query
from src.query.schema import QueryValidationError

logger = logging.getLogger(__name__)


def _error(status_code: int, **content: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, **content})


async def _execute(obj: Any, app: App, *, source: str, started: float) -> JSONResponse:
    try:
        outcome = await run_query(obj, client=app.airtable, view=app.settings.view)
    except QueryValidationError as exc:
        logger.warning("query rejected source=%s errors=%s query=%r", source, exc.errors, obj)
        return _error(400, errors=list(exc.errors), query=obj)
    except FormulaCompileError as exc:
        # Validator and compiler operator sets have diverged.
        logger.error("formula compile failed source=%s reason=%s query=%r", source, exc, obj)
        return _error(500, error=str(exc))
    except AirtableError as exc:
        logger.error("airtable read failed source=%s status=%s", source, exc.status_code)
        return _error(502, error=str(exc))

    latency_ms = int((monotonic() - started) * 1000)
    logger.info(
        "handled source=%s intent=%s filters=%d formula=%r latency_ms=%d",
        source,
        outcome.query.intent,
        len(outcome.query.filters),
        outcome.formula,
        latency_ms,
    )
    return JSONResponse(content=outcome.result.to_payload())


async def handle_ai_query(question: Any, context: Any, app: App) -> JSONResponse:
    """Translate a question via the LLM, then validate, compile and execute the query."""

    started = monotonic()

    if not question or not str(question).strip():
        return _error(400, error="Missing question")
    if app.llm is None:
        return _error(503, error="LLM query translation is disabled")

    # noinspection PyBroadException
    try:
        obj = await question_to_query_obj(str(question), config=app.llm, context=context)
        return await _execute(obj, app, source="llm", started=started)
    except LLMClientError as exc:
        logger.error("llm translation failed reason=%s", exc)
        return _error(502, error=str(exc))
    except Exception:
        logger.exception("ai query failed")
        return _error(500, error="AI query failed")


async def handle_structured_query(obj: Any, app: App) -> JSONResponse:
    """Validate, compile and execute a caller-supplied query object (no LLM involved)."""

    started = monotonic()

    # noinspection PyBroadException
    try:
        return await _execute(obj, app, source="direct", started=started)
    except Exception:
        logger.exception("structured query failed")
        return _error(500, error="Query failed")


async def handle_sample(app: App) -> JSONResponse:
    """Return a few records from the configured view to check connectivity and field names."""

    try:
        records = await app.airtable.list_records(view=app.settings.view, max_records=3)
    except AirtableError as exc:
        return _error(502, error=str(exc))

    return JSONResponse(
        content={
            "ok": True,
            "recordCount": len(records),
            "firstRecordFields": records[0].fields if records else None,
        }
    )


async def handle_fields(app: App) -> JSONResponse:
    """Return the table's field names from the metadata cache."""

    try:
        entry = await app.field_cache.resolve(app.settings.airtable_table)
    except AirtableError as exc:
        return _error(502, error=str(exc))

    return JSONResponse(content={"ok": True, "fields": entry.value, "fresh": entry.fresh})


async def handle_invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report an unparseable request body in the service's `ok`-flag envelope."""

    logger.warning("invalid request path=%s errors=%d", request.url.path, len(exc.errors()))
    return _error(400, error="Invalid request body")
