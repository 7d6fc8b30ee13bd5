"""Tests for intent-dependent result shaping and the structured query pipeline."""

from __future__ import annotations

import httpx
import pytest
from conftest import FakeAirtable, page, row

from src.airtable.query import execute_query
from src.formula import builder
from src.formula.builder import FormulaCompileError
from src.query.pipeline import prepare_query, run_query
from src.query.schema import QueryValidationError, query_from_obj


def _obj(intent: str, **extra: object) -> dict:
    return {"intent": intent, "entity": "rooms", "filters": [], "group_by": [], "limit": 0, **extra}


@pytest.mark.asyncio
async def test_count_returns_number_and_ignores_limit(fake_airtable: FakeAirtable) -> None:
    fake_airtable.responses = [page([row("rec1"), row("rec2")], offset="o1"), page([row("rec3")])]

    result = await execute_query(
        fake_airtable.client(),
        query_from_obj(_obj("count", limit=1)),
        formula="",
        view="Mapfluence_Rooms",
    )

    assert result.value == 3
    assert result.to_payload() == {"ok": True, "value": 3}
    assert "maxRecords" not in fake_airtable.params(0)


@pytest.mark.asyncio
@pytest.mark.parametrize("intent", ["list", "lookup", "sum", "group_by"])
async def test_row_intents_return_rows(fake_airtable: FakeAirtable, intent: str) -> None:
    fake_airtable.responses = [page([row("rec1", Floor="1", Department="Biology")])]

    result = await execute_query(
        fake_airtable.client(),
        query_from_obj(_obj(intent, limit=50)),
        formula='{Floor}="1"',
        view=None,
    )

    assert result.to_payload() == {
        "ok": True,
        "rows": [{"id": "rec1", "fields": {"Floor": "1", "Department": "Biology"}}],
    }
    assert fake_airtable.params(0) == {"filterByFormula": '{Floor}="1"', "maxRecords": "50"}


@pytest.mark.asyncio
async def test_list_without_limit_sends_no_max_records(fake_airtable: FakeAirtable) -> None:
    fake_airtable.responses = [page([])]

    result = await execute_query(
        fake_airtable.client(), query_from_obj(_obj("list")), formula="", view=None
    )

    assert result.to_payload() == {"ok": True, "rows": []}
    assert fake_airtable.params(0) == {}


@pytest.mark.asyncio
async def test_run_query_end_to_end_count(fake_airtable: FakeAirtable) -> None:
    fake_airtable.responses = [page([row("rec1"), row("rec2")])]
    obj = _obj("count", filters=[{"field": "Room Type", "op": "=", "value": "Office"}])

    outcome = await run_query(obj, client=fake_airtable.client(), view="Mapfluence_Rooms")

    assert outcome.formula == 'FIND("Office", {Room Type})'
    assert outcome.result.to_payload() == {"ok": True, "value": 2}
    assert fake_airtable.params(0) == {
        "view": "Mapfluence_Rooms",
        "filterByFormula": 'FIND("Office", {Room Type})',
    }
    # Input object is left untouched by normalization.
    assert obj["filters"][0]["op"] == "="


@pytest.mark.asyncio
async def test_run_query_falls_back_to_full_table(fake_airtable: FakeAirtable) -> None:
    fake_airtable.responses = [
        httpx.Response(422, json={"error": {"type": "UNKNOWN_FIELD_NAME"}}),
        page([row("rec7", Comments="")]),
    ]
    obj = _obj("list", filters=[{"field": "Comments", "op": "is_empty", "value": None}])

    outcome = await run_query(obj, client=fake_airtable.client(), view="Mapfluence_Rooms")

    assert outcome.result.to_payload()["rows"] == [{"id": "rec7", "fields": {"Comments": ""}}]
    assert fake_airtable.params(1) == {"filterByFormula": '{Comments}=""'}


@pytest.mark.asyncio
async def test_invalid_query_never_reaches_backend(fake_airtable: FakeAirtable) -> None:
    with pytest.raises(QueryValidationError) as exc_info:
        await run_query(_obj("delete"), client=fake_airtable.client(), view="Mapfluence_Rooms")

    assert exc_info.value.errors == ("Invalid intent: delete",)
    assert fake_airtable.requests == []


def test_prepare_query_surfaces_compile_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delitem(builder._BUILDERS, ">")

    with pytest.raises(FormulaCompileError, match="Unsupported filter operator: >"):
        prepare_query(_obj("list", filters=[{"field": "Area_SF", "op": ">", "value": 100}]))


def test_prepare_query_expands_list_value_for_equality() -> None:
    obj = _obj("list", filters=[{"field": "Floor", "op": "=", "value": ["1", "2"]}])

    query, formula = prepare_query(obj)

    assert query.filters[0].value == ["1", "2"]
    assert formula == 'OR({Floor}="1",{Floor}="2")'


def test_prepare_query_list_value_for_comparison_is_a_compile_error() -> None:
    obj = _obj("list", filters=[{"field": "Area_SF", "op": ">", "value": [100, 200]}])

    with pytest.raises(FormulaCompileError, match="needs a single value"):
        prepare_query(obj)
