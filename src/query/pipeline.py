"""Query pipeline orchestration.

Order is fixed: validate -> normalize -> compile -> execute. Validation failures stop the pipeline
before any backend call is made.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from src.airtable.client import AirtableClient
from src.airtable.query import QueryResult, execute_query
from src.formula.builder import compile_filters
from src.query.llm_client import LLMConfig, request_query_json
from src.query.normalize import normalize_query
from src.query.schema import Query, query_from_obj


@dataclass(frozen=True)
class PipelineResult:
    """Executed result plus the normalized query and the formula that produced it."""

    query: Query
    formula: str
    result: QueryResult


def prepare_query(obj: Any) -> tuple[Query, str]:
    """Validate, normalize and compile a candidate query object.

    Raises:
        QueryValidationError: If the object violates the canonical schema.
        FormulaCompileError: If a validated filter has no formula rule for its op and value.
    """

    query = normalize_query(query_from_obj(obj))
    return query, compile_filters(query.filters)


async def run_query(obj: Any, *, client: AirtableClient, view: str | None) -> PipelineResult:
    """Run a structured query object end to end against Airtable."""

    query, formula = prepare_query(obj)
    result = await execute_query(client, query, formula=formula, view=view)
    return PipelineResult(query=query, formula=formula, result=result)


async def question_to_query_obj(
        question: str,
        *,
        config: LLMConfig,
        context: Any = None,
) -> dict[str, Any]:
    """Translate a free-text question into a candidate (unvalidated) query object."""

    return await asyncio.to_thread(request_query_json, question, config=config, context=context)
