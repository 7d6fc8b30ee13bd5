"""Query execution against the Airtable room inventory.

The result shape depends on the intent: `count` yields a number, every other intent yields rows.
`sum` and `group_by` have no aggregation stage yet and echo the raw rows back.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from src.airtable.client import AirtableClient, Record
from src.query.schema import Intent, Query


@dataclass(frozen=True)
class QueryResult:
    """Rows or a count produced for a single query."""

    intent: Intent
    value: int | None = None
    rows: tuple[Record, ...] | None = None

    def to_payload(self) -> dict[str, Any]:
        if self.intent == Intent.count:
            return {"ok": True, "value": self.value}
        return {"ok": True, "rows": [r.to_dict() for r in self.rows or ()]}


async def execute_query(
        client: AirtableClient,
        query: Query,
        *,
        formula: str,
        view: str | None,
) -> QueryResult:
    """Run a compiled formula for `query` and shape the result by intent.

    Contract:
        - `count` ignores `limit` and counts every matching row.
        - Other intents pass a positive `limit` to Airtable as `maxRecords`.
        - Backend errors are not swallowed (caller decides how to report them).
    """

    if query.intent == Intent.count:
        records = await client.fetch_with_fallback(formula, view=view)
        return QueryResult(intent=query.intent, value=len(records))

    records = await client.fetch_with_fallback(formula, view=view, max_records=query.max_records)
    return QueryResult(intent=query.intent, rows=tuple(records))
