"""Domain normalization applied to validated queries before compilation."""

from __future__ import annotations

from src.query.schema import ROOM_TYPE_FIELD, Filter, Intent, Operator, Query

_ROOM_TYPE_REWRITE_INTENTS: frozenset[Intent] = frozenset(
    {Intent.count, Intent.list, Intent.lookup}
)


def _relax_room_type(f: Filter) -> Filter:
    if f.field == ROOM_TYPE_FIELD and f.op == Operator.eq and isinstance(f.value, str):
        return f.model_copy(update={"op": Operator.contains})
    return f


def normalize_query(query: Query) -> Query:
    """Rewrite `Room Type = X` into `Room Type contains X`.

    Room types are free-text labels ("Office - Faculty", "Lab, Wet"), so equality on that field is
    treated as a substring match. Applies to `count`, `list` and `lookup` only; idempotent.
    """

    if query.intent not in _ROOM_TYPE_REWRITE_INTENTS:
        return query

    filters = [_relax_room_type(f) for f in query.filters]
    if filters == query.filters:
        return query
    return query.model_copy(update={"filters": filters})
