"""Deterministic Airtable formula builder.

The builder converts validated filters into a single `filterByFormula` expression. Field names come
from the canonical allowlist; values are always emitted as escaped string literals or plain
numbers, never spliced in raw.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from src.query.schema import Filter, Operator, Scalar

_SCALAR_TYPES = (str, int, float, bool)


class FormulaCompileError(ValueError):
    """Raised when a filter cannot be converted into an Airtable formula."""


def escape_string(value: str) -> str:
    """Escape a value for an Airtable string literal (backslash first, then double quote)."""

    return value.replace("\\", "\\\\").replace('"', '\\"')


def _text(value: Scalar) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _string_literal(value: Scalar) -> str:
    return f'"{escape_string(_text(value))}"'


def _comparable_literal(value: Scalar) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _text(value)
    return _string_literal(value)


def _field_ref(name: str) -> str:
    return "{" + name + "}"


def _scalar_value(f: Filter) -> Scalar:
    if f.value is None or not isinstance(f.value, _SCALAR_TYPES):
        raise FormulaCompileError(f'Filter on {f.field} needs a single value for op "{f.op}"')
    return f.value


def _alternatives(f: Filter) -> list[Scalar]:
    """Values of a list-valued filter; each one becomes its own sub-expression."""

    if not f.value or not all(isinstance(v, _SCALAR_TYPES) for v in f.value):
        raise FormulaCompileError(f'Filter on {f.field} needs a non-empty list for op "{f.op}"')
    return list(f.value)


def _each_value(render: Callable[[str, Scalar], str], joiner: str) -> Callable[[Filter], str]:
    # A list value for a single-value operator expands to one term per element.
    def build(f: Filter) -> str:
        field = _field_ref(f.field)
        if not isinstance(f.value, list):
            return render(field, _scalar_value(f))
        return f"{joiner}(" + ",".join(render(field, v) for v in _alternatives(f)) + ")"

    return build


_eq = _each_value(lambda field, v: f"{field}={_string_literal(v)}", "OR")
_ne = _each_value(lambda field, v: f"{field}!={_string_literal(v)}", "AND")
_contains = _each_value(lambda field, v: f"FIND({_string_literal(v)}, {field})", "OR")


def _in(f: Filter) -> str:
    if not isinstance(f.value, list):
        raise FormulaCompileError(f'Filter on {f.field} needs a non-empty list for op "in"')
    field = _field_ref(f.field)
    return "OR(" + ",".join(f"{field}={_string_literal(v)}" for v in _alternatives(f)) + ")"


def _comparison(symbol: str) -> Callable[[Filter], str]:
    def build(f: Filter) -> str:
        return f"{_field_ref(f.field)}{symbol}{_comparable_literal(_scalar_value(f))}"

    return build


def _is_empty(f: Filter) -> str:
    return f'{_field_ref(f.field)}=""'


def _not_empty(f: Filter) -> str:
    return f'{_field_ref(f.field)}!=""'


_BUILDERS: dict[str, Callable[[Filter], str]] = {
    Operator.eq: _eq,
    Operator.ne: _ne,
    Operator.contains: _contains,
    Operator.in_: _in,
    Operator.gt: _comparison(">"),
    Operator.gte: _comparison(">="),
    Operator.lt: _comparison("<"),
    Operator.lte: _comparison("<="),
    Operator.is_empty: _is_empty,
    Operator.not_empty: _not_empty,
}


def compile_filter(f: Filter) -> str:
    """Build the sub-expression for a single filter."""

    try:
        builder = _BUILDERS[f.op]
    except KeyError as exc:
        raise FormulaCompileError(f"Unsupported filter operator: {f.op}") from exc
    return builder(f)


def compile_filters(filters: Sequence[Filter]) -> str:
    """Build a `filterByFormula` expression from filters, preserving their order.

    Returns:
        `""` for no filters, the bare sub-expression for one filter, and `AND(...)` otherwise.
    """

    parts = [compile_filter(f) for f in filters]
    if not parts:
        return ""
    if len(parts) == 1:
        return parts[0]
    return "AND(" + ",".join(parts) + ")"
