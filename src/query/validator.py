"""Validation of untrusted query objects against the canonical schema.

The input typically comes straight from a language model, so nothing about its shape is assumed.
Every violation is reported (not just the first) and nothing is ever raised for malformed input.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from src.query.schema import CANONICAL_SCHEMA, EMPTINESS_OPERATORS, CanonicalSchema, Operator

_SCALAR_TYPES = (str, int, float, bool)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of `validate_query`; `ok` is true iff `errors` is empty."""

    errors: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors


def _is_record(value: Any) -> bool:
    return isinstance(value, Mapping)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _is_scalar(value: Any) -> bool:
    return isinstance(value, _SCALAR_TYPES)


def _allowed(value: Any, allowed: frozenset[str]) -> bool:
    # Unhashable garbage (lists, dicts) must not raise TypeError on set membership.
    return isinstance(value, str) and value in allowed


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _filter_errors(index: int, item: Any, schema: CanonicalSchema) -> list[str]:
    prefix = f"filters[{index}]"
    if not _is_record(item):
        return [f"{prefix} must be an object."]

    errors: list[str] = []
    field = item.get("field")
    op = item.get("op")
    value = item.get("value")

    if not _allowed(field, schema.fields):
        errors.append(f"{prefix}.field not allowed: {field}")
    if not _allowed(op, schema.operators):
        errors.append(f"{prefix}.op not allowed: {op}")

    if op == Operator.in_:
        if not _is_sequence(value) or not value or not all(_is_scalar(v) for v in value):
            errors.append(f'{prefix}.value must be an array for op "in".')
    elif isinstance(op, str) and op in EMPTINESS_OPERATORS:
        if value is not None:
            errors.append(f'{prefix}.value must be null/omitted for op "{op}".')
    elif value is None:
        errors.append(f'{prefix}.value required for op "{op}".')

    return errors


def validate_query(obj: Any, schema: CanonicalSchema = CANONICAL_SCHEMA) -> ValidationResult:
    """Check a candidate query against the closed schema.

    `filters`, `group_by` and `limit` are optional: absent or null values are skipped, never
    defaulted. `intent` and `entity` are always checked.
    """

    if not _is_record(obj):
        return ValidationResult(errors=("Query must be a JSON object.",))

    errors: list[str] = []

    intent = obj.get("intent")
    if not _allowed(intent, schema.intents):
        errors.append(f"Invalid intent: {intent}")

    entity = obj.get("entity")
    if not _allowed(entity, schema.entities):
        errors.append(f"Invalid entity: {entity}")

    filters = obj.get("filters")
    if filters is not None:
        if not _is_sequence(filters):
            errors.append("filters must be an array.")
        else:
            for i, item in enumerate(filters):
                errors.extend(_filter_errors(i, item, schema))

    group_by = obj.get("group_by")
    if group_by is not None:
        if not _is_sequence(group_by):
            errors.append("group_by must be an array.")
        else:
            for i, name in enumerate(group_by):
                if not _allowed(name, schema.fields):
                    errors.append(f"group_by[{i}] field not allowed: {name}")

    limit = obj.get("limit")
    if limit is not None:
        if not _is_number(limit) or not schema.limit_min <= limit <= schema.limit_max:
            errors.append(
                f"limit must be a number between {schema.limit_min} and {schema.limit_max}."
            )

    return ValidationResult(errors=tuple(errors))
