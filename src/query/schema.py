"""Canonical query schema and typed Query models.

The CanonicalSchema is the closed vocabulary shared by the validator, the LLM prompt, and the
formula compiler. The Pydantic models are the typed form of a query *after* it has passed
`validate_query`; later stages never operate on raw decoded JSON.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Intent(StrEnum):
    """High-level operation requested by a query."""

    count = "count"
    list = "list"
    sum = "sum"
    group_by = "group_by"
    lookup = "lookup"


class Entity(StrEnum):
    """Queryable entities."""

    rooms = "rooms"


class Operator(StrEnum):
    """Filter comparison operators."""

    eq = "="
    ne = "!="
    in_ = "in"
    contains = "contains"
    gt = ">"
    gte = ">="
    lt = "<"
    lte = "<="
    is_empty = "is_empty"
    not_empty = "not_empty"


EMPTINESS_OPERATORS: frozenset[str] = frozenset({Operator.is_empty, Operator.not_empty})

CANON_FIELDS: tuple[str, ...] = (
    "Number",
    "RevitId",
    "Revit_UniqueId",
    "Floor",
    "LevelName",
    "Area_SF",
    "Room Type",
    "NCES_Category_Desc",
    "Department",
    "NCES_Occupancy Status",
    "NCES_Seat Count",
    "Comments",
)

ROOM_TYPE_FIELD = "Room Type"


@dataclass(frozen=True)
class CanonicalSchema:
    """Immutable allowlists for fields, intents, entities and operators."""

    fields: frozenset[str] = field(default_factory=lambda: frozenset(CANON_FIELDS))
    intents: frozenset[str] = field(default_factory=lambda: frozenset(i.value for i in Intent))
    entities: frozenset[str] = field(default_factory=lambda: frozenset(e.value for e in Entity))
    operators: frozenset[str] = field(
        default_factory=lambda: frozenset(o.value for o in Operator)
    )
    limit_min: int = 0
    limit_max: int = 5000


CANONICAL_SCHEMA = CanonicalSchema()

Scalar = str | int | float | bool


class QueryValidationError(ValueError):
    """Raised when a candidate query violates the canonical schema."""

    def __init__(self, errors: list[str] | tuple[str, ...]) -> None:
        self.errors: tuple[str, ...] = tuple(errors)
        super().__init__("; ".join(self.errors))


class Filter(BaseModel):
    """A single field/operator/value predicate."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    field: str
    op: Operator
    value: Scalar | list[Any] | dict[str, Any] | None = None


class Query(BaseModel):
    """A validated structured query over the room inventory."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    intent: Intent
    entity: Entity
    filters: list[Filter] = Field(default_factory=list)
    group_by: list[str] = Field(default_factory=list)
    limit: int | float = 0

    @property
    def max_records(self) -> int | None:
        """Explicit row cap, or `None` when `limit` is 0 ("no explicit limit").

        A fractional limit is rounded up, so any positive limit caps at one row or more.
        """

        if self.limit <= 0:
            return None
        return math.ceil(self.limit)


def query_from_obj(obj: Any, schema: CanonicalSchema = CANONICAL_SCHEMA) -> Query:
    """Validate an arbitrary decoded JSON object and parse it into a `Query`.

    Raises:
        QueryValidationError: With the full list of violations if the object is rejected.
    """

    # Imported here: the validator depends on this module for the canonical schema.
    from src.query.validator import validate_query

    result = validate_query(obj, schema)
    if not result.ok:
        raise QueryValidationError(result.errors)

    payload = {key: value for key, value in obj.items() if value is not None}
    return Query.model_validate(payload)
