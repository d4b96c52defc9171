"""
Request parameter validation.

- `parse_list_query`: pagination/sort/search with defaults, first violation -> ValidationError.
- `validate_filters`: human-readable problems with the dynamic `<col>_filter_*` keys.
- `parse_vehicle_id`: positive integer path ids.
"""

from __future__ import annotations

from typing import Mapping

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from common.errors import ValidationError
from common.filters import RANGE_SUFFIXES, TYPE_SUFFIX, VALUE_SUFFIX
from common.vehicle_spec import FILTER_TYPES, SORT_ORDERS, VEHICLE_SPEC

MAX_LIMIT = 100
DEFAULT_LIMIT = 50
MAX_ID = 2_147_483_647  # postgres integer


class ListQuery(BaseModel):
    model_config = ConfigDict(extra="ignore")

    search: str = Field(default="", max_length=100)
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT)
    sortBy: str = VEHICLE_SPEC.default_sort.value
    sortOrder: str = "desc"

    @field_validator("sortBy")
    @classmethod
    def _sort_column_allowed(cls, v: str) -> str:
        if not VEHICLE_SPEC.is_base_column(v):
            allowed = ", ".join(c.value for c in VEHICLE_SPEC.base_columns)
            raise ValueError(f"must be one of [{allowed}]")
        return v

    @field_validator("sortOrder")
    @classmethod
    def _sort_order_allowed(cls, v: str) -> str:
        if v not in SORT_ORDERS:
            raise ValueError(f"must be one of [{', '.join(SORT_ORDERS)}]")
        return v


def _first_error_message(exc: pydantic.ValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ()))
    msg = str(err.get("msg", "is invalid"))
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    return f'"{loc}" {msg}' if loc else msg


def parse_list_query(params: Mapping[str, str]) -> ListQuery:
    try:
        return ListQuery.model_validate(dict(params))
    except pydantic.ValidationError as exc:
        raise ValidationError(_first_error_message(exc)) from exc


def _is_filterable(column: str) -> bool:
    return any(
        column == base.value or any(column.startswith(base.value + suffix) for suffix in RANGE_SUFFIXES)
        for base in VEHICLE_SPEC.base_columns
    )


def validate_filters(params: Mapping[str, str]) -> list[str]:
    errors: list[str] = []
    for key, filter_type in params.items():
        if not key.endswith(TYPE_SUFFIX):
            continue
        column = key[: -len(TYPE_SUFFIX)]

        if filter_type not in FILTER_TYPES:
            errors.append(f"Invalid filter type '{filter_type}' for column '{column}'")

        if not _is_filterable(column):
            errors.append(f"Column '{column}' is not filterable")

        if filter_type != "isEmpty" and params.get(f"{column}{VALUE_SUFFIX}") is None:
            errors.append(f"Missing filter value for column '{column}'")
    return errors


def parse_vehicle_id(raw: str) -> int:
    s = (raw or "").strip()
    if not (s.isascii() and s.isdigit()):
        raise ValidationError("Invalid ID format")
    vehicle_id = int(s)
    if vehicle_id < 1 or vehicle_id > MAX_ID:
        raise ValidationError("Invalid ID format")
    return vehicle_id
