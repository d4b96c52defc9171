"""
Structured filters parsed from open query-string keys.

A request carries `<col>_filter_type` / `<col>_filter_value` pairs plus the
price slider keys. They are turned into a FilterSet of (Column, FilterOp)
entries; SQL is rendered from the FilterSet only (see query_builder).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Mapping, Optional, Union

from common.vehicle_spec import FILTER_TYPES, VEHICLE_SPEC, Column

TYPE_SUFFIX = "_filter_type"
VALUE_SUFFIX = "_filter_value"
RANGE_SUFFIXES = ("_min", "_max")

PRICE_MIN_KEYS = ("price_euro_min_filter_value", "price_min_filter_value")
PRICE_MAX_KEYS = ("price_euro_max_filter_value", "price_max_filter_value")
PRICE_SINGLE_KEY = "price_euro_filter_value"


@dataclass(frozen=True)
class Contains:
    value: str


@dataclass(frozen=True)
class Equals:
    value: str


@dataclass(frozen=True)
class StartsWith:
    value: str


@dataclass(frozen=True)
class EndsWith:
    value: str


@dataclass(frozen=True)
class IsEmpty:
    pass


@dataclass(frozen=True)
class GreaterThanOrEqual:
    value: float


@dataclass(frozen=True)
class LessThanOrEqual:
    value: float


FilterOp = Union[Contains, Equals, StartsWith, EndsWith, IsEmpty, GreaterThanOrEqual, LessThanOrEqual]


@dataclass(frozen=True)
class FilterEntry:
    column: Column
    op: FilterOp


@dataclass
class FilterSet:
    entries: list[FilterEntry] = field(default_factory=list)
    price_min: Optional[float] = None
    price_max: Optional[float] = None

    def __len__(self) -> int:
        return len(self.entries) + (self.price_min is not None) + (self.price_max is not None)


def parse_number(raw: object) -> Optional[float]:
    """Return a finite float for numeric input, None otherwise."""
    if raw is None or isinstance(raw, bool):
        return None
    s = str(raw).strip()
    if not s:
        return None
    try:
        val = float(s)
    except ValueError:
        return None
    return val if math.isfinite(val) else None


def build_op(filter_type: str, value: Optional[str]) -> Optional[FilterOp]:
    """Turn an operator name and raw value into a FilterOp.

    Returns None for unknown operators and for numeric comparisons whose
    value does not parse as a number.
    """
    text = "" if value is None else str(value)
    if filter_type == "contains":
        return Contains(text)
    if filter_type == "equals":
        return Equals(text)
    if filter_type == "startsWith":
        return StartsWith(text)
    if filter_type == "endsWith":
        return EndsWith(text)
    if filter_type == "isEmpty":
        return IsEmpty()
    if filter_type == "greaterThan":
        num = parse_number(value)
        return GreaterThanOrEqual(num) if num is not None else None
    if filter_type == "lessThan":
        num = parse_number(value)
        return LessThanOrEqual(num) if num is not None else None
    return None


def is_price_column(name: str) -> bool:
    return "price_euro" in name or name in ("price_min", "price_max")


def resolve_filter_column(name: str) -> Column:
    """Resolve a filter key's column; `<base>_min` / `<base>_max` map to the base column."""
    col = Column.lookup(name)
    if col is not None:
        return col
    for suffix in RANGE_SUFFIXES:
        if name.endswith(suffix) and VEHICLE_SPEC.is_base_column(name[: -len(suffix)]):
            return Column(name[: -len(suffix)])
    return Column.ID


def _first_value(params: Mapping[str, str], keys: tuple[str, ...]) -> Optional[str]:
    for key in keys:
        val = params.get(key)
        if val is not None and str(val).strip():
            return str(val)
    return None


def _price_bounds(params: Mapping[str, str]) -> tuple[Optional[float], Optional[float]]:
    min_raw = _first_value(params, PRICE_MIN_KEYS)
    max_raw = _first_value(params, PRICE_MAX_KEYS)

    single = _first_value(params, (PRICE_SINGLE_KEY,))
    if single is not None:
        if params.get("price_euro_filter_type") == "lessThan":
            max_raw = max_raw if max_raw is not None else single
        else:
            min_raw = min_raw if min_raw is not None else single

    return parse_number(min_raw), parse_number(max_raw)


def extract_filters(params: Mapping[str, str]) -> FilterSet:
    """Build a FilterSet from raw query parameters.

    Entries with an unknown operator, a missing value (other than isEmpty)
    or a non-numeric value for a numeric comparison are dropped.
    """
    price_min, price_max = _price_bounds(params)
    filters = FilterSet(price_min=price_min, price_max=price_max)

    for key, filter_type in params.items():
        if not key.endswith(TYPE_SUFFIX):
            continue
        name = key[: -len(TYPE_SUFFIX)]
        if is_price_column(name):
            continue
        if filter_type not in FILTER_TYPES:
            continue

        value = params.get(f"{name}{VALUE_SUFFIX}")
        if filter_type != "isEmpty" and (value is None or value == ""):
            continue

        op = build_op(filter_type, value)
        if op is None:
            continue
        filters.entries.append(FilterEntry(resolve_filter_column(name), op))

    return filters
