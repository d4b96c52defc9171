"""
Filtered, sorted, paginated SELECT + matching COUNT for the vehicle table.

Only Column members are ever interpolated into SQL text; every user value
is bound as a psycopg parameter (%s).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from common.filters import (
    Contains,
    EndsWith,
    Equals,
    FilterEntry,
    FilterSet,
    GreaterThanOrEqual,
    IsEmpty,
    LessThanOrEqual,
    StartsWith,
)
from common.vehicle_spec import VEHICLE_SPEC, Column, VehicleSpec

logger = logging.getLogger(__name__)

# text cells that read as a plain decimal, e.g. fast_charge_kmh "560"
NUMERIC_TEXT_PATTERN = r"^\s*-?\d+(\.\d+)?\s*$"
# OFFSET is a bigint
MAX_OFFSET = 2**63 - 1


def qident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass(frozen=True)
class BuiltQuery:
    data_sql: str
    data_params: list[Any]
    count_sql: str
    count_params: list[Any]
    page: int
    limit: int
    offset: int


def _typed_like_clause(spec: VehicleSpec, col: Column, pattern: str, where: list[str], params: list[Any]) -> None:
    """Case-insensitive LIKE; non-text columns are compared through ::text."""
    qcol = qident(col.value)
    if spec.col_type(col) == "text":
        where.append(f"{qcol} ILIKE %s")
    else:
        where.append(f"{qcol}::text ILIKE %s")
    params.append(pattern)


def _typed_eq_clause(spec: VehicleSpec, col: Column, val: str, where: list[str], params: list[Any]) -> None:
    """Exact match using the column's native type when the value parses as it."""
    ctype = spec.col_type(col)
    qcol = qident(col.value)
    if ctype == "text":
        where.append(f"{qcol} = %s")
        params.append(val)
        return
    try:
        typed: Any = int(val.strip()) if ctype == "int" else float(val.strip()) if ctype == "float" else None
    except ValueError:
        typed = None
    if typed is None:
        where.append(f"{qcol}::text = %s")
        params.append(val)
    else:
        where.append(f"{qcol} = %s")
        params.append(typed)


def _filter_clause(spec: VehicleSpec, entry: FilterEntry, where: list[str], params: list[Any]) -> None:
    col, op = entry.column, entry.op
    qcol = qident(col.value)

    if isinstance(op, Contains):
        _typed_like_clause(spec, col, f"%{escape_like(op.value)}%", where, params)
    elif isinstance(op, StartsWith):
        _typed_like_clause(spec, col, f"{escape_like(op.value)}%", where, params)
    elif isinstance(op, EndsWith):
        _typed_like_clause(spec, col, f"%{escape_like(op.value)}", where, params)
    elif isinstance(op, Equals):
        _typed_eq_clause(spec, col, op.value, where, params)
    elif isinstance(op, IsEmpty):
        if spec.col_type(col) == "text":
            where.append(f"({qcol} IS NULL OR {qcol} = '')")
        else:
            where.append(f"({qcol} IS NULL OR {qcol}::text = '')")
    elif isinstance(op, (GreaterThanOrEqual, LessThanOrEqual)):
        cmp = ">=" if isinstance(op, GreaterThanOrEqual) else "<="
        ctype = spec.col_type(col)
        if ctype in ("int", "float"):
            where.append(f"{qcol} {cmp} %s")
            params.append(op.value)
        elif ctype == "text":
            # non-numeric cells become NULL and never match
            where.append(f"(CASE WHEN {qcol} ~ %s THEN {qcol}::numeric END) {cmp} %s")
            params.extend([NUMERIC_TEXT_PATTERN, op.value])
        else:
            logger.debug("Ignoring numeric comparison on %s column %s", ctype, col.value)


def build_where(
    filters: FilterSet,
    search: str,
    spec: VehicleSpec = VEHICLE_SPEC,
) -> tuple[str, list[Any]]:
    where: list[str] = []
    params: list[Any] = []

    term = (search or "").strip()
    if term:
        pattern = f"%{escape_like(term)}%"
        clauses = [f"{qident(c.value)} ILIKE %s" for c in spec.search_fields]
        where.append("(" + " OR ".join(clauses) + ")")
        params.extend([pattern] * len(spec.search_fields))

    price_col = qident(Column.PRICE_EURO.value)
    if filters.price_min is not None:
        where.append(f"{price_col} >= %s")
        params.append(filters.price_min)
    if filters.price_max is not None:
        where.append(f"{price_col} <= %s")
        params.append(filters.price_max)

    for entry in filters.entries:
        _filter_clause(spec, entry, where, params)

    return (f"WHERE {' AND '.join(where)}" if where else "", params)


def order_by_clause(sort_by: str, sort_order: str, spec: VehicleSpec = VEHICLE_SPEC) -> str:
    order_col = Column.resolve(sort_by)
    order_dir = "ASC" if (sort_order or "").lower() == "asc" else "DESC"
    tie_breaker = f", {qident(spec.ck_field.value)} ASC" if order_col != spec.ck_field else ""
    return f"ORDER BY {qident(order_col.value)} {order_dir}{tie_breaker}"


def build_page_query(
    filters: FilterSet,
    search: str,
    sort_by: str,
    sort_order: str,
    page: int,
    limit: int,
    spec: VehicleSpec = VEHICLE_SPEC,
) -> BuiltQuery:
    page = max(int(page), 1)
    limit = max(int(limit), 1)
    offset = min((page - 1) * limit, MAX_OFFSET)

    where_sql, params = build_where(filters, search, spec)
    select_cols = ", ".join(qident(c.value) for c in spec.columns_with_ck)
    table = qident(spec.table)

    count_sql = f"SELECT count(*) FROM {table} {where_sql}".rstrip()
    data_sql = f"""
      SELECT {select_cols}
      FROM {table}
      {where_sql}
      {order_by_clause(sort_by, sort_order, spec)}
      LIMIT %s OFFSET %s
    """

    return BuiltQuery(
        data_sql=data_sql,
        data_params=[*params, limit, offset],
        count_sql=count_sql,
        count_params=list(params),
        page=page,
        limit=limit,
        offset=offset,
    )
