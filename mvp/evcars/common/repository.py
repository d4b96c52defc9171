"""
Vehicle table access (raw SQL over psycopg).

The repository is handed an open ConnectionPool by the process entry point
and checks out one connection per operation.
"""

from __future__ import annotations

import math
from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from common.errors import RepositoryError
from common.filters import FilterSet
from common.query_builder import build_page_query, qident
from common.vehicle_spec import VEHICLE_SPEC, Column, VehicleSpec, display_name

DISTINCT_VALUES_LIMIT = 100
PRICE_STEP = 1000
DEFAULT_PRICE_MIN = 0
DEFAULT_PRICE_MAX = 100000

_NUMERIC_TYPES = ("integer", "smallint", "bigint", "numeric", "decimal", "real", "double precision")


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def price_bounds(min_price: Any, max_price: Any) -> dict[str, int]:
    """Round min down / max up to the nearest thousand for slider bounds."""
    lo = float(min_price) if min_price is not None else DEFAULT_PRICE_MIN
    hi = float(max_price) if max_price is not None else DEFAULT_PRICE_MAX
    return {
        "min": int(math.floor(lo / PRICE_STEP) * PRICE_STEP),
        "max": int(math.ceil(hi / PRICE_STEP) * PRICE_STEP),
    }


def _jsonable(row: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, val in row.items():
        if hasattr(val, "isoformat"):
            out[key] = val.isoformat()
        elif val is not None and not isinstance(val, (int, float, str, bool)):
            # numeric(4,2) comes back as Decimal
            out[key] = float(val)
        else:
            out[key] = val
    return out


class VehicleRepository:
    def __init__(self, pool: ConnectionPool, spec: VehicleSpec = VEHICLE_SPEC):
        self.pool = pool
        self.spec = spec
        self._table = qident(spec.table)
        self._select_cols = ", ".join(qident(c.value) for c in spec.columns_with_ck)

    def list_page(
        self,
        filters: FilterSet,
        search: str = "",
        page: int = 1,
        limit: int = 50,
        sort_by: str = "id",
        sort_order: str = "desc",
    ) -> dict[str, Any]:
        query = build_page_query(filters, search, sort_by, sort_order, page, limit, self.spec)
        try:
            with self.pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query.count_sql, query.count_params)
                total = int(cur.fetchone()["count"])
                cur.execute(query.data_sql, query.data_params)
                rows = cur.fetchall()
        except psycopg.Error as exc:
            raise RepositoryError(f"Database query failed: {exc}") from exc

        return {
            "data": [_jsonable(r) for r in rows],
            "pagination": {
                "total": total,
                "page": query.page,
                "limit": query.limit,
                "totalPages": total_pages(total, query.limit),
            },
        }

    def get(self, vehicle_id: int) -> dict[str, Any] | None:
        sql = f"SELECT {self._select_cols} FROM {self._table} WHERE {qident(self.spec.ck_field.value)} = %s"
        try:
            with self.pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
                cur.execute(sql, (vehicle_id,))
                row = cur.fetchone()
        except psycopg.Error as exc:
            raise RepositoryError(f"Failed to fetch record: {exc}") from exc
        return _jsonable(row) if row else None

    def delete(self, vehicle_id: int) -> bool:
        sql = f"DELETE FROM {self._table} WHERE {qident(self.spec.ck_field.value)} = %s"
        try:
            with self.pool.connection() as conn, conn.cursor() as cur:
                cur.execute(sql, (vehicle_id,))
                deleted = cur.rowcount > 0
        except psycopg.Error as exc:
            raise RepositoryError(f"Failed to delete record: {exc}") from exc
        return deleted

    def distinct_values(self, column: str) -> list[Any]:
        col = Column.resolve(column)
        qcol = qident(col.value)
        not_empty = f"{qcol} <> ''" if self.spec.col_type(col) == "text" else f"{qcol}::text <> ''"
        sql = f"""
          SELECT DISTINCT {qcol} AS value
          FROM {self._table}
          WHERE {qcol} IS NOT NULL AND {not_empty}
          ORDER BY {qcol}
          LIMIT %s
        """
        try:
            with self.pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
                cur.execute(sql, (DISTINCT_VALUES_LIMIT,))
                rows = cur.fetchall()
        except psycopg.Error as exc:
            raise RepositoryError(f"Failed to fetch distinct values: {exc}") from exc
        return [_jsonable(r)["value"] for r in rows]

    def price_range(self) -> dict[str, int]:
        price = qident(Column.PRICE_EURO.value)
        sql = f"SELECT MIN({price}) AS min_price, MAX({price}) AS max_price FROM {self._table} WHERE {price} IS NOT NULL"
        try:
            with self.pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
                cur.execute(sql)
                row = cur.fetchone() or {}
        except psycopg.Error as exc:
            raise RepositoryError(f"Failed to fetch price range: {exc}") from exc
        return price_bounds(row.get("min_price"), row.get("max_price"))

    def schema(self) -> list[dict[str, str]]:
        sql = """
          SELECT column_name, data_type
          FROM information_schema.columns
          WHERE table_schema = current_schema() AND table_name = %s
          ORDER BY ordinal_position
        """
        hidden = {self.spec.ck_field.value, *(c.value for c in self.spec.managed_fields)}
        try:
            with self.pool.connection() as conn, conn.cursor() as cur:
                cur.execute(sql, (self.spec.table,))
                rows = cur.fetchall()
        except psycopg.Error as exc:
            raise RepositoryError(f"Failed to fetch schema: {exc}") from exc

        return [
            {
                "field": name,
                "type": "number" if data_type in _NUMERIC_TYPES else "text",
                "displayName": display_name(name),
            }
            for name, data_type in rows
            if name not in hidden
        ]

    def count(self) -> int:
        with self.pool.connection() as conn, conn.cursor() as cur:
            cur.execute(f"SELECT count(*) FROM {self._table}")
            return int(cur.fetchone()[0])

    def health(self) -> dict[str, Any]:
        try:
            count = self.count()
        except psycopg.Error as exc:
            raise RepositoryError(f"Health check failed: {exc}") from exc
        return {"database": "has data" if count > 0 else "empty", "count": count}
