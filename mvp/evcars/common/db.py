"""Shared database connection helpers and table DDL."""

import logging
from typing import Any

import psycopg
from psycopg_pool import ConnectionPool

from common.config import Settings
from common.query_builder import qident
from common.vehicle_spec import VEHICLE_SPEC

logger = logging.getLogger(__name__)


def get_db_params(settings: Settings) -> dict[str, Any]:
    """Return psycopg connection parameters for the configured store."""
    return {
        "host": settings.postgres_host,
        "port": settings.postgres_port,
        "dbname": settings.postgres_db,
        "user": settings.postgres_user,
        "password": settings.postgres_password,
        "options": f"-c statement_timeout={settings.statement_timeout_ms}",
    }


def create_pool(settings: Settings) -> ConnectionPool:
    """Open a pool and wait until it holds `min_size` connections.

    Raises psycopg_pool.PoolTimeout when the store cannot be reached.
    """
    pool = ConnectionPool(
        settings.conninfo,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
        timeout=settings.pool_timeout,
        kwargs={"options": f"-c statement_timeout={settings.statement_timeout_ms}"},
        open=False,
    )
    pool.open(wait=True, timeout=settings.pool_timeout)
    return pool


_TABLE = qident(VEHICLE_SPEC.table)

CREATE_TABLE_SQL = f"""
CREATE TABLE IF NOT EXISTS {_TABLE} (
  "id" integer GENERATED BY DEFAULT AS IDENTITY PRIMARY KEY,
  "brand" varchar(100) NOT NULL,
  "model" varchar(150) NOT NULL,
  "accel_sec" numeric(4,2),
  "top_speed_kmh" integer,
  "range_km" integer,
  "efficiency_whkm" integer,
  "fast_charge_kmh" varchar(50),
  "rapid_charge" varchar(50),
  "power_train" varchar(100),
  "plug_type" varchar(50),
  "body_style" varchar(50),
  "segment" varchar(50),
  "seats" integer,
  "price_euro" integer,
  "date" varchar(20),
  "created_at" timestamptz NOT NULL DEFAULT now(),
  "updated_at" timestamptz NOT NULL DEFAULT now()
)
"""

CREATE_INDEX_SQL = [
    f'CREATE INDEX IF NOT EXISTS idx_brand ON {_TABLE} ("brand")',
    f'CREATE INDEX IF NOT EXISTS idx_model ON {_TABLE} ("model")',
    f'CREATE INDEX IF NOT EXISTS idx_segment ON {_TABLE} ("segment")',
    f'CREATE INDEX IF NOT EXISTS idx_price ON {_TABLE} ("price_euro")',
    f'CREATE INDEX IF NOT EXISTS idx_range ON {_TABLE} ("range_km")',
    f'CREATE INDEX IF NOT EXISTS idx_brand_model ON {_TABLE} ("brand", "model")',
]


def ensure_schema(conn: psycopg.Connection) -> None:
    with conn.cursor() as cur:
        cur.execute(CREATE_TABLE_SQL)
        for stmt in CREATE_INDEX_SQL:
            cur.execute(stmt)
    conn.commit()
    logger.info("Table %s created/verified", VEHICLE_SPEC.table)
