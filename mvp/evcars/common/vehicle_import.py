"""One-shot CSV bootstrap for the vehicle table."""

from __future__ import annotations

import csv
import logging
import re
from pathlib import Path
from typing import Any

import psycopg

from common.query_builder import qident
from common.vehicle_spec import VEHICLE_SPEC, VehicleSpec

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 20
NULL_TOKENS = {"", "N/A"}

_NON_NUMERIC = re.compile(r"[^\d.\-]")
_INT_PREFIX = re.compile(r"-?\d+")
_NUM_PREFIX = re.compile(r"-?(\d+(\.\d*)?|\.\d+)")


def _cleaned(v: Any) -> str | None:
    s = "" if v is None else str(v).strip()
    if s in NULL_TOKENS:
        return None
    return _NON_NUMERIC.sub("", s)


def to_int(v: Any) -> int | None:
    s = _cleaned(v)
    m = _INT_PREFIX.match(s) if s else None
    return int(m.group(0)) if m else None


def to_num(v: Any) -> float | None:
    s = _cleaned(v)
    m = _NUM_PREFIX.match(s) if s else None
    return float(m.group(0)) if m else None


def read_csv_rows(csv_path: Path) -> list[dict[str, str]]:
    """Read the CSV, trimming header names and cell values."""
    rows: list[dict[str, str]] = []
    with csv_path.open("r", encoding="utf-8-sig", newline="") as f:
        for raw in csv.DictReader(f):
            rows.append(
                {
                    (k or "").strip(): (v or "").strip() if isinstance(v, str) else ""
                    for k, v in raw.items()
                }
            )
    return rows


def clean_row(row: dict[str, str], spec: VehicleSpec = VEHICLE_SPEC) -> dict[str, Any]:
    """Map one CSV row to table columns, coercing numeric fields."""
    out: dict[str, Any] = {}
    for col in spec.import_columns:
        raw = row.get(spec.source_columns[col], "")
        if col in spec.int_fields:
            out[col.value] = to_int(raw)
        elif col in spec.float_fields:
            out[col.value] = to_num(raw)
        else:
            out[col.value] = raw or ""
    return out


def insert_sql(spec: VehicleSpec = VEHICLE_SPEC) -> str:
    cols = [c.value for c in spec.import_columns]
    return (
        f"INSERT INTO {qident(spec.table)} ("
        + ", ".join(qident(c) for c in cols)
        + ") VALUES ("
        + ", ".join(f"%({c})s" for c in cols)
        + ")"
    )


def table_count(conn: psycopg.Connection, spec: VehicleSpec = VEHICLE_SPEC) -> int:
    with conn.cursor() as cur:
        cur.execute(f"SELECT count(*) FROM {qident(spec.table)}")
        return int(cur.fetchone()[0])


def import_vehicles_csv(conn: psycopg.Connection, csv_path: Path, spec: VehicleSpec = VEHICLE_SPEC) -> bool:
    """Load `csv_path` into an empty vehicle table.

    Returns False without touching the table when it already has rows, the
    file is missing, or the file has no data rows. Rows that fail to insert
    are skipped; returns True when at least one row was inserted.
    """
    if table_count(conn, spec) > 0:
        logger.info("Data already exists, skipping CSV import")
        return False

    if not csv_path.exists():
        logger.warning("CSV file not found at %s, skipping import", csv_path)
        return False

    try:
        rows = read_csv_rows(csv_path)
    except (OSError, UnicodeDecodeError, csv.Error) as exc:
        logger.error("CSV parse failed for %s: %s", csv_path, exc)
        return False

    if not rows:
        logger.info("No data found in CSV %s", csv_path.name)
        return False

    logger.info("Processing %d records from %s", len(rows), csv_path.name)
    sql = insert_sql(spec)
    inserted = 0
    skipped = 0

    with conn.cursor() as cur:
        for row in rows:
            try:
                with conn.transaction():
                    cur.execute(sql, clean_row(row, spec))
            except psycopg.Error as exc:
                skipped += 1
                logger.warning("Skipped row %d: %s", inserted + skipped, exc)
                continue
            inserted += 1
            if inserted % PROGRESS_EVERY == 0:
                logger.info("Inserted %d records...", inserted)
    conn.commit()

    logger.info("Imported %d electric cars from %s", inserted, csv_path.name)
    if skipped:
        logger.info("Skipped %d invalid records", skipped)
    return inserted > 0
