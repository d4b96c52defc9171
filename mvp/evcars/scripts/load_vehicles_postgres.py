import argparse
import sys
import time
from pathlib import Path

import psycopg

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from common.config import load_settings
from common.db import ensure_schema, get_db_params
from common.log_config import setup_logging
from common.vehicle_import import import_vehicles_csv
from common.vehicle_spec import VEHICLE_SPEC


def main() -> None:
    parser = argparse.ArgumentParser(description="Load the electric vehicle CSV into an empty Postgres table")
    parser.add_argument("--csv", default="", help="CSV path (defaults to CSV_PATH / data/electric_cars.csv)")
    args = parser.parse_args()

    settings = load_settings()
    setup_logging(settings.log_level)
    csv_path = Path(args.csv) if args.csv else settings.csv_path

    with psycopg.connect(**get_db_params(settings)) as conn:
        t0 = time.time()
        ensure_schema(conn)
        imported = import_vehicles_csv(conn, csv_path)
        elapsed = time.time() - t0

    if imported:
        print(f"Loaded {VEHICLE_SPEC.table} from {csv_path.name} in {elapsed:.1f}s")
    else:
        print(f"Nothing imported into {VEHICLE_SPEC.table} (table not empty or no usable CSV at {csv_path})")


if __name__ == "__main__":
    main()
