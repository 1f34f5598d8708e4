"""Create the church_attendance schema and, optionally, load the demo church.

Usage: APP_ENV=development python scripts/setup_db.py [--seed]
"""
from __future__ import annotations

import argparse
import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.church_attendance.church_attendance.database.bootstrap import apply_schema, apply_seed_sql, list_tables

logger = logging.getLogger("setup_db")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--seed", action="store_true", help="also load database/seed.sql")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")
    if args.seed:
        apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")

    tables = list_tables(db_config)
    logger.info(
        "%s@%s:%s/%s ready with %d tables%s",
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
        len(tables),
        " (demo data loaded)" if args.seed else "",
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
