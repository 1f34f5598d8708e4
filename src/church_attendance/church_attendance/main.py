from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .core.constants import DEFAULT_BADGE_PREFIX
from .database.bootstrap import apply_schema, apply_seed_sql, list_tables

from .container import build_container
from .childcare.controller import register as register_child_care
from .courses.controller import register as register_courses
from .events.controller import register as register_events
from .logs.controller import register as register_logs
from .registrations.controller import register as register_registrations

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app() -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["BADGE_PREFIX"] = getattr(settings, "BADGE_PREFIX", DEFAULT_BADGE_PREFIX)

    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    database_dir = Path(__file__).resolve().parents[3] / "database"
    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config, schema_path=database_dir / "schema.sql")
        logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
    if bool(getattr(settings, "AUTO_SEED_DB", False)):
        apply_seed_sql(db_config, seed_path=database_dir / "seed.sql")
        logger.info("demo seed ready")

    container = build_container(db_config=db_config)

    register_registrations(app, container)
    register_child_care(app, container)
    register_courses(app, container)
    register_events(app, container)
    register_logs(app, container)

    return app
