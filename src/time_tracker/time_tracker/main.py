from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv

from config import get_settings_module

from .container import Container, build_container
from .core.logging import configure_logging
from .database.bootstrap import apply_schema, list_tables

logger = logging.getLogger(__name__)


def create_tracker() -> Container:
    """Init-at-startup: load settings, configure logging and build the services.

    The caller owns the returned container and must call ``close()`` at shutdown.
    """
    load_dotenv(override=False)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    db_config = getattr(settings, "DB_CONFIG")

    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    logger.info(
        "startup",
        extra={
            "event": settings_module,
            "reason": f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}",
        },
    )

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
        apply_schema(db_config, schema_path=schema_path)
        logger.info("schema_ready", extra={"event": f"tables={len(list_tables(db_config))}"})

    return build_container(
        db_config=db_config,
        secret_key=getattr(settings, "SECRET_KEY"),
        token_ttl_hours=int(getattr(settings, "TOKEN_TTL_HOURS", 24)),
    )
