"""Utilities for running Alembic migrations from application code."""

from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.script import ScriptDirectory

from account_core.core.config import settings

logger = logging.getLogger(__name__)


def _alembic_config() -> Config:
    """Build an Alembic config wired to the runtime settings."""

    project_root = Path(__file__).resolve().parents[2]
    config_path = project_root / "alembic.ini"
    script_location = project_root / "alembic"

    alembic_cfg = Config(str(config_path))
    alembic_cfg.set_main_option("script_location", str(script_location))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)
    alembic_cfg.attributes["database_url"] = settings.database_url
    logger.info("Alembic configured from %s", config_path)
    return alembic_cfg


def run_migrations() -> None:
    """Apply pending migrations up to the latest revision.

    The application's pooled connections are disposed first so Alembic is
    not blocked by locks they hold. The upgrade is skipped when the database
    already sits at a head revision.
    """
    from alembic.runtime.migration import MigrationContext

    from account_core.db.session import engine as app_engine

    logger.info("Disposing application database connections before migrations")
    app_engine.dispose()

    cfg = _alembic_config()

    try:
        script = ScriptDirectory.from_config(cfg)
        heads = list(script.get_heads() or [])
        logger.info("Alembic migration heads: %s", ",".join(heads))

        with app_engine.connect() as connection:
            context = MigrationContext.configure(connection)
            current_rev = context.get_current_revision()
            logger.info("Current database revision: %s", current_rev)
            if current_rev and current_rev in heads:
                logger.info("Database is already at head revision, skipping migrations")
                return
    except Exception as exc:
        logger.warning("Unable to check migration status: %s, proceeding with upgrade", exc)

    logger.info("Applying database migrations (alembic upgrade heads)")
    try:
        command.upgrade(cfg, "heads")
        logger.info("Database migrations applied successfully")
    except Exception:
        logger.exception("Alembic upgrade failed")
        raise


__all__ = ["run_migrations"]
