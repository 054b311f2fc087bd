"""Database migration verification utilities."""
import os
import subprocess
from pathlib import Path

from toolgate.logging_config import get_logger

logger = get_logger(__name__)


def get_alembic_dir() -> Path:
    """Directory holding alembic.ini (the project root)."""
    return Path(__file__).parent.parent


def ensure_migrations() -> None:
    """
    Ensure migrations are applied by running ``alembic upgrade head``.

    Uses subprocess to avoid async issues in the FastAPI lifespan.
    Raises RuntimeError when the upgrade fails and REQUIRE_MIGRATIONS is true.
    """
    if os.getenv("AUTO_MIGRATE", "true").lower() == "false":
        logger.info("AUTO_MIGRATE=false, skipping migration check")
        return

    logger.info("Running database migrations...")

    try:
        result = subprocess.run(
            ["alembic", "upgrade", "head"],
            cwd=get_alembic_dir(),
            capture_output=True,
            text=True,
            timeout=60,
        )
    except subprocess.TimeoutExpired:
        raise RuntimeError("Migration timed out after 60s")
    except FileNotFoundError:
        logger.warning("alembic not found - skipping migrations")
        return

    if result.returncode != 0:
        logger.error(f"Migration failed: {result.stderr}")
        if os.getenv("REQUIRE_MIGRATIONS", "true").lower() == "true":
            raise RuntimeError("Database migrations failed")
        return

    for line in result.stdout.splitlines():
        if line.strip():
            logger.info(f"  {line}")
    logger.info("Migrations complete")
