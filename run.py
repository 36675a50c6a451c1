import logging
import os

import uvicorn

from app.core.config import settings

logger = logging.getLogger("run")


def run_migrations():
    """Run Alembic migrations."""
    from alembic.config import Config
    from alembic import command

    alembic_cfg = Config("alembic.ini")
    logger.info("[STARTUP] Running database migrations...")
    command.upgrade(alembic_cfg, "head")
    logger.info("[STARTUP] Migrations complete!")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    # Tables are otherwise created by the app's startup hook
    if os.getenv("RUN_MIGRATIONS") == "true":
        run_migrations()

    # Disable reload in production
    reload = os.getenv("ENV") == "development"

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=reload,
        log_level="info",
        workers=1,
    )
