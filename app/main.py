# /app/main.py
import logging
from pathlib import Path

# ---- load .env FIRST (before importing modules that read env) ----
from dotenv import load_dotenv
ENV_PATH = (Path(__file__).parent / "configs" / ".env").resolve()
load_dotenv(ENV_PATH)

import configs.config as cfg  # noqa: E402  configures logging

logger = logging.getLogger(__name__)
logger.info("main.py: loaded .env from %s (exists=%s)", ENV_PATH, ENV_PATH.exists())

from methods.database.database import engine, init_db  # noqa: E402
from methods.manager import UserStore, get_user_store  # noqa: E402
from observability.db_metrics import init_db_metrics  # noqa: E402

_BOOTSTRAPPED = False


def bootstrap() -> UserStore:
    """Create the schema, hook DB metrics once, and hand back the shared store."""
    global _BOOTSTRAPPED
    if not _BOOTSTRAPPED:
        init_db(engine)
        init_db_metrics(engine)
        _BOOTSTRAPPED = True
        logger.info("main.py: user store ready on %s", cfg.DATABASE_URL)
    return get_user_store()


if __name__ == "__main__":
    store = bootstrap()
    logger.info("main.py: %d users in t_user", len(store.list_user_ids()))
