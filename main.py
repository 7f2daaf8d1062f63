"""
Scheduling Portal — Entry Point.

`python main.py` creates (or migrates) the database and seeds the built-in
accounts.
"""

import logging

from portal.config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from portal.adapters.store_factory import create_stores
from portal.data.seed import seed_default_users

logger = logging.getLogger(__name__)


def main() -> None:
    stores = create_stores()
    if settings.SEED_DEFAULT_USERS:
        seed_default_users(stores.users)
    logger.info("Portal database ready at %s", settings.DATABASE_PATH)


if __name__ == "__main__":
    main()
