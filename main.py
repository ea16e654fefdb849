"""
RosterPlan — Entry Point.

`python main.py` validates the activity catalog, prepares the SQLite schema,
promotes configured admins, and logs a summary. Exits with status 1 when the
catalog is misconfigured.
"""

import logging
import sys

from src.config import settings

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from src.core.catalog import load_catalog
from src.core.errors import ConfigError
from src.data.db import ProfileDB, ScheduleDB
from src.data.models import Role

logger = logging.getLogger("rosterplan")


def main() -> int:
    try:
        catalog = load_catalog(settings.CATALOG_PATH)
    except ConfigError as exc:
        logger.error("Catalog is misconfigured: %s", exc)
        return 1

    ScheduleDB()
    profiles = ProfileDB()

    for user_id in settings.ADMIN_USER_IDS:
        if not profiles.set_role(user_id, Role.ADMIN):
            logger.warning("ADMIN_USER_IDS: no profile %s to promote", user_id)

    logger.info("Roster database ready at %s", settings.DATABASE_PATH)
    for weekday in catalog.weekdays:
        logger.info("  %s: %s", weekday, ", ".join(
            f"{period.value} ({len(acts)})"
            for period, acts in catalog.periods_for_weekday(weekday).items()
        ))
    for info in catalog.categories:
        logger.info("  category %s: %s", info.key, info.label)
    logger.info("%d profiles registered", len(profiles.list_profiles()))
    return 0


if __name__ == "__main__":
    sys.exit(main())
