import logging

from database.db import Base, engine

logger = logging.getLogger(__name__)


def create_tables(bind=None) -> None:
    """Creates every gradebook table that does not exist yet."""
    # model modules register themselves on Base.metadata when imported
    from models import (  # noqa: F401
        attendance, categories, class_settings, classes, grades,
        period_grades, periods, students, tasks,
    )

    Base.metadata.create_all(bind=bind or engine)
    logger.info("database tables ready (%d tables)", len(Base.metadata.tables))
