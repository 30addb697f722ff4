"""
Table initialization (auto-sync only, no migrations).

create_all is idempotent: existing tables are left untouched, missing ones
are created.
"""
from sleep_tracker.models.base import Base, get_engine
from sleep_tracker.utils.logging_config import get_logger

logger = get_logger(__name__)


def initialize_sleep_tables(engine):
    """
    Tables (1):
    - sleep_records
    """
    logger.info("Initializing sleep tables...")

    # Import registers the model with Base.metadata
    from sleep_tracker.models.sleep_record import SleepRecord

    Base.metadata.create_all(engine, tables=[SleepRecord.__table__], checkfirst=True)
    logger.info("✅ Sleep tables initialized (1 table)")


def initialize_all_tables(engine=None):
    engine = engine or get_engine()
    initialize_sleep_tables(engine)
