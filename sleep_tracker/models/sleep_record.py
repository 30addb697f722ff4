"""
SQLAlchemy model for manually entered sleep records.
"""
from sqlalchemy import Column, Integer, Float, DateTime, Text, Index
from sqlalchemy.types import TypeDecorator

from sleep_tracker.models.base import Base
from sleep_tracker.utils.time_utils import ensure_utc, hours_between, utc_now


class UTCDateTime(TypeDecorator):
    """
    Stores datetimes as UTC and always hands back aware UTC values.
    SQLite drops tzinfo on the way out, so it is re-attached here.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return ensure_utc(value)

    def process_result_value(self, value, dialect):
        return ensure_utc(value)


def compute_duration(sleep_time, wake_time):
    """Sleep duration in hours at full precision. Negative spans are kept as-is."""
    return hours_between(sleep_time, wake_time)


class SleepRecord(Base):
    """
    One night of sleep: bedtime, wake time and the derived duration in hours.
    """
    __tablename__ = "sleep_records"

    id = Column(Integer, primary_key=True)
    sleep_time = Column(UTCDateTime, nullable=False)
    wake_time = Column(UTCDateTime, nullable=False)
    duration = Column(Float, nullable=False)
    quality = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utc_now)
    updated_at = Column(UTCDateTime, nullable=False, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        Index("idx_sleep_records_sleep_time", "sleep_time"),
        Index("idx_sleep_records_created_at", "created_at"),
    )

    def apply(self, sleep_time, wake_time, quality=None, notes=None):
        """Replace every mutable field and recompute duration in the same step."""
        self.sleep_time = sleep_time
        self.wake_time = wake_time
        self.duration = compute_duration(sleep_time, wake_time)
        self.quality = quality
        self.notes = notes
        return self

    def to_dict(self):
        return {
            'id': self.id,
            'sleepTime': _isoformat(self.sleep_time),
            'wakeTime': _isoformat(self.wake_time),
            'duration': self.duration,
            'quality': self.quality,
            'notes': self.notes,
            'createdAt': _isoformat(self.created_at),
            'updatedAt': _isoformat(self.updated_at),
        }

    def __repr__(self):
        return (
            f"<SleepRecord(id={self.id}, sleep={self.sleep_time}, "
            f"wake={self.wake_time}, duration={self.duration}h)>"
        )


def _isoformat(value):
    value = ensure_utc(value)
    return value.isoformat() if value else None
