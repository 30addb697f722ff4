# sleep_repository.py
"""
Sleep Record Repository

All database operations for sleep records:
- Creating / updating records (duration recomputed on every write)
- Listing and fetching records
- Hard deletes
- Fetching the most recent nights for advice generation

Each operation opens its own session and closes it before returning, so one
repository instance can be shared by concurrent requests.
"""
from typing import List, Optional

from sqlalchemy import desc, func
from sqlalchemy.exc import SQLAlchemyError

from sleep_tracker.models.sleep_record import SleepRecord
from sleep_tracker.models.sleep_payloads import SleepRecordPayload
from sleep_tracker.utils.error_logging import log_critical_error
from sleep_tracker.utils.logging_config import get_logger

logger = get_logger(__name__)


class SleepStoreError(Exception):
    """Raised when the store rejects or fails an operation."""


class SleepRepository:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    # =========================================================================
    # Writes
    # =========================================================================

    def create(self, payload: SleepRecordPayload) -> SleepRecord:
        """
        Insert a new record. Duration is derived from the payload timestamps.

        Returns:
            The persisted record with id and audit timestamps populated
        """
        session = self.session_factory()
        try:
            record = SleepRecord().apply(
                sleep_time=payload.sleep_time,
                wake_time=payload.wake_time,
                quality=payload.quality,
                notes=payload.notes,
            )
            session.add(record)
            session.commit()

            logger.info(f"Recorded sleep record (ID: {record.id}): {record.duration:.2f}h")
            return record

        except SQLAlchemyError as e:
            session.rollback()
            log_critical_error(
                f"Failed to record sleep starting {payload.sleep_time}",
                exception=e,
                context="SleepRepository.create",
            )
            raise SleepStoreError("create failed") from e
        finally:
            session.close()

    def update(self, record_id: int, payload: SleepRecordPayload) -> Optional[SleepRecord]:
        """
        Replace all mutable fields of a record and recompute its duration.

        Returns:
            The updated record, or None if no record has this id
        """
        session = self.session_factory()
        try:
            record = session.get(SleepRecord, record_id)
            if record is None:
                return None

            record.apply(
                sleep_time=payload.sleep_time,
                wake_time=payload.wake_time,
                quality=payload.quality,
                notes=payload.notes,
            )
            session.commit()

            logger.info(f"Updated sleep record (ID: {record_id}): {record.duration:.2f}h")
            return record

        except SQLAlchemyError as e:
            session.rollback()
            log_critical_error(
                f"Failed to update sleep record {record_id}",
                exception=e,
                context="SleepRepository.update",
            )
            raise SleepStoreError("update failed") from e
        finally:
            session.close()

    def delete(self, record_id: int) -> bool:
        """
        Hard delete.

        Returns:
            True if a row was removed, False if the id was unknown
        """
        session = self.session_factory()
        try:
            deleted = session.query(SleepRecord).filter(
                SleepRecord.id == record_id
            ).delete(synchronize_session=False)
            session.commit()

            if deleted:
                logger.info(f"Deleted sleep record (ID: {record_id})")
            return deleted > 0

        except SQLAlchemyError as e:
            session.rollback()
            log_critical_error(
                f"Failed to delete sleep record {record_id}",
                exception=e,
                context="SleepRepository.delete",
            )
            raise SleepStoreError("delete failed") from e
        finally:
            session.close()

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, record_id: int) -> Optional[SleepRecord]:
        session = self.session_factory()
        try:
            return session.get(SleepRecord, record_id)
        except SQLAlchemyError as e:
            log_critical_error(
                f"Failed to fetch sleep record {record_id}",
                exception=e,
                context="SleepRepository.get",
            )
            raise SleepStoreError("get failed") from e
        finally:
            session.close()

    def list_all(self) -> List[SleepRecord]:
        """All records, newest entry first (created_at desc, id desc on ties)."""
        session = self.session_factory()
        try:
            return session.query(SleepRecord).order_by(
                desc(SleepRecord.created_at), desc(SleepRecord.id)
            ).all()
        except SQLAlchemyError as e:
            log_critical_error(
                "Failed to list sleep records",
                exception=e,
                context="SleepRepository.list_all",
            )
            raise SleepStoreError("list failed") from e
        finally:
            session.close()

    def recent(self, limit: int = 30) -> List[SleepRecord]:
        """The `limit` most recent nights by bedtime, latest first."""
        session = self.session_factory()
        try:
            return session.query(SleepRecord).order_by(
                desc(SleepRecord.sleep_time), desc(SleepRecord.id)
            ).limit(limit).all()
        except SQLAlchemyError as e:
            log_critical_error(
                f"Failed to fetch the {limit} most recent sleep records",
                exception=e,
                context="SleepRepository.recent",
            )
            raise SleepStoreError("recent failed") from e
        finally:
            session.close()

    def count(self) -> int:
        session = self.session_factory()
        try:
            return session.query(func.count(SleepRecord.id)).scalar() or 0
        except SQLAlchemyError as e:
            log_critical_error(
                "Failed to count sleep records",
                exception=e,
                context="SleepRepository.count",
            )
            raise SleepStoreError("count failed") from e
        finally:
            session.close()
