"""
Models package exports
"""
from sleep_tracker.models.sleep_record import SleepRecord

__all__ = ['SleepRecord']
