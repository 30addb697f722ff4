"""
Derived sleep statistics.

Pure projections from a sequence of sleep records to chart-ready series.
Every projection works on its own sorted copy of the input, so any one of
them can be called without the others. Wall-clock fields (hour of day,
weekday, date label) are read in the configured local timezone.

Rounding: one decimal, ROUND_HALF_UP on the exact binary value of the float
(same result as JavaScript's toFixed(1)), e.g. 8.25 -> 8.3.
Weekdays: Sunday=0 ... Saturday=6.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel

from sleep_tracker.utils.time_utils import hours_between, utc_to_local

WEEKDAY_LABELS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
DATE_LABEL_FORMAT = "%m/%d"


class TimeOfDaySeries(BaseModel):
    labels: List[str]
    sleep_times: List[float]
    wake_times: List[float]


class DurationSeries(BaseModel):
    labels: List[str]
    durations: List[float]


class QualitySeries(BaseModel):
    labels: List[str]
    qualities: List[Optional[int]]


class WeekdayAverages(BaseModel):
    labels: List[str]
    counts: List[int]
    avg_durations: List[float]
    avg_qualities: List[float]


class SleepRangeSeries(BaseModel):
    labels: List[str]
    ranges: List[Tuple[float, float]]


class SleepStatistics(BaseModel):
    time_of_day: TimeOfDaySeries
    durations: DurationSeries
    qualities: QualitySeries
    weekdays: WeekdayAverages
    sleep_ranges: SleepRangeSeries


def round_half_up(value: float, places: int = 1) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def hour_of_day(moment) -> float:
    """Fractional local hour, seconds ignored: 23:30:59 -> 23.5"""
    local = utc_to_local(moment)
    return local.hour + local.minute / 60


def weekday_index(moment) -> int:
    """Sunday=0 ... Saturday=6 (Python's weekday() is Monday=0)"""
    return (utc_to_local(moment).weekday() + 1) % 7


def date_label(moment) -> str:
    return utc_to_local(moment).strftime(DATE_LABEL_FORMAT)


def sorted_by_sleep_time(records: Sequence) -> list:
    """Stable ascending sort on a copy; the input is left untouched."""
    return sorted(records, key=lambda record: record.sleep_time)


def time_of_day_series(records: Sequence) -> TimeOfDaySeries:
    ordered = sorted_by_sleep_time(records)
    return TimeOfDaySeries(
        labels=[date_label(r.sleep_time) for r in ordered],
        sleep_times=[hour_of_day(r.sleep_time) for r in ordered],
        wake_times=[hour_of_day(r.wake_time) for r in ordered],
    )


def duration_series(records: Sequence) -> DurationSeries:
    # Computed from the timestamps, not the stored duration column
    ordered = sorted_by_sleep_time(records)
    return DurationSeries(
        labels=[date_label(r.sleep_time) for r in ordered],
        durations=[round_half_up(hours_between(r.sleep_time, r.wake_time)) for r in ordered],
    )


def quality_series(records: Sequence) -> QualitySeries:
    ordered = sorted_by_sleep_time(records)
    return QualitySeries(
        labels=[date_label(r.sleep_time) for r in ordered],
        qualities=[r.quality for r in ordered],
    )


def weekday_averages(records: Sequence) -> WeekdayAverages:
    """
    Per-weekday average duration and quality.

    Every record counts toward its bucket and both averages. A missing quality
    score adds 0 to the quality sum. Empty buckets report 0.0.
    """
    counts = [0] * 7
    duration_sums = [0.0] * 7
    quality_sums = [0.0] * 7

    for record in records:
        day = weekday_index(record.sleep_time)
        counts[day] += 1
        duration_sums[day] += hours_between(record.sleep_time, record.wake_time)
        quality_sums[day] += record.quality or 0

    return WeekdayAverages(
        labels=list(WEEKDAY_LABELS),
        counts=counts,
        avg_durations=[
            round_half_up(duration_sums[d] / counts[d]) if counts[d] else 0.0
            for d in range(7)
        ],
        avg_qualities=[
            round_half_up(quality_sums[d] / counts[d]) if counts[d] else 0.0
            for d in range(7)
        ],
    )


def sleep_range_series(records: Sequence) -> SleepRangeSeries:
    ordered = sorted_by_sleep_time(records)
    return SleepRangeSeries(
        labels=[date_label(r.sleep_time) for r in ordered],
        ranges=[(hour_of_day(r.sleep_time), hour_of_day(r.wake_time)) for r in ordered],
    )


def compute_statistics(records: Sequence) -> SleepStatistics:
    return SleepStatistics(
        time_of_day=time_of_day_series(records),
        durations=duration_series(records),
        qualities=quality_series(records),
        weekdays=weekday_averages(records),
        sleep_ranges=sleep_range_series(records),
    )
