from datetime import datetime, timezone

import pytest

from sleep_tracker.models.sleep_payloads import SleepRecordPayload
from sleep_tracker.utils.time_utils import (
    ensure_utc,
    hours_between,
    parse_time_string,
    update_local_timezone,
)


def test_naive_input_uses_local_timezone():
    assert parse_time_string("2024-01-01T23:00") == datetime(2024, 1, 1, 23, 0, tzinfo=timezone.utc)

    update_local_timezone("Asia/Seoul")
    assert parse_time_string("2024-01-01T23:00") == datetime(2024, 1, 1, 14, 0, tzinfo=timezone.utc)


def test_z_suffix_and_24_00_are_accepted():
    assert parse_time_string("2024-01-01T23:00:00Z") == datetime(2024, 1, 1, 23, 0, tzinfo=timezone.utc)
    assert parse_time_string("2024-01-01T24:00") == datetime(2024, 1, 2, 0, 0, tzinfo=timezone.utc)


def test_invalid_string_raises_value_error():
    with pytest.raises(ValueError):
        parse_time_string("yesterday night")


def test_ensure_utc_attaches_utc_to_naive_values():
    assert ensure_utc(datetime(2024, 1, 1, 7, 0)).tzinfo == timezone.utc
    assert ensure_utc(None) is None


def test_hours_between_keeps_sign():
    start = datetime(2024, 1, 1, 23, 0, tzinfo=timezone.utc)
    end = datetime(2024, 1, 2, 6, 30, tzinfo=timezone.utc)
    assert hours_between(start, end) == 7.5
    assert hours_between(end, start) == -7.5


def test_payload_rejects_non_string_datetimes():
    with pytest.raises(ValueError):
        SleepRecordPayload.model_validate({"sleepTime": 12, "wakeTime": "2024-01-02T07:00"})
