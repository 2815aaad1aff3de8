from datetime import datetime, timedelta, timezone

from siteaudit.utils.datetime_utils import elapsed_ms, to_utc_naive


def test_none_returns_none():
    assert to_utc_naive(None) is None


def test_naive_datetime_returns_same():
    dt = datetime(2020, 1, 1, 12, 0, 0)
    assert to_utc_naive(dt) == dt


def test_aware_datetime_converted_to_utc_naive():
    dt = datetime(2020, 1, 1, 12, 0, 0, tzinfo=timezone(timedelta(hours=2)))
    # 12:00+02:00 -> 10:00 UTC
    assert to_utc_naive(dt) == datetime(2020, 1, 1, 10, 0, 0)


def test_iso_string_without_tz_parsed_as_naive():
    assert to_utc_naive("2020-01-01T12:00:00") == datetime(2020, 1, 1, 12, 0, 0)


def test_iso_string_with_tz_converted_to_utc_naive():
    assert to_utc_naive("2020-01-01T12:00:00+02:00") == datetime(2020, 1, 1, 10, 0, 0)


def test_invalid_string_returns_none():
    assert to_utc_naive("not-a-date") is None


def test_elapsed_ms_mixes_aware_and_naive():
    start = datetime(2020, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    end = datetime(2020, 1, 1, 12, 0, 1, 500000)
    assert elapsed_ms(start, end) == 1500


def test_elapsed_ms_without_start():
    assert elapsed_ms(None, datetime(2020, 1, 1)) is None
