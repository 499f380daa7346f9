from datetime import datetime, timedelta, timezone

from hypothesis import given, strategies as st

from hcx_toolkit.timeutils import format_date, format_hcx_timestamp, get_ist_timestamp


def test_ist_timestamp_now_has_offset():
    assert get_ist_timestamp().endswith("+05:30")


fixed_offsets = st.integers(min_value=-720, max_value=840).map(lambda minutes: timezone(timedelta(minutes=minutes)))


@given(st.datetimes(min_value=datetime(1971, 1, 1), max_value=datetime(2200, 1, 1), timezones=fixed_offsets))
def test_ist_timestamp_always_ends_in_ist_offset(moment):
    value = get_ist_timestamp(moment)
    assert value.endswith("+05:30")
    assert len(value) == len("2024-01-01T00:00:00+05:30")


def test_ist_timestamp_converts_from_utc():
    moment = datetime(2024, 3, 31, 20, 0, tzinfo=timezone.utc)
    assert get_ist_timestamp(moment) == "2024-04-01T01:30:00+05:30"


def test_hcx_timestamp_is_offset_aware():
    moment = datetime(2024, 6, 1, 9, 15, 30, 123456, tzinfo=timezone(timedelta(hours=5, minutes=30)))
    assert format_hcx_timestamp(moment) == "2024-06-01T09:15:30+05:30"


def test_format_date():
    assert format_date(None) == "N/A"
    assert format_date("not a date") == "N/A"
    assert format_date("2026-10-18T03:22:00Z") == "18 Oct 2026, 08:52 am"
    assert format_date(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)) == "01 Jan 2024, 05:30 pm"
