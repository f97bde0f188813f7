"""Tests for interval / time-span validation and paging parameters."""

from datetime import datetime, timedelta, timezone

import pytest

from coincap.errors import IntervalTooCoarse, InvalidInterval, InvalidTimeSpan
from coincap.intervals import (
    Interval,
    IntervalParams,
    TrimParams,
    interval_query,
    validate_interval,
)
from coincap.models import to_ms

NOW = datetime.now(timezone.utc)


class TestValidateInterval:

    def test_hour_span_is_valid(self):
        start, end = NOW - timedelta(hours=1), NOW
        assert validate_interval(Interval.HOUR, start, end, False) == (to_ms(start), to_ms(end))

    def test_no_span(self):
        assert validate_interval(Interval.MINUTE, None, None, False) is None

    def test_unknown_interval(self):
        with pytest.raises(InvalidInterval):
            validate_interval(16, None, None, True)

    def test_extended_interval_rejected_for_history(self):
        with pytest.raises(InvalidInterval):
            validate_interval(Interval.WEEK, NOW - timedelta(hours=1), NOW, False)

    @pytest.mark.parametrize("interval", [Interval.FOUR_HOURS, Interval.EIGHT_HOURS, Interval.WEEK])
    def test_extended_interval_allowed_for_candles(self, interval):
        assert validate_interval(interval, None, None, True) is None

    def test_interval_longer_than_span(self):
        with pytest.raises(IntervalTooCoarse):
            validate_interval(Interval.HOUR, NOW - timedelta(minutes=1), NOW, False)

    def test_only_start(self):
        with pytest.raises(InvalidTimeSpan):
            validate_interval(Interval.HOUR, NOW, None, False)

    def test_only_end(self):
        with pytest.raises(InvalidTimeSpan):
            validate_interval(Interval.HOUR, None, NOW, False)

    def test_start_after_end(self):
        with pytest.raises(InvalidTimeSpan):
            validate_interval(Interval.HOUR, NOW + timedelta(hours=1), NOW, False)

    def test_end_in_future(self):
        with pytest.raises(InvalidTimeSpan):
            validate_interval(Interval.HOUR, NOW + timedelta(hours=1), NOW + timedelta(hours=2), False)

    def test_explicit_now(self):
        now = datetime(2024, 1, 1, 12, tzinfo=timezone.utc)
        span = validate_interval(Interval.DAY, now - timedelta(days=2), now, False, now=now)
        assert span == (to_ms(now - timedelta(days=2)), to_ms(now))

    def test_errors_are_value_errors(self):
        with pytest.raises(ValueError):
            validate_interval(99, None, None, False)


class TestIntervalQuery:

    def test_default_is_hourly(self):
        assert interval_query(None, False) == {"interval": "h1"}

    def test_with_span(self):
        start, end = NOW - timedelta(days=1), NOW - timedelta(minutes=1)
        query = interval_query(IntervalParams(Interval.FIFTEEN_MINUTES, start, end), False)
        assert query == {"interval": "m15", "start": str(to_ms(start)), "end": str(to_ms(end))}

    def test_accepts_int_value(self):
        assert interval_query(IntervalParams(interval=8), False) == {"interval": "d1"}

    def test_codes(self):
        assert [i.code for i in Interval] == [
            "h1", "m1", "m5", "m15", "m30", "h2", "h6", "h12", "d1", "h4", "h8", "w1",
        ]
        assert Interval.WEEK.duration == timedelta(days=7)


class TestTrimParams:

    def test_limit_clamped(self):
        assert TrimParams(limit=5000, offset=10).to_query() == {"limit": "2000", "offset": "10"}

    def test_zero_limit_omitted(self):
        assert TrimParams().to_query() == {"offset": "0"}
