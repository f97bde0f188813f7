"""
Interval and paging parameters for history/candle requests.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from coincap.errors import InvalidInterval, InvalidTimeSpan, IntervalTooCoarse
from coincap.models import to_ms

MAX_LIMIT = 2000


class Interval(Enum):
    """Point-in-time intervals for historical market data."""
    HOUR = 0
    MINUTE = 1
    FIVE_MINUTES = 2
    FIFTEEN_MINUTES = 3
    THIRTY_MINUTES = 4
    TWO_HOURS = 5
    SIX_HOURS = 6
    TWELVE_HOURS = 7
    DAY = 8

    # Candles only
    FOUR_HOURS = 9
    EIGHT_HOURS = 10
    WEEK = 11

    @property
    def code(self) -> str:
        return _INTERVALS[self][0]

    @property
    def duration(self) -> timedelta:
        return _INTERVALS[self][1]

    @property
    def extended(self) -> bool:
        return self.value >= Interval.FOUR_HOURS.value


_INTERVALS: Dict[Interval, Tuple[str, timedelta]] = {
    Interval.HOUR: ("h1", timedelta(hours=1)),
    Interval.MINUTE: ("m1", timedelta(minutes=1)),
    Interval.FIVE_MINUTES: ("m5", timedelta(minutes=5)),
    Interval.FIFTEEN_MINUTES: ("m15", timedelta(minutes=15)),
    Interval.THIRTY_MINUTES: ("m30", timedelta(minutes=30)),
    Interval.TWO_HOURS: ("h2", timedelta(hours=2)),
    Interval.SIX_HOURS: ("h6", timedelta(hours=6)),
    Interval.TWELVE_HOURS: ("h12", timedelta(hours=12)),
    Interval.DAY: ("d1", timedelta(days=1)),
    Interval.FOUR_HOURS: ("h4", timedelta(hours=4)),
    Interval.EIGHT_HOURS: ("h8", timedelta(hours=8)),
    Interval.WEEK: ("w1", timedelta(weeks=1)),
}


@dataclass
class IntervalParams:
    """Interval plus optional time span. Leave both bounds unset for no span."""
    interval: Union[Interval, int] = Interval.HOUR
    start: Optional[datetime] = None
    end: Optional[datetime] = None


@dataclass
class TrimParams:
    limit: int = 0          # maximum number of results, 0 = API default
    offset: int = 0         # skip the first N entries

    def to_query(self) -> Dict[str, str]:
        query = {}
        if self.limit:
            query["limit"] = str(min(self.limit, MAX_LIMIT))
        query["offset"] = str(self.offset)
        return query


def resolve_interval(interval: Union[Interval, int], allow_extended: bool) -> Interval:
    try:
        resolved = Interval(interval)
    except ValueError:
        raise InvalidInterval(f"invalid interval {interval!r}: use Interval.HOUR, Interval.MINUTE etc") from None
    if resolved.extended and not allow_extended:
        raise InvalidInterval(f"interval {resolved.code} is only available for candles")
    return resolved


def validate_interval(
    interval: Union[Interval, int],
    start: Optional[datetime],
    end: Optional[datetime],
    allow_extended: bool,
    now: Optional[datetime] = None,
) -> Optional[Tuple[int, int]]:
    """
    Validate an interval request.
    Returns None when no span is set, else (start_ms, end_ms).
    """
    resolved = resolve_interval(interval, allow_extended)

    if start is None and end is None:
        return None
    if start is None or end is None:
        raise InvalidTimeSpan("both start and end must be set")

    start_ms, end_ms = to_ms(start), to_ms(end)
    now_ms = to_ms(now) if now is not None else to_ms(datetime.now().astimezone())

    if end_ms < start_ms:
        raise InvalidTimeSpan("end is before start")
    if end_ms > now_ms:
        raise InvalidTimeSpan("end is in the future")
    if timedelta(milliseconds=end_ms - start_ms) < resolved.duration:
        raise IntervalTooCoarse(f"interval {resolved.code} is longer than the time span")

    return start_ms, end_ms


def interval_query(params: Optional[IntervalParams], allow_extended: bool) -> Dict[str, str]:
    """Build interval/start/end query parameters."""
    if params is None:
        return {"interval": Interval.HOUR.code}

    span = validate_interval(params.interval, params.start, params.end, allow_extended)
    query = {"interval": Interval(params.interval).code}
    if span is not None:
        query["start"], query["end"] = str(span[0]), str(span[1])
    return query
