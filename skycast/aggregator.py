"""Collapse 3-hourly forecast samples into calendar-day summaries.

Everything here is pure: no I/O, and the same input always yields the same
output. One timezone decides both the calendar date of a sample and its
local hour, so day buckets and the midday window never disagree. ``tz=None``
means the system's local zone, resolved per timestamp so DST changes inside
the forecast window land on the right day.
"""

from datetime import date, datetime, tzinfo
from typing import Dict, List, Optional

from skycast.models import DailySummary, ForecastPayload, ForecastResult, ForecastView, Observation

MAX_DAYS = 5
MIDDAY_START_HOUR = 10
MIDDAY_END_HOUR = 14

# Fixed English labels so output does not depend on the process locale.
_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def local_datetime(timestamp_seconds: int, tz: Optional[tzinfo] = None) -> datetime:
    if tz is None:
        return datetime.fromtimestamp(timestamp_seconds).astimezone()
    return datetime.fromtimestamp(timestamp_seconds, tz)


def day_label(day: date) -> str:
    return _WEEKDAYS[day.weekday()]


class _DayBucket:
    def __init__(self, day: date, first: Observation):
        self.day = day
        self.min_temp = first.temp_min
        self.max_temp = first.temp_max
        self.midday: Optional[Observation] = None

    def add(self, obs: Observation, hour: int) -> None:
        self.min_temp = min(self.min_temp, obs.temp_min)
        self.max_temp = max(self.max_temp, obs.temp_max)
        if self.midday is None and MIDDAY_START_HOUR <= hour <= MIDDAY_END_HOUR:
            self.midday = obs


def aggregate_daily(observations: List[Observation], tz: Optional[tzinfo] = None) -> List[DailySummary]:
    """Summarize chronologically ordered observations into at most five days.

    Days come out in the order they are first seen. A day without any sample
    in the 10:00-14:00 window borrows the icon and description of the first
    observation of the whole list, not of that day.
    """
    if not observations:
        return []

    buckets: Dict[date, _DayBucket] = {}
    for obs in observations:
        when = local_datetime(obs.timestamp_seconds, tz)
        bucket = buckets.get(when.date())
        if bucket is None:
            bucket = buckets[when.date()] = _DayBucket(when.date(), obs)
        bucket.add(obs, when.hour)

    fallback = observations[0]
    summaries = []
    for bucket in list(buckets.values())[:MAX_DAYS]:
        representative = bucket.midday or fallback
        summaries.append(
            DailySummary(
                calendar_date=bucket.day,
                day_label=day_label(bucket.day),
                min_temp=bucket.min_temp,
                max_temp=bucket.max_temp,
                representative_icon=representative.weather_icon,
                representative_description=representative.weather_description,
            )
        )
    return summaries


def observations_from_payload(payload: dict) -> List[Observation]:
    return ForecastResult.from_payload(ForecastPayload.model_validate(payload)).observations


def format_clock(timestamp_seconds: int, tz: Optional[tzinfo] = None) -> str:
    when = local_datetime(timestamp_seconds, tz)
    marker = "AM" if when.hour < 12 else "PM"
    return f"{when.hour % 12 or 12:02d}:{when.minute:02d} {marker}"


def summarize_forecast(payload: dict, tz: Optional[tzinfo] = None) -> ForecastView:
    """Build the view model for a raw Provider forecast payload."""
    result = ForecastResult.from_payload(ForecastPayload.model_validate(payload))
    return ForecastView(
        result=result,
        days=aggregate_daily(result.observations, tz),
        sunrise_time=format_clock(result.sunrise_timestamp, tz),
        sunset_time=format_clock(result.sunset_timestamp, tz),
    )
