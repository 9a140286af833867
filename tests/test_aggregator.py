"""
Tests for the daily aggregation of 3-hourly forecast samples.
"""
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from skycast.aggregator import aggregate_daily, day_label, format_clock, observations_from_payload, summarize_forecast
from skycast.models import Observation

UTC = timezone.utc


def _obs(when, temp_min=10.0, temp_max=20.0, icon="01d", description="clear sky"):
    return Observation(
        timestamp_seconds=int(when.timestamp()),
        temp_min=temp_min,
        temp_max=temp_max,
        weather_icon=icon,
        weather_description=description,
    )


def _at(day, hour):
    return datetime(2024, 1, day, hour, tzinfo=UTC)


# ---------------------------------------------------------------------------
# Core rules
# ---------------------------------------------------------------------------

def test_empty_input_yields_no_days():
    assert aggregate_daily([], UTC) == []


def test_aggregation_is_deterministic(forecast_payload):
    observations = observations_from_payload(forecast_payload)
    assert aggregate_daily(observations, UTC) == aggregate_daily(observations, UTC)


def test_min_max_span_every_sample_of_the_day():
    days = aggregate_daily(
        [
            _obs(_at(1, 9), temp_min=10, temp_max=20),
            _obs(_at(1, 12), temp_min=5, temp_max=25),
            _obs(_at(1, 15), temp_min=8, temp_max=18),
        ],
        UTC,
    )
    assert len(days) == 1
    assert days[0].min_temp == 5
    assert days[0].max_temp == 25


def test_single_sample_day_has_equal_bounds_from_that_sample():
    days = aggregate_daily([_obs(_at(1, 12), temp_min=7, temp_max=7)], UTC)
    assert days[0].min_temp == days[0].max_temp == 7


def test_midday_sample_is_representative():
    days = aggregate_daily(
        [
            _obs(_at(1, 6), icon="morning"),
            _obs(_at(1, 12), icon="noon", description="few clouds"),
            _obs(_at(1, 18), icon="evening"),
        ],
        UTC,
    )
    assert days[0].representative_icon == "noon"
    assert days[0].representative_description == "few clouds"


def test_first_sample_in_window_wins():
    days = aggregate_daily([_obs(_at(1, 10), icon="ten"), _obs(_at(1, 13), icon="thirteen")], UTC)
    assert days[0].representative_icon == "ten"


def test_window_includes_14_and_excludes_15():
    days = aggregate_daily(
        [
            _obs(_at(1, 9), icon="first"),
            _obs(_at(1, 15), icon="fifteen"),
            _obs(_at(2, 14), icon="fourteen"),
        ],
        UTC,
    )
    assert days[0].representative_icon == "first"
    assert days[1].representative_icon == "fourteen"


def test_day_without_midday_falls_back_to_first_sample_of_whole_list():
    days = aggregate_daily(
        [
            _obs(_at(1, 9), icon="first", description="mist"),
            _obs(_at(1, 12), icon="noon"),
            _obs(_at(2, 3), icon="night"),
            _obs(_at(2, 21), icon="late"),
        ],
        UTC,
    )
    assert days[1].representative_icon == "first"
    assert days[1].representative_description == "mist"


def test_truncates_to_first_five_days_in_input_order():
    start = _at(1, 12)
    observations = [_obs(start + timedelta(days=i)) for i in range(8)]
    days = aggregate_daily(observations, UTC)
    assert [d.calendar_date for d in days] == [date(2024, 1, d) for d in range(1, 6)]


def test_days_keep_first_seen_order():
    days = aggregate_daily([_obs(_at(3, 12)), _obs(_at(1, 12)), _obs(_at(3, 15))], UTC)
    assert [d.calendar_date for d in days] == [date(2024, 1, 3), date(2024, 1, 1)]


def test_timezone_moves_sample_to_next_day():
    plus_two = timezone(timedelta(hours=2))
    observations = [_obs(_at(1, 21), icon="a"), _obs(_at(1, 23), icon="b")]

    assert len(aggregate_daily(observations, UTC)) == 1
    days = aggregate_daily(observations, plus_two)
    assert [d.calendar_date for d in days] == [date(2024, 1, 1), date(2024, 1, 2)]


def test_day_label_is_short_english_weekday():
    assert day_label(date(2024, 1, 1)) == "Mon"
    assert day_label(date(2024, 1, 7)) == "Sun"


# ---------------------------------------------------------------------------
# View model
# ---------------------------------------------------------------------------

def test_summarize_forecast_builds_today_and_upcoming(forecast_payload):
    view = summarize_forecast(forecast_payload, UTC)

    assert view.result.location_name == "London"
    assert view.result.country == "GB"
    assert len(view.result.observations) == 16
    assert [d.day_label for d in view.days] == ["Mon", "Tue"]
    assert view.today.calendar_date == date(2024, 1, 1)
    assert view.today.min_temp == 5.0
    assert view.today.max_temp == 17.0
    assert view.today.representative_icon == "12d"
    assert len(view.upcoming) == 1
    assert view.sunrise_time == "08:00 AM"
    assert view.sunset_time == "04:00 PM"


def test_summarize_empty_list(forecast_payload):
    forecast_payload["list"] = []
    view = summarize_forecast(forecast_payload, UTC)
    assert view.days == []
    assert view.today is None
    assert view.upcoming == []


def test_clock_marker_does_not_depend_on_locale():
    assert format_clock(int(_at(1, 0).timestamp()) + 30 * 60, UTC) == "12:30 AM"
    assert format_clock(int(_at(1, 12).timestamp()), UTC) == "12:00 PM"
    assert format_clock(int(_at(1, 23).timestamp()) + 59 * 60, UTC) == "11:59 PM"


# ---------------------------------------------------------------------------
# Daylight saving transitions (Europe leaves CEST on 2026-10-25)
# ---------------------------------------------------------------------------

def _utc(month, day, hour):
    return datetime(2026, month, day, hour, tzinfo=UTC)


DST_SAMPLES = [
    _obs(_utc(10, 24, 21), icon="sat-late"),  # 23:00 CEST, Oct 24
    _obs(_utc(10, 26, 13), icon="mon-14"),  # 14:00 CET, Oct 26
    _obs(_utc(10, 26, 21), icon="mon-22"),  # 22:00 CET, Oct 26
    _obs(_utc(10, 26, 22), icon="mon-23"),  # 23:00 CET, Oct 26
]


def test_named_zone_buckets_across_dst_change():
    days = aggregate_daily(DST_SAMPLES, ZoneInfo("Europe/Berlin"))

    assert [d.calendar_date for d in days] == [date(2026, 10, 24), date(2026, 10, 26)]
    assert days[1].representative_icon == "mon-14"


def test_fixed_summer_offset_would_split_the_day():
    # The pre-transition offset pushes 23:00 CET into the next day and 14:00 out of the window.
    days = aggregate_daily(DST_SAMPLES, timezone(timedelta(hours=2)))
    assert [d.calendar_date for d in days] == [date(2026, 10, 24), date(2026, 10, 26), date(2026, 10, 27)]
    assert days[1].representative_icon == "sat-late"


def test_system_local_zone_resolved_per_timestamp(berlin_local_time):
    days = aggregate_daily(DST_SAMPLES)

    assert [d.calendar_date for d in days] == [date(2026, 10, 24), date(2026, 10, 26)]
    assert days[1].representative_icon == "mon-14"
    assert format_clock(int(_utc(10, 26, 6).timestamp())) == "07:00 AM"
