"""
Shared sample Provider payloads for the skycast test suite.
"""
import time

import pytest

# 2024-01-01 00:00:00 UTC (a Monday)
DAY_ONE = 1704067200


def forecast_item(dt, temp_min, temp_max, icon, description="clear sky"):
    return {
        "dt": dt,
        "main": {"temp": (temp_min + temp_max) / 2, "temp_min": temp_min, "temp_max": temp_max},
        "weather": [{"id": 800, "main": "Clear", "description": description, "icon": icon}],
    }


@pytest.fixture()
def forecast_payload():
    """Two UTC days of 3-hourly samples, icon named after the sample's hour."""
    items = []
    for i in range(16):
        hour = (i * 3) % 24
        items.append(forecast_item(DAY_ONE + i * 3 * 3600, 5.0 + i, 10.0 + i, f"{hour:02d}d", f"sky at {hour}"))
    return {
        "cod": "200",
        "message": 0,
        "cnt": len(items),
        "list": items,
        "city": {
            "id": 2643743,
            "name": "London",
            "country": "GB",
            "timezone": 0,
            "sunrise": DAY_ONE + 8 * 3600,
            "sunset": DAY_ONE + 16 * 3600,
        },
    }


@pytest.fixture()
def geo_results():
    return [
        {"name": "London", "country": "GB", "lat": 51.5074, "lon": -0.1278, "state": "England"},
        {"name": "London", "country": "CA", "lat": 42.9834, "lon": -81.233, "state": "Ontario"},
        {"name": "London", "country": "US", "lat": 37.129, "lon": -84.0833, "state": "Kentucky"},
    ]


@pytest.fixture()
def berlin_local_time(monkeypatch):
    """Run with the process local zone set to Central European time (DST-aware)."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    # POSIX rule string, so no tz database is needed: CET/CEST, last Sunday of March/October.
    monkeypatch.setenv("TZ", "CET-1CEST,M3.5.0,M10.5.0/3")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()
