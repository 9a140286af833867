import math
from datetime import date
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class LocationQuery(BaseModel):
    """A forecast request: free-text city, a coordinate pair, or both."""

    city: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None

    @classmethod
    def from_params(cls, city: Optional[str], lat: Optional[str], lon: Optional[str]) -> "LocationQuery":
        """Build a query from raw query-string values.

        Malformed or out-of-range coordinates are dropped, so the city text
        (if any) becomes the active form.
        """
        plat = _parse_coordinate(lat, 90.0)
        plon = _parse_coordinate(lon, 180.0)
        if plat is None or plon is None:
            plat = plon = None
        return cls(city=normalize_text(city) or None, lat=plat, lon=plon)

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None


def normalize_text(text: Optional[str]) -> str:
    """Trim and collapse whitespace; Provider queries and cache keys both use this form."""
    return " ".join((text or "").split())


def _parse_coordinate(raw: Optional[str], bound: float) -> Optional[float]:
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    if not math.isfinite(value) or abs(value) > bound:
        return None
    return value


class GeoCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    country: str
    lat: float
    lon: float
    state: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.state:
            return f"{self.name}, {self.state}, {self.country}"
        return f"{self.name}, {self.country}"


# Subset of the Provider's 5 day / 3 hour forecast that skycast consumes.
# Everything else in the payload passes through untouched.

class WeatherCondition(BaseModel):
    icon: str
    description: str


class ForecastMain(BaseModel):
    temp_min: float
    temp_max: float


class ForecastItem(BaseModel):
    dt: int
    main: ForecastMain
    weather: List[WeatherCondition] = Field(min_length=1)


class ForecastCity(BaseModel):
    name: str
    country: str = ""
    sunrise: int
    sunset: int


class ForecastPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    city: ForecastCity
    items: List[ForecastItem] = Field(alias="list")


class Observation(BaseModel):
    """One 3-hourly sample."""

    model_config = ConfigDict(frozen=True)

    timestamp_seconds: int
    temp_min: float
    temp_max: float
    weather_icon: str
    weather_description: str

    @classmethod
    def from_item(cls, item: ForecastItem) -> "Observation":
        condition = item.weather[0]
        return cls(
            timestamp_seconds=item.dt,
            temp_min=item.main.temp_min,
            temp_max=item.main.temp_max,
            weather_icon=condition.icon,
            weather_description=condition.description,
        )


class ForecastResult(BaseModel):
    location_name: str
    country: str
    sunrise_timestamp: int
    sunset_timestamp: int
    observations: List[Observation] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: ForecastPayload) -> "ForecastResult":
        return cls(
            location_name=payload.city.name,
            country=payload.city.country,
            sunrise_timestamp=payload.city.sunrise,
            sunset_timestamp=payload.city.sunset,
            observations=[Observation.from_item(item) for item in payload.items],
        )


class DailySummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    calendar_date: date
    day_label: str
    min_temp: float
    max_temp: float
    representative_icon: str
    representative_description: str


class ForecastView(BaseModel):
    """What the presentation layer renders for one successful search."""

    result: ForecastResult
    days: List[DailySummary] = Field(default_factory=list)
    sunrise_time: str
    sunset_time: str

    @property
    def today(self) -> Optional[DailySummary]:
        return self.days[0] if self.days else None

    @property
    def upcoming(self) -> List[DailySummary]:
        return self.days[1:]


class ErrorBody(BaseModel):
    error: str
    details: Any = None
