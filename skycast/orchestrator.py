"""Client-side search controller.

Owns a single ``SearchState`` and drives the two HTTP routes: debounced
``/geocoding`` lookups while the user types and ``/forecast`` lookups on
submit or when a suggestion is picked. Everything runs on one asyncio loop.
"""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Any, Callable, List, Optional

import httpx
from pydantic import ValidationError

from skycast.aggregator import summarize_forecast
from skycast.errors import EmptyQuery, SearchFailed, SkycastError
from skycast.models import ForecastPayload, ForecastView, GeoCandidate
from skycast.services.gateways import MIN_QUERY_LENGTH

logger = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 0.3
GENERIC_FORECAST_ERROR = "Failed to fetch weather data"
GENERIC_ERROR = "Something went wrong"


def _error_message(payload: Any) -> Optional[str]:
    if isinstance(payload, dict):
        for key in ("error", "message"):
            if isinstance(payload.get(key), str):
                return payload[key]
    return None


def _coerce_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def normalize_candidates(items: Any) -> List[GeoCandidate]:
    """Keep only candidates with a name, a country and usable coordinates."""
    if not isinstance(items, list):
        return []
    candidates = []
    for item in items:
        if not isinstance(item, dict):
            continue
        name, country = item.get("name"), item.get("country")
        lat, lon = _coerce_number(item.get("lat")), _coerce_number(item.get("lon"))
        if not (isinstance(name, str) and name and isinstance(country, str) and country):
            continue
        if lat is None or lon is None:
            continue
        state = item.get("state") if isinstance(item.get("state"), str) else None
        candidates.append(GeoCandidate(name=name, country=country, lat=lat, lon=lon, state=state))
    return candidates


class WeatherApi:
    """Async client for the skycast HTTP routes."""

    def __init__(self, base_url: str = "", client: Optional[httpx.AsyncClient] = None, timeout_seconds: float = 10.0):
        # Only a client built here is closed by aclose(); an injected one belongs to the caller.
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout_seconds)

    async def suggestions(self, text: str) -> List[GeoCandidate]:
        r = await self.client.get("/geocoding", params={"city": text})
        payload = self._json(r)
        if r.is_error:
            raise SearchFailed(_error_message(payload) or "Geocoding suggestion failed", r.status_code)
        return normalize_candidates(payload)

    async def forecast(self, city: Optional[str] = None, candidate: Optional[GeoCandidate] = None) -> dict:
        if candidate is not None:
            params = {"lat": candidate.lat, "lon": candidate.lon}
        else:
            params = {"city": city}
        r = await self.client.get("/forecast", params=params)
        payload = self._json(r)
        if r.is_error:
            raise SearchFailed(_error_message(payload) or GENERIC_FORECAST_ERROR, r.status_code)
        try:
            ForecastPayload.model_validate(payload)
        except ValidationError:
            raise SearchFailed("Invalid forecast response from API", r.status_code)
        return payload

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    @staticmethod
    def _json(r: httpx.Response) -> Any:
        try:
            return r.json()
        except ValueError:
            if r.is_error:
                return None
            raise SearchFailed(GENERIC_ERROR, r.status_code)


class Debouncer:
    """Owns at most one pending timer; scheduling replaces it."""

    def __init__(self, delay_seconds: float):
        self.delay = delay_seconds
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, callback: Callable[..., None], *args: Any) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire, callback, args)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, callback: Callable[..., None], args: tuple) -> None:
        self._handle = None
        callback(*args)


@dataclass
class SearchState:
    query_text: str = ""
    forecast: Optional[ForecastView] = None
    suggestions: List[GeoCandidate] = field(default_factory=list)
    is_loading: bool = False
    error_message: Optional[str] = None


class SearchOrchestrator:
    def __init__(self, api: WeatherApi, debounce_seconds: float = DEBOUNCE_SECONDS, tz: Optional[tzinfo] = None):
        self.api = api
        # None: the viewer's local zone, resolved per timestamp by the aggregator.
        self.tz = tz
        self.state = SearchState()
        self._debouncer = Debouncer(debounce_seconds)
        self._suggestion_seq = 0
        self._tasks: set = set()
        self._listeners: List[Callable[[SearchState], None]] = []
        self._closed = False

    def on_change(self, listener: Callable[[SearchState], None]) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in self._listeners:
            listener(self.state)

    # -- suggestion cycle --------------------------------------------------

    def set_query(self, text: str) -> None:
        """Record a keystroke and re-arm the suggestion timer."""
        self.state.query_text = text
        self._notify()
        self._debouncer.schedule(self._start_suggestions, text)

    def _start_suggestions(self, text: str) -> None:
        self._suggestion_seq += 1
        task = asyncio.get_running_loop().create_task(self.refresh_suggestions(text, self._suggestion_seq))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def refresh_suggestions(self, text: str, seq: Optional[int] = None) -> None:
        suggestions: List[GeoCandidate] = []
        if len(text) >= MIN_QUERY_LENGTH:
            try:
                suggestions = await self.api.suggestions(text)
            except (SearchFailed, httpx.HTTPError) as exc:
                logger.warning("suggestion fetch for %r failed: %s", text, exc)

        if self._closed:
            return
        # A newer fetch was issued while this one was in flight.
        if seq is not None and seq != self._suggestion_seq:
            logger.debug("dropping stale suggestions for %r", text)
            return
        self.state.suggestions = suggestions
        self._notify()

    async def drain(self) -> None:
        """Wait for in-flight suggestion fetches."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks))

    # -- submit cycle ------------------------------------------------------

    async def submit(self) -> SearchState:
        """Search the current free text."""
        city = self.state.query_text.strip()
        if not city:
            self._debouncer.cancel()
            self._fail(EmptyQuery().message)
            return self.state
        return await self._search(city=city)

    async def pick_suggestion(self, candidate: GeoCandidate) -> SearchState:
        """Search a picked suggestion by its coordinates, skipping geocoding."""
        self.state.query_text = candidate.display_name
        return await self._search(candidate=candidate)

    async def _search(self, city: Optional[str] = None, candidate: Optional[GeoCandidate] = None) -> SearchState:
        self._debouncer.cancel()
        self.state.error_message = None
        self.state.suggestions = []
        self.state.is_loading = True
        self._notify()
        try:
            payload = await self.api.forecast(city=city, candidate=candidate)
            view = summarize_forecast(payload, self.tz)
        except SkycastError as exc:
            self._fail(exc.message)
        except httpx.HTTPError as exc:
            self._fail(str(exc) or GENERIC_ERROR)
        except Exception as exc:
            logger.exception("forecast search failed")
            self._fail(str(exc) or GENERIC_ERROR)
        else:
            if not self._closed:
                self.state.forecast = view
                self.state.error_message = None
                result = view.result
                if result.location_name and result.country:
                    self.state.query_text = f"{result.location_name}, {result.country}"
        finally:
            self.state.is_loading = False
            if not self._closed:
                self._notify()
        return self.state

    def _fail(self, message: str) -> None:
        if self._closed:
            return
        self.state.error_message = message
        self.state.forecast = None
        self._notify()

    def close(self) -> None:
        """Tear down: cancel the pending timer and ignore late results."""
        self._closed = True
        self._debouncer.cancel()

    async def aclose(self) -> None:
        """Tear down and release the HTTP client the API wrapper created, if any."""
        self.close()
        await self.api.aclose()
