"""Server-side gateways between the HTTP surface and the Provider.

Both gateways translate every failure into a GatewayError subclass, so the
HTTP layer only ever has to render ``{"error", "details"}`` bodies.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from pydantic import ValidationError

from skycast.errors import (
    GatewayError,
    InternalError,
    InvalidRequest,
    LocationNotFound,
    UpstreamError,
    UpstreamShapeError,
)
from skycast.models import ForecastPayload, LocationQuery, normalize_text
from skycast.services.openweather import OpenWeatherClient

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 3
MAX_SUGGESTIONS = 10


@dataclass
class GatewayReply:
    payload: Any
    cache_control: Optional[str] = None


def _upstream_status(status_code: int) -> int:
    # A failed exchange that the Provider still answered with 2xx/3xx is ours to report.
    return status_code if status_code >= 400 else 502


def _internal(exc: Exception) -> InternalError:
    return InternalError(str(exc) or "Unknown server error")


class ForecastGateway:
    def __init__(self, client: OpenWeatherClient, max_age_seconds: int = 600, stale_seconds: int = 60):
        self.client = client
        self.cache_control = f"s-maxage={max_age_seconds}, stale-while-revalidate={stale_seconds}"

    async def fetch(self, query: LocationQuery) -> GatewayReply:
        """Resolve the query to coordinates and return the Provider forecast unchanged."""
        try:
            lat, lon = await self.resolve(query)
            return await self.fetch_coordinates(lat, lon)
        except GatewayError:
            raise
        except Exception as exc:
            logger.exception("forecast lookup failed")
            raise _internal(exc) from exc

    async def resolve(self, query: LocationQuery) -> Tuple[float, float]:
        if query.has_coordinates:
            return query.lat, query.lon
        if not query.city:
            raise InvalidRequest("Please provide `city` or both `lat` and `lon` query params")

        reply = await self.client.direct_geocode(query.city, limit=1)
        if not reply.ok or not isinstance(reply.payload, list) or not reply.payload:
            logger.info("geocoding found no match for %r (status %s)", query.city, reply.status_code)
            raise LocationNotFound("City not found (geocoding failed)")

        match = reply.payload[0]
        if not isinstance(match, dict) or match.get("lat") is None or match.get("lon") is None:
            raise UpstreamShapeError("Geocoding result is missing coordinates", details=match)
        try:
            return float(match["lat"]), float(match["lon"])
        except (TypeError, ValueError):
            raise UpstreamShapeError("Geocoding result has invalid coordinates", details=match)

    async def fetch_coordinates(self, lat: float, lon: float) -> GatewayReply:
        reply = await self.client.get_forecast(lat, lon, units="metric")
        if not reply.ok:
            logger.warning("forecast provider returned %s for %s,%s", reply.status_code, lat, lon)
            raise UpstreamError(
                reply.message or "Forecast API returned an error",
                status_code=_upstream_status(reply.status_code),
                details=reply.payload,
            )

        try:
            ForecastPayload.model_validate(reply.payload)
        except ValidationError as exc:
            logger.warning("forecast provider payload failed validation: %s", exc.error_count())
            raise UpstreamShapeError(
                "Forecast API returned an unexpected payload",
                details=exc.errors(include_url=False, include_context=False, include_input=False),
            )
        return GatewayReply(payload=reply.payload, cache_control=self.cache_control)


class SuggestionGateway:
    def __init__(self, client: OpenWeatherClient, max_age_seconds: int = 3600):
        self.client = client
        self.cache_control = f"s-maxage={max_age_seconds}"

    async def suggest(self, text: Optional[str]) -> GatewayReply:
        """Ranked geocoding candidates for partial city text, Provider order preserved."""
        text = normalize_text(text)
        if len(text) < MIN_QUERY_LENGTH:
            return GatewayReply(payload=[])

        try:
            reply = await self.client.direct_geocode(text, limit=MAX_SUGGESTIONS)
        except Exception as exc:
            logger.exception("suggestion lookup failed")
            raise _internal(exc) from exc

        if reply.ok and isinstance(reply.payload, list):
            return GatewayReply(payload=reply.payload[:MAX_SUGGESTIONS], cache_control=self.cache_control)
        if isinstance(reply.payload, list) and not reply.payload:
            return GatewayReply(payload=[])

        logger.warning("geocoding provider returned %s for %r", reply.status_code, text)
        raise UpstreamError(
            reply.message or "Geocoding suggestion failed",
            status_code=_upstream_status(reply.status_code),
        )
