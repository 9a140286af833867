from dataclasses import dataclass
from typing import Any, Optional

import httpx


@dataclass
class ProviderReply:
    status_code: int
    payload: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def message(self) -> Optional[str]:
        """The Provider's own error text, when its body carries one."""
        if isinstance(self.payload, dict) and isinstance(self.payload.get("message"), str):
            return self.payload["message"]
        return None


class OpenWeatherClient:
    """Thin async wrapper over the OpenWeather geocoding and forecast APIs.

    Non-success replies are returned, not raised: callers decide how to map
    the Provider's status and message. Bodies that are not JSON raise
    ValueError; transport failures raise httpx.HTTPError.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        geo_url: str = "https://api.openweathermap.org/geo/1.0",
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.geo_url = geo_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout_seconds
        self.transport = transport

    async def direct_geocode(self, query: str, limit: int) -> ProviderReply:
        url = f"{self.geo_url}/direct"
        params = {"q": query, "limit": limit, "appid": self.api_key}
        return await self._get(url, params)

    async def get_forecast(self, lat: float, lon: float, units: str = "metric") -> ProviderReply:
        # 5 day / 3 hour forecast
        url = f"{self.base_url}/forecast"
        params = {"lat": lat, "lon": lon, "units": units, "appid": self.api_key}
        return await self._get(url, params)

    async def _get(self, url: str, params: dict) -> ProviderReply:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            r = await client.get(url, params=params)
            return ProviderReply(status_code=r.status_code, payload=r.json())
