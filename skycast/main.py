import logging
from typing import Awaitable, Callable, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from skycast.config import Settings, settings
from skycast.errors import GatewayError, MissingCredential
from skycast.models import ErrorBody, LocationQuery, normalize_text
from skycast.services.cache import RedisCache, forecast_key, suggestions_key
from skycast.services.gateways import MIN_QUERY_LENGTH, ForecastGateway, GatewayReply, SuggestionGateway
from skycast.services.openweather import OpenWeatherClient

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)

cache: Optional[RedisCache] = RedisCache(settings.redis_url) if settings.redis_url else None


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    return JSONResponse(exc.to_body(), status_code=exc.status_code)


# ── Dependencies ─────────────────────────────────────────────────────────────

def get_settings() -> Settings:
    """Fresh settings per request, so the credential is read at request time."""
    return Settings()


def get_provider(cfg: Settings = Depends(get_settings)) -> OpenWeatherClient:
    if not cfg.openweather_api_key:
        raise MissingCredential()
    return OpenWeatherClient(
        cfg.openweather_base_url,
        cfg.openweather_api_key,
        cfg.openweather_geo_url,
        cfg.openweather_timeout_seconds,
    )


# ── Routes ───────────────────────────────────────────────────────────────────

@app.get("/health")
def health():
    return {"status": "ok", "service": settings.app_name}


@app.get("/")
def root():
    return JSONResponse({"service": settings.app_name, "docs": "/docs"})


@app.get("/forecast", responses={code: {"model": ErrorBody} for code in (400, 404, 500, 502)})
async def forecast(
    background: BackgroundTasks,
    city: Optional[str] = Query(None, description="City name, e.g. 'London'"),
    lat: Optional[str] = Query(None),
    lon: Optional[str] = Query(None),
    cfg: Settings = Depends(get_settings),
    provider: OpenWeatherClient = Depends(get_provider),
):
    query = LocationQuery.from_params(city, lat, lon)
    gateway = ForecastGateway(provider, cfg.forecast_max_age_seconds, cfg.forecast_stale_seconds)

    if cache is None or not (query.has_coordinates or query.city):
        return _respond(await gateway.fetch(query))

    return await _cached(
        background,
        key=forecast_key(query, cfg.cache_coord_round_decimals),
        max_age=cfg.forecast_max_age_seconds,
        stale=cfg.forecast_stale_seconds,
        cache_control=gateway.cache_control,
        load=lambda: gateway.fetch(query),
    )


@app.get("/geocoding", responses={code: {"model": ErrorBody} for code in (500, 502)})
async def geocoding(
    background: BackgroundTasks,
    city: Optional[str] = Query(None, description="Partial city name"),
    cfg: Settings = Depends(get_settings),
    provider: OpenWeatherClient = Depends(get_provider),
):
    gateway = SuggestionGateway(provider, cfg.suggestions_max_age_seconds)
    city = normalize_text(city)

    if cache is None or len(city) < MIN_QUERY_LENGTH:
        return _respond(await gateway.suggest(city))

    return await _cached(
        background,
        key=suggestions_key(city),
        max_age=cfg.suggestions_max_age_seconds,
        stale=0,
        cache_control=gateway.cache_control,
        load=lambda: gateway.suggest(city),
    )


# ── Shared helpers ───────────────────────────────────────────────────────────

def _respond(reply: GatewayReply, x_cache: Optional[str] = None) -> JSONResponse:
    headers = {}
    if reply.cache_control:
        headers["Cache-Control"] = reply.cache_control
    if x_cache:
        headers["X-Cache"] = x_cache
    return JSONResponse(reply.payload, status_code=200, headers=headers)


async def _cached(
    background: BackgroundTasks,
    *,
    key: str,
    max_age: int,
    stale: int,
    cache_control: str,
    load: Callable[[], Awaitable[GatewayReply]],
) -> JSONResponse:
    cached = cache.get_json(key, max_age)
    if cached.hit and cached.value is not None:
        if not cached.stale:
            logger.debug("cache hit %s (age %ss)", key, cached.age_seconds)
            return _respond(GatewayReply(cached.value, cache_control), x_cache="HIT")
        logger.debug("serving stale %s (age %ss), revalidating", key, cached.age_seconds)
        background.add_task(_revalidate, key, max_age + stale, load)
        return _respond(GatewayReply(cached.value, cache_control), x_cache="STALE")

    reply = await load()
    if reply.cache_control:
        cache.set_json(key, reply.payload, ttl_seconds=max_age + stale)
    return _respond(reply, x_cache="MISS")


async def _revalidate(key: str, ttl_seconds: int, load: Callable[[], Awaitable[GatewayReply]]) -> None:
    lock_key = f"lock:{key}"
    # Another worker is already refreshing this entry.
    if not cache.acquire_lock(lock_key, ttl_ms=10_000):
        return
    try:
        reply = await load()
        if reply.cache_control:
            cache.set_json(key, reply.payload, ttl_seconds=ttl_seconds)
    except GatewayError as exc:
        logger.warning("revalidation of %s failed: %s", key, exc.message)
    finally:
        cache.release_lock(lock_key)
