"""National Weather Service forecast lookup by US ZIP code."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import httpx

from weathercaster.config.settings import WeatherConfig

logger = logging.getLogger(__name__)

_ZIP_PATTERN = re.compile(r"^\d{5}$")


class WeatherServiceError(RuntimeError):
    """Raised when the geocoder or the NWS API cannot produce a forecast."""


class InvalidZipCode(WeatherServiceError):
    """Raised for anything that is not a known 5-digit US ZIP code."""


@dataclass(frozen=True)
class Location:
    display_name: str
    latitude: float
    longitude: float
    state: Optional[str] = None
    timezone: Optional[str] = None
    forecast_office: Optional[str] = None


@dataclass(frozen=True)
class ForecastPeriod:
    name: str
    temperature: Optional[int]
    temperature_unit: str
    wind_speed: str
    wind_direction: str
    short_forecast: str
    detailed_forecast: str
    start_time: str
    end_time: str
    precipitation_chance: Optional[int] = None


@dataclass(frozen=True)
class WeatherAlert:
    id: str
    event: str
    headline: str
    severity: str
    urgency: str
    areas: list[str]
    effective: str
    expires: str


@dataclass(frozen=True)
class WeatherReport:
    zip_code: str
    location: Location
    periods: list[ForecastPeriod]
    alerts: list[WeatherAlert] = field(default_factory=list)


def validate_zip_code(zip_code: str) -> str:
    """Return the trimmed ZIP code or raise :class:`InvalidZipCode`."""

    candidate = str(zip_code or "").strip()
    if not _ZIP_PATTERN.fullmatch(candidate):
        raise InvalidZipCode(f"Please provide a valid 5-digit ZIP code. Received: {zip_code!r}")
    return candidate


def _coerce_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(round(float(str(value).strip())))
    except (TypeError, ValueError):
        return None


def _parse_period(raw: Mapping[str, Any]) -> ForecastPeriod:
    precipitation = raw.get("probabilityOfPrecipitation")
    chance = precipitation.get("value") if isinstance(precipitation, Mapping) else None
    return ForecastPeriod(
        name=str(raw.get("name") or ""),
        temperature=_coerce_int(raw.get("temperature")),
        temperature_unit=str(raw.get("temperatureUnit") or "F"),
        wind_speed=str(raw.get("windSpeed") or ""),
        wind_direction=str(raw.get("windDirection") or ""),
        short_forecast=str(raw.get("shortForecast") or ""),
        detailed_forecast=str(raw.get("detailedForecast") or ""),
        start_time=str(raw.get("startTime") or ""),
        end_time=str(raw.get("endTime") or ""),
        precipitation_chance=_coerce_int(chance),
    )


def _parse_alert(feature: Mapping[str, Any]) -> WeatherAlert | None:
    properties = feature.get("properties")
    if not isinstance(properties, Mapping):
        return None
    area_desc = properties.get("areaDesc") or ""
    return WeatherAlert(
        id=str(properties.get("id") or ""),
        event=str(properties.get("event") or ""),
        headline=str(properties.get("headline") or ""),
        severity=str(properties.get("severity") or ""),
        urgency=str(properties.get("urgency") or ""),
        areas=[area for area in str(area_desc).split("; ") if area],
        effective=str(properties.get("effective") or ""),
        expires=str(properties.get("expires") or ""),
    )


class WeatherClient:
    """Resolve a ZIP code to coordinates and fetch the NWS forecast."""

    def __init__(self, client: httpx.AsyncClient, config: WeatherConfig) -> None:
        self._client = client
        self._config = config

    async def get_report(self, zip_code: str, *, include_alerts: bool = False) -> WeatherReport:
        zip_code = validate_zip_code(zip_code)
        location = await self._geocode(zip_code)
        location, forecast_url = await self._resolve_grid(location)
        periods = await self._fetch_periods(forecast_url)
        alerts = await self._fetch_alerts(location.state) if include_alerts else []
        logger.info(
            "Forecast fetched zip=%s location=%s periods=%s alerts=%s",
            zip_code,
            location.display_name,
            len(periods),
            len(alerts),
        )
        return WeatherReport(zip_code=zip_code, location=location, periods=periods, alerts=alerts)

    async def _get_json(self, url: str, *, nws: bool) -> Mapping[str, Any]:
        headers = {"User-Agent": self._config.user_agent, "Accept": "application/geo+json"} if nws else None
        try:
            response = await self._client.get(url, headers=headers, timeout=self._config.timeout_seconds)
        except httpx.RequestError as exc:
            raise WeatherServiceError(f"Unable to reach weather service: {exc}") from exc
        if response.status_code == 404 and not nws:
            raise InvalidZipCode(f"Unknown ZIP code lookup: {url.rsplit('/', 1)[-1]}")
        if not response.is_success:
            raise WeatherServiceError(
                f"Weather service returned {response.status_code} for {url}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise WeatherServiceError(f"Invalid response from weather service: {exc}") from exc
        if not isinstance(payload, Mapping):
            raise WeatherServiceError("Invalid response from weather service: expected an object")
        return payload

    async def _geocode(self, zip_code: str) -> Location:
        payload = await self._get_json(
            f"{self._config.geocode_base_url.rstrip('/')}/{zip_code}", nws=False
        )
        places = payload.get("places")
        if not isinstance(places, list) or not places or not isinstance(places[0], Mapping):
            raise InvalidZipCode(f"Location data not available for ZIP code {zip_code}")
        place = places[0]
        try:
            latitude = float(place.get("latitude"))
            longitude = float(place.get("longitude"))
        except (TypeError, ValueError) as exc:
            raise WeatherServiceError(f"Invalid coordinates for ZIP code {zip_code}") from exc
        if not -90 <= latitude <= 90:
            raise WeatherServiceError(f"Invalid latitude: {latitude}")
        if not -180 <= longitude <= 180:
            raise WeatherServiceError(f"Invalid longitude: {longitude}")

        state = place.get("state abbreviation") or None
        display_name = f"{place.get('place name') or 'Unknown'}, {state or ''}".strip().rstrip(",")
        return Location(display_name=display_name, latitude=latitude, longitude=longitude, state=state)

    async def _resolve_grid(self, location: Location) -> tuple[Location, str]:
        base = self._config.nws_base_url.rstrip("/")
        payload = await self._get_json(
            f"{base}/points/{location.latitude:.4f},{location.longitude:.4f}", nws=True
        )
        properties = payload.get("properties")
        if not isinstance(properties, Mapping):
            raise WeatherServiceError("Weather service did not return grid properties")
        forecast_url = properties.get("forecast")
        if not isinstance(forecast_url, str) or not forecast_url:
            raise WeatherServiceError(
                "Weather service did not provide a forecast URL for this location"
            )
        resolved = Location(
            display_name=location.display_name,
            latitude=location.latitude,
            longitude=location.longitude,
            state=location.state,
            timezone=properties.get("timeZone"),
            forecast_office=properties.get("forecastOffice"),
        )
        return resolved, forecast_url

    async def _fetch_periods(self, forecast_url: str) -> list[ForecastPeriod]:
        payload = await self._get_json(forecast_url, nws=True)
        properties = payload.get("properties")
        periods = properties.get("periods") if isinstance(properties, Mapping) else None
        if not isinstance(periods, list) or not periods:
            raise WeatherServiceError("Weather service returned no forecast periods")
        return [_parse_period(period) for period in periods if isinstance(period, Mapping)]

    async def _fetch_alerts(self, state: Optional[str]) -> list[WeatherAlert]:
        if not state:
            return []
        url = f"{self._config.nws_base_url.rstrip('/')}/alerts/active?area={state}"
        try:
            payload = await self._get_json(url, nws=True)
        except WeatherServiceError as exc:
            logger.warning("Failed to fetch weather alerts for %s: %s", state, exc)
            return []
        features = payload.get("features")
        if not isinstance(features, list):
            return []
        alerts = [_parse_alert(feature) for feature in features if isinstance(feature, Mapping)]
        return [alert for alert in alerts if alert is not None]


__all__ = [
    "ForecastPeriod",
    "InvalidZipCode",
    "Location",
    "WeatherAlert",
    "WeatherClient",
    "WeatherReport",
    "WeatherServiceError",
    "validate_zip_code",
]
