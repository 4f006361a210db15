"""Turn forecasts into short spoken scripts for broadcast audio."""

from __future__ import annotations

import re
from typing import Optional, Sequence

from weathercaster.services.weather import ForecastPeriod, WeatherReport

_WHITESPACE = re.compile(r"\s+")

# (minimum temperature in F, advice); first match wins, highest band first.
ADVICE_BANDS: tuple[tuple[int, str], ...] = (
    (
        90,
        "Advice: Plan irrigation and avoid mid-day transplanting. Schedule field work early "
        "morning or evening to reduce heat stress on crops and livestock.",
    ),
    (
        80,
        "Advice: Monitor crop water needs and consider light irrigation. Midday heat can "
        "stress tender plants, so shade where possible.",
    ),
    (
        60,
        "Advice: Good window for planting, pruning, and spraying if winds are calm. Watch "
        "for rapid drying in full sun.",
    ),
    (
        40,
        "Advice: Cool conditions. Protect sensitive seedlings overnight. Consider row covers "
        "for warmth retention.",
    ),
)
COLD_ADVICE = (
    "Advice: Cold conditions. Protect frost-sensitive crops and ensure livestock shelter "
    "and water supply remain unfrozen."
)
CLOSING_REMINDER = "Check back before spraying or harvesting, conditions can shift quickly."


def speak_zip(zip_code: str) -> str:
    """Space out ZIP digits so text-to-speech reads them one at a time."""

    return " ".join(str(zip_code).strip())


def advice_for_temperature(temperature: Optional[int]) -> Optional[str]:
    if temperature is None:
        return None
    for minimum, advice in ADVICE_BANDS:
        if temperature >= minimum:
            return advice
    return COLD_ADVICE


def _wind_phrase(period: ForecastPeriod) -> str:
    if not period.wind_speed:
        return ""
    speed = _WHITESPACE.sub(" ", period.wind_speed)
    return f"Winds {speed} {period.wind_direction}".strip() + "."


def _first(periods: Sequence[ForecastPeriod], index: int) -> Optional[ForecastPeriod]:
    return periods[index] if len(periods) > index else None


def build_agri_narration(zip_code: str, report: WeatherReport) -> str:
    """Agriculture-focused script covering the next three forecast periods."""

    location = report.location.display_name or "your area"
    periods = report.periods
    today = _first(periods, 0)
    tonight = _first(periods, 1)
    tomorrow = _first(periods, 2)

    parts = [f"Agriculture weather for {location}. ZIP {speak_zip(zip_code)}."]
    if today is not None:
        sentence = (
            f"{today.name}: {today.short_forecast.lower()}. Temperature around "
            f"{today.temperature} degrees {today.temperature_unit}."
        )
        wind = _wind_phrase(today)
        parts.append(f"{sentence} {wind}" if wind else sentence)
    if tonight is not None:
        parts.append(
            f"{tonight.name}: {tonight.short_forecast.lower()}. Near "
            f"{tonight.temperature} degrees {tonight.temperature_unit}."
        )
    if tomorrow is not None:
        parts.append(
            f"Looking to {tomorrow.name.lower()}: {tomorrow.short_forecast.lower()}, about "
            f"{tomorrow.temperature} degrees {tomorrow.temperature_unit}."
        )

    reference = today or tomorrow or tonight
    if reference is not None:
        advice = advice_for_temperature(reference.temperature)
        if advice:
            parts.append(advice)

    parts.append(CLOSING_REMINDER)
    return " ".join(parts)


def narrate_custom_text(zip_code: str, text: str) -> str:
    return f"For ZIP {speak_zip(zip_code)}. {text.strip()}"


__all__ = [
    "advice_for_temperature",
    "build_agri_narration",
    "narrate_custom_text",
    "speak_zip",
]
