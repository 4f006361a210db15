"""Pydantic schemas for forecast lookups."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class LocationView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    display_name: str
    latitude: float
    longitude: float
    state: Optional[str] = None
    timezone: Optional[str] = None
    forecast_office: Optional[str] = None


class ForecastPeriodView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    temperature: Optional[int] = None
    temperature_unit: str
    wind_speed: str
    wind_direction: str
    short_forecast: str
    detailed_forecast: str
    start_time: str
    end_time: str
    precipitation_chance: Optional[int] = None


class WeatherAlertView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    event: str
    headline: str
    severity: str
    urgency: str
    areas: List[str]
    effective: str
    expires: str


class WeatherResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    zip_code: str
    location: LocationView
    periods: List[ForecastPeriodView]
    alerts: List[WeatherAlertView] = []
