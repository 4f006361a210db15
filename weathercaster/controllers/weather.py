"""Forecast lookup endpoint."""

from fastapi import APIRouter, HTTPException, Query, status

from weathercaster.controllers.dependencies import WeatherClientDep
from weathercaster.services.weather import InvalidZipCode, WeatherServiceError
from weathercaster.views import WeatherResponse

router = APIRouter(prefix="/weather", tags=["weather"])


@router.get("/{zip_code}", response_model=WeatherResponse)
async def get_weather(
    zip_code: str,
    client: WeatherClientDep,
    alerts: bool = Query(False, description="Include active alerts for the state"),
) -> WeatherResponse:
    """
    Forecast periods for a US ZIP code from the National Weather Service.

    Raises:
        HTTPException: 422 for an invalid ZIP code, 502 when upstream fails
    """
    try:
        report = await client.get_report(zip_code, include_alerts=alerts)
    except InvalidZipCode as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc
    except WeatherServiceError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc
    return WeatherResponse.model_validate(report)
