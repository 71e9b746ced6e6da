from __future__ import annotations

import asyncio
from typing import Any, Dict

import requests
from pydantic import BaseModel, Field
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .base import Tool, ToolContext


FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
_TIMEOUT = (3, 10)


def _build_session() -> requests.Session:
    session = requests.Session()
    retry = Retry(
        total=2,
        backoff_factor=0.5,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=frozenset(["GET"]),
    )
    adapter = HTTPAdapter(max_retries=retry, pool_connections=4, pool_maxsize=4)
    session.mount("https://", adapter)
    return session


class GetWeatherInput(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


def fetch_weather(latitude: float, longitude: float, session: requests.Session | None = None) -> Dict[str, Any]:
    if session is not None:
        return _get_forecast(session, latitude, longitude)
    with _build_session() as http:
        return _get_forecast(http, latitude, longitude)


def _get_forecast(http: requests.Session, latitude: float, longitude: float) -> Dict[str, Any]:
    res = http.get(
        FORECAST_URL,
        params={
            "latitude": latitude,
            "longitude": longitude,
            "current": "temperature_2m",
            "hourly": "temperature_2m",
            "daily": "sunrise,sunset",
            "timezone": "auto",
        },
        timeout=_TIMEOUT,
    )
    res.raise_for_status()
    return res.json()


async def _execute(args: GetWeatherInput, ctx: ToolContext) -> Dict[str, Any]:
    return await asyncio.to_thread(fetch_weather, args.latitude, args.longitude)


def get_weather_tool() -> Tool:
    return Tool(
        name="getWeather",
        description="Get the current weather at a location",
        input_model=GetWeatherInput,
        execute=_execute,
    )
