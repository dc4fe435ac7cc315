"""Current weather lookup over the OpenWeatherMap API."""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import BaseModel, Field

from missionforge.tools.base import Tool, ToolResult
from missionforge.tools.unit import ToolUnit

OPENWEATHER_URL = "https://api.openweathermap.org/data/2.5/weather"


class WeatherInput(BaseModel):
    location: str = Field(description="City name, optionally with country code")
    units: str = Field(default="metric", description="metric|imperial|standard")


class WeatherOutput(BaseModel):
    location: str
    temperature: float | None
    humidity: int | None
    description: str
    wind_speed: float | None


class WeatherTool(Tool):
    name = "getCurrentWeather"
    description = "Get the current weather for a location."
    input_schema = WeatherInput
    output_schema = WeatherOutput

    def __init__(
        self,
        api_key: str,
        base_url: str = OPENWEATHER_URL,
        timeout_seconds: int = 10,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    def run(self, data: BaseModel | dict[str, Any]) -> ToolResult:
        input_data = WeatherInput.model_validate(data)
        params = {"q": input_data.location, "appid": self.api_key, "units": input_data.units}
        with httpx.Client(timeout=self.timeout_seconds, transport=self.transport) as client:
            response = client.get(self.base_url, params=params)
        response.raise_for_status()
        payload = response.json()
        main = payload.get("main") or {}
        conditions = payload.get("weather") or [{}]
        wind = payload.get("wind") or {}
        output = WeatherOutput(
            location=payload.get("name") or input_data.location,
            temperature=main.get("temp"),
            humidity=main.get("humidity"),
            description=str(conditions[0].get("description", "unknown")),
            wind_speed=wind.get("speed"),
        )
        return ToolResult(output=output.model_dump())


def weather_unit(api_key: str, transport: httpx.BaseTransport | None = None) -> ToolUnit:
    return ToolUnit("weather", [WeatherTool(api_key, transport=transport)])
