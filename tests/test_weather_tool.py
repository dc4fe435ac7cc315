from __future__ import annotations

import httpx
import pytest

from missionforge.tools.builtins.weather import weather_unit


def test_weather_lookup_parses_openweather_payload():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={
                "name": "Paris",
                "main": {"temp": 18.5, "humidity": 60},
                "weather": [{"description": "light rain"}],
                "wind": {"speed": 3.2},
            },
        )

    unit = weather_unit("test-key", transport=httpx.MockTransport(handler))
    output = unit.execute("getCurrentWeather", {"location": "Paris"})
    assert output == {
        "location": "Paris",
        "temperature": 18.5,
        "humidity": 60,
        "description": "light rain",
        "wind_speed": 3.2,
    }
    assert requests[0].url.params["q"] == "Paris"
    assert requests[0].url.params["appid"] == "test-key"
    assert requests[0].url.params["units"] == "metric"


def test_weather_lookup_raises_on_http_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Invalid API key"})

    unit = weather_unit("bad", transport=httpx.MockTransport(handler))
    with pytest.raises(httpx.HTTPStatusError):
        unit.execute("getCurrentWeather", {"location": "Paris"})
