"""
OpenWeatherMap current-weather client.

Used endpoint:
- GET /weather?q=<city>&units=metric&appid=<key>
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import httpx

from ecoinsight.core.errors import UpstreamError


def _normalize_base_url(base_url: str) -> str:
    base_url = (base_url or "").strip()
    if not base_url:
        raise UpstreamError("OPENWEATHER_BASE_URL is empty.")
    return base_url.rstrip("/")


def normalize_weather(data: dict[str, Any]) -> dict[str, Any]:
    main = data.get("main") or {}
    weather = (data.get("weather") or [{}])[0] or {}
    wind = data.get("wind") or {}

    observed_at = data.get("dt")
    if isinstance(observed_at, (int, float)):
        timestamp = datetime.fromtimestamp(observed_at, tz=timezone.utc)
    else:
        timestamp = datetime.now(timezone.utc)

    return {
        "city": data.get("name"),
        "tempCelsius": main.get("temp"),
        "humidity": main.get("humidity"),
        "pressure": main.get("pressure"),
        "weather": weather.get("main"),
        "description": weather.get("description"),
        "windSpeed": wind.get("speed"),
        "timestamp": timestamp.isoformat(),
        "raw": data,
    }


async def fetch_current_weather(
    client: httpx.AsyncClient,
    *,
    base_url: str,
    api_key: str,
    city: str,
    timeout_s: float = 8.0,
) -> dict[str, Any]:
    """
    Fetch and normalize the current weather for `city`.
    """
    # Fail before touching the network when credentials are missing.
    if not (api_key or "").strip():
        raise UpstreamError("Weather service is not configured.")

    base_url = _normalize_base_url(base_url)
    try:
        resp = await client.get(
            f"{base_url}/weather",
            params={"q": city, "units": "metric", "appid": api_key},
            timeout=timeout_s,
        )
    except httpx.HTTPError as exc:
        raise UpstreamError("Weather service request failed.") from exc

    if resp.status_code >= 400:
        raise UpstreamError(
            "Weather service returned an error.",
            upstream_status=resp.status_code,
        )

    try:
        data: dict[str, Any] = resp.json()
    except ValueError as exc:
        raise UpstreamError("Weather service returned invalid JSON.") from exc
    return normalize_weather(data)
