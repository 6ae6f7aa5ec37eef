"""
OpenAQ air-quality client.

Used endpoint:
- GET /measurements?city=<city>&parameter=pm25&parameter=pm10&limit=1&sort=desc&order_by=datetime
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import httpx

from ecoinsight.core.errors import UpstreamError


def normalize_measurement(city: str, measurement: dict[str, Any]) -> dict[str, Any]:
    date = measurement.get("date") or {}
    timestamp = (
        date.get("utc")
        or measurement.get("datetime")
        or datetime.now(timezone.utc).isoformat()
    )
    parameter = str(measurement.get("parameter") or "unknown")
    return {
        "city": city,
        "location": measurement.get("location"),
        "country": measurement.get("country"),
        "coordinates": measurement.get("coordinates"),
        "measurements": {
            parameter: {"value": measurement.get("value"), "unit": measurement.get("unit")},
        },
        "timestamp": timestamp,
        "raw": measurement,
    }


async def fetch_air_quality(
    client: httpx.AsyncClient,
    *,
    base_url: str,
    city: str,
    api_key: str = "",
    timeout_s: float = 8.0,
) -> dict[str, Any] | None:
    """
    Latest pm25/pm10 measurement for `city`, or None when OpenAQ has nothing.
    """
    base_url = (base_url or "").strip().rstrip("/")
    if not base_url:
        raise UpstreamError("OPENAQ_BASE_URL is empty.")

    headers = {"X-API-Key": api_key} if api_key else {}
    params = [
        ("city", city),
        ("parameter", "pm25"),
        ("parameter", "pm10"),
        ("limit", "1"),
        ("sort", "desc"),
        ("order_by", "datetime"),
    ]
    try:
        resp = await client.get(
            f"{base_url}/measurements",
            params=params,
            headers=headers,
            timeout=timeout_s,
        )
    except httpx.HTTPError as exc:
        raise UpstreamError("Air quality service request failed.") from exc

    if resp.status_code >= 400:
        raise UpstreamError(
            "Air quality service returned an error.",
            upstream_status=resp.status_code,
        )

    try:
        data: dict[str, Any] = resp.json()
    except ValueError as exc:
        raise UpstreamError("Air quality service returned invalid JSON.") from exc

    results = data.get("results")
    if not isinstance(results, list) or not results or not isinstance(results[0], dict):
        return None
    return normalize_measurement(city, results[0])
