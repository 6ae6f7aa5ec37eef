"""
Time-series point schemas.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, JsonValue


class TimeseriesPointCreate(BaseModel):
    location: str = Field(..., min_length=1, max_length=200)
    dataType: str = Field(..., min_length=1, max_length=50)
    timestamp: datetime
    # Must be a finite number; "abc", NaN and Infinity are rejected, never coerced.
    value: float = Field(..., allow_inf_nan=False)
    unit: str = Field(..., min_length=1, max_length=50)
    source: str = Field(..., min_length=1, max_length=200)
    metadata: dict[str, JsonValue] = Field(default_factory=dict)
