"""
Climate observation schemas.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field, JsonValue

# Open key/value blob attached to observations and time-series points.
Metadata = dict[str, JsonValue]

# Numeric reading or a structured payload (e.g. several pollutant values).
ObservationValue = Union[float, dict[str, JsonValue], list[JsonValue]]


class DataType(str, Enum):
    WEATHER = "weather"
    AIR_QUALITY = "air_quality"
    EMISSIONS = "emissions"
    TEMPERATURE = "temperature"


class ClimateCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    location: str = Field(..., min_length=1, max_length=200)
    dataType: DataType
    timestamp: datetime
    value: ObservationValue
    unit: str = Field(..., min_length=1, max_length=50)
    source: str = Field(..., min_length=1, max_length=200)
    metadata: Metadata = Field(default_factory=dict)


class ClimateUpdate(BaseModel):
    """
    Partial update. Only these fields may be changed; anything else is a 400.
    """

    model_config = ConfigDict(extra="forbid", use_enum_values=True)

    location: str | None = Field(default=None, min_length=1, max_length=200)
    dataType: DataType | None = None
    timestamp: datetime | None = None
    value: ObservationValue | None = None
    unit: str | None = Field(default=None, min_length=1, max_length=50)
    source: str | None = Field(default=None, min_length=1, max_length=200)
    metadata: Metadata | None = None


@dataclass(frozen=True)
class ClimateFilters:
    location: str | None = None
    data_type: DataType | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None

    def cache_fields(self) -> dict:
        return {
            "location": self.location,
            "dataType": self.data_type,
            "startDate": self.start_date,
            "endDate": self.end_date,
        }
