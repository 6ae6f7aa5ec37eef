"""
ESG report schemas.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ReportType(str, Enum):
    ANNUAL = "annual"
    QUARTERLY = "quarterly"
    SUSTAINABILITY = "sustainability"
    ESG = "esg"


class EnvironmentalMetrics(BaseModel):
    model_config = ConfigDict(extra="forbid")

    carbonEmissions: float | None = None
    energyConsumption: float | None = None
    waterUsage: float | None = None
    wasteGenerated: float | None = None


class SocialMetrics(BaseModel):
    model_config = ConfigDict(extra="forbid")

    employeeCount: float | None = None
    diversityScore: float | None = None
    safetyIncidents: float | None = None
    communityInvestment: float | None = None


class GovernanceMetrics(BaseModel):
    model_config = ConfigDict(extra="forbid")

    boardDiversity: float | None = None
    executiveCompensation: float | None = None
    regulatoryCompliance: float | None = None
    riskManagement: float | None = None


class ESGMetrics(BaseModel):
    model_config = ConfigDict(extra="forbid")

    environmental: EnvironmentalMetrics = Field(default_factory=EnvironmentalMetrics)
    social: SocialMetrics = Field(default_factory=SocialMetrics)
    governance: GovernanceMetrics = Field(default_factory=GovernanceMetrics)


class ESGCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    company: str = Field(..., min_length=1, max_length=200)
    year: int = Field(..., ge=1900, le=2100)
    reportType: ReportType
    metrics: ESGMetrics = Field(default_factory=ESGMetrics)
    score: float | None = Field(default=None, ge=0, le=100)
    source: str = Field(..., min_length=1, max_length=200)
    verified: bool = False


class ESGUpdate(BaseModel):
    """
    Partial update. Only these fields may be changed; anything else is a 400.
    """

    model_config = ConfigDict(extra="forbid", use_enum_values=True)

    company: str | None = Field(default=None, min_length=1, max_length=200)
    year: int | None = Field(default=None, ge=1900, le=2100)
    reportType: ReportType | None = None
    metrics: ESGMetrics | None = None
    score: float | None = Field(default=None, ge=0, le=100)
    source: str | None = Field(default=None, min_length=1, max_length=200)
    verified: bool | None = None


@dataclass(frozen=True)
class ESGFilters:
    company: str | None = None
    year: int | None = None
    report_type: ReportType | None = None

    def cache_fields(self) -> dict:
        return {
            "company": self.company,
            "year": self.year,
            "reportType": self.report_type,
        }
