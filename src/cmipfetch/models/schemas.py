from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cmipfetch.models.enums import Granularity, JobState


class RegularGrid(BaseModel):
    model_config = ConfigDict(frozen=True)

    nx: int = Field(gt=0)
    ny: int = Field(gt=0)
    lat_min: float
    lon_min: float
    dx: float
    dy: float

    @property
    def count(self) -> int:
        return self.nx * self.ny


class Transform(BaseModel):
    """Affine unit change applied as ``value * multiplier + offset``."""

    model_config = ConfigDict(frozen=True)

    multiplier: float = 1.0
    offset: float = 0.0

    @property
    def is_identity(self) -> bool:
        return self.multiplier == 1.0 and self.offset == 0.0


KELVIN_TO_CELSIUS = Transform(multiplier=1.0, offset=-273.15)
PASCAL_TO_HECTOPASCAL = Transform(multiplier=1 / 100, offset=0.0)
PER_SECOND_TO_PER_DAY = Transform(multiplier=3600 * 24, offset=0.0)
KG_PER_KG_TO_G_PER_KG = Transform(multiplier=1000.0, offset=0.0)


class VariableSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    short_name: str
    scale_factor: float
    transform: Optional[Transform] = None
    granularity: Granularity
    version: str


class ModelSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_name: str
    institute: str
    grid_name: str
    grid: RegularGrid
    orography_version: Optional[str] = None
    landmask_version: Optional[str] = None

    @property
    def has_elevation(self) -> bool:
        return self.orography_version is not None


class AuxiliaryInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    short_name: str
    transform: Optional[Transform] = None


class DerivedSource(BaseModel):
    """Inputs for a variable that a model does not publish directly."""

    model_config = ConfigDict(frozen=True)

    source: AuxiliaryInput
    pressure: AuxiliaryInput
    temperature: AuxiliaryInput
    needs_elevation: bool = True


class Job(BaseModel):
    """One unit of work: a (domain, variable, year[, month]) artifact."""

    model_config = ConfigDict(frozen=True)

    domain: str
    variable: str
    year: int
    month: Optional[int] = Field(default=None, ge=1, le=12)

    @field_validator("domain", "variable", mode="before")
    @classmethod
    def _enum_value(cls, v):
        return v.value if isinstance(v, Enum) else v

    @property
    def key(self) -> tuple:
        return (self.domain, self.variable, self.year, self.month)

    def __str__(self) -> str:
        if self.month is None:
            return f"{self.domain}/{self.variable}/{self.year}"
        return f"{self.domain}/{self.variable}/{self.year}-{self.month:02d}"


class JobResult(BaseModel):
    job: Job
    state: JobState
    skipped: bool = False
    reason: Optional[str] = None
    artifact: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state == JobState.PERSISTED


class RunSummary(BaseModel):
    domain: str
    persisted: int = 0
    skipped: int = 0
    failed: int = 0
    failures: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed == 0
