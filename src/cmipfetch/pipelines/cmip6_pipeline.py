"""HighResMIP daily pipeline - fetches, normalizes and archives one domain.

Each job covers one (variable, year) for yearly source files, or one
(variable, year, month) for monthly source files, and moves through

    NOT_STARTED -> AUXILIARY_READY -> SOURCE_FETCHED -> NORMALIZED
        -> DERIVED (derived variables only) -> PERSISTED

or ends in FAILED. An existing archive artifact short-circuits the job
before any network or compute work.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from cmipfetch.config import settings
from cmipfetch.errors import (
    CmipFetchError,
    ElevationError,
    ShapeMismatchError,
    UndefinedGranularityError,
)
from cmipfetch.models.arrays import GridArray
from cmipfetch.models.catalog import (
    Cmip6Domain,
    Cmip6Variable,
    daily_uri,
    derived_source,
    variable_spec,
)
from cmipfetch.models.enums import Granularity, JobState
from cmipfetch.models.schemas import AuxiliaryInput, DerivedSource, Job, JobResult, VariableSpec
from cmipfetch.pipelines.array_loader import load_variable
from cmipfetch.pipelines.mirror_fetcher import MirrorFetcher
from cmipfetch.services import store
from cmipfetch.services.elevation import ElevationCache
from cmipfetch.services.meteorology import specific_to_relative_humidity

logger = logging.getLogger(__name__)


class Cmip6Pipeline:
    """Runs download jobs for one HighResMIP domain."""

    def __init__(
        self,
        domain: Cmip6Domain,
        fetcher: MirrorFetcher | None = None,
        elevation: ElevationCache | None = None,
    ):
        self.domain = domain
        self.fetcher = fetcher or MirrorFetcher()
        self.elevation = elevation or ElevationCache(self.fetcher)

    # ------------------------------------------------------------------
    # Job planning
    # ------------------------------------------------------------------
    def jobs(self, start_year: int, end_year: int) -> list[Job]:
        """All jobs for the year range, one per month for monthly variables."""
        planned: dict[tuple, Job] = {}
        for variable in Cmip6Variable:
            granularity = variable.granularity(self.domain)
            if granularity is None:
                continue
            for year in range(start_year, end_year + 1):
                months = range(1, 13) if granularity == Granularity.MONTHLY else [None]
                for month in months:
                    job = Job(domain=self.domain, variable=variable, year=year, month=month)
                    planned.setdefault(job.key, job)
        return list(planned.values())

    def artifact_path(self, job: Job) -> Path:
        if job.month is None:
            name = f"{job.variable}_{job.year}.zarr"
        else:
            name = f"{job.variable}_{job.year}{job.month:02d}.zarr"
        return self.domain.archive_directory / name

    # ------------------------------------------------------------------
    # Job execution
    # ------------------------------------------------------------------
    def run_job(self, job: Job) -> JobResult:
        """Run one job. Failures are returned as a FAILED result, never raised."""
        target = self.artifact_path(job)
        if store.artifact_exists(target):
            logger.info("Skipping (exists): %s", target.name)
            return JobResult(
                job=job, state=JobState.PERSISTED, skipped=True, artifact=str(target)
            )

        state = JobState.NOT_STARTED
        try:
            variable = Cmip6Variable(job.variable)
            spec = variable_spec(self.domain, variable)
            derived = derived_source(self.domain, variable)
            self._check_granularity(job, spec)

            elevation = self._auxiliary(derived)
            state = self._advance(job, JobState.AUXILIARY_READY)

            source = derived.source if derived else AuxiliaryInput(
                short_name=spec.short_name, transform=spec.transform
            )
            source_file = self._fetch(source.short_name, spec, job)
            state = self._advance(job, JobState.SOURCE_FETCHED)

            array = self._load(source_file, source)
            state = self._advance(job, JobState.NORMALIZED)

            if derived:
                array = self._derive_relative_humidity(array, derived, spec, job, elevation)
                state = self._advance(job, JobState.DERIVED)

            self._persist(target, array, spec, job)
            state = self._advance(job, JobState.PERSISTED)
        except (CmipFetchError, OSError) as e:
            logger.error("Job %s failed in state %s: %s", job, state.value, e)
            return JobResult(job=job, state=JobState.FAILED, reason=f"{type(e).__name__}: {e}")

        return JobResult(job=job, state=state, artifact=str(target))

    @staticmethod
    def _advance(job: Job, state: JobState) -> JobState:
        logger.debug("%s -> %s", job, state.value)
        return state

    @staticmethod
    def _check_granularity(job: Job, spec: VariableSpec) -> None:
        monthly = spec.granularity == Granularity.MONTHLY
        if monthly != (job.month is not None):
            expected = "a month" if monthly else "no month"
            raise UndefinedGranularityError(
                f"{job} needs {expected}: {job.variable} is published in "
                f"{spec.granularity.value} files for {job.domain}"
            )

    def _auxiliary(self,derived: DerivedSource | None) -> np.ndarray | None:
        if derived is None or not derived.needs_elevation:
            return None
        elevation = self.elevation.get(self.domain)
        if elevation is None:
            raise ElevationError(f"{self.domain.value} has no elevation for derived variables")
        return elevation

    def _fetch(self, short: str, spec: VariableSpec, job: Job) -> Path:
        if job.month is None:
            filename = f"{short}_{job.year}.nc"
        else:
            filename = f"{short}_{job.year}{job.month:02d}.nc"
        uri = daily_uri(self.domain, short, spec.version, job.year, job.month)
        return self.fetcher.fetch(uri, self.domain.download_directory / filename)

    def _load(self, path: Path, source: AuxiliaryInput) -> GridArray:
        array = load_variable(path, source.short_name, source.transform)
        grid = self.domain.grid
        if (array.ny, array.nx) != (grid.ny, grid.nx):
            raise ShapeMismatchError(
                f"{path.name} is {array.ny}x{array.nx}, "
                f"{self.domain.value} grid is {grid.ny}x{grid.nx}"
            )
        return array

    def _derive_relative_humidity(
        self,
        specific: GridArray,
        derived: DerivedSource,
        spec: VariableSpec,
        job: Job,
        elevation: np.ndarray,
    ) -> GridArray:
        """Relative humidity from specific humidity, sea level pressure and temperature."""
        pressure_file = self._fetch(derived.pressure.short_name, spec, job)
        temperature_file = self._fetch(derived.temperature.short_name, spec, job)
        pressure = self._load(pressure_file, derived.pressure)
        temperature = self._load(temperature_file, derived.temperature)

        rh = specific_to_relative_humidity(
            specific_humidity=specific.data,
            temperature=temperature.data,
            sea_level_pressure=pressure.data,
            elevation=elevation,
            sea_sentinel=settings.elevation_sea_value,
        )
        logger.info("Derived relative humidity for %s", job)
        return GridArray(rh, specific.ny, specific.nx, specific.layout)

    def _persist(self, target: Path, array: GridArray, spec: VariableSpec, job: Job) -> None:
        if spec.granularity == Granularity.MONTHLY:
            chunks = (self.domain.grid.nx, array.n_time)
        else:
            chunks = (settings.yearly_chunk_locations, array.n_time)
        attrs = {
            "domain": self.domain.value,
            "variable": job.variable,
            "year": job.year,
            "dt_seconds": self.domain.dt_seconds,
        }
        if job.month is not None:
            attrs["month"] = job.month
        store.write_array(target, array.data, chunks, spec.scale_factor, attrs=attrs)
