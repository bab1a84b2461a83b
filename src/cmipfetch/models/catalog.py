"""Static HighResMIP catalog: model grids, variable names, units and archive layout.

Sources:
    https://esgf-data.dkrz.de/search/cmip6-dkrz/
    https://esgf-node.llnl.gov/search/cmip6/

All four models publish ``highresSST-present`` runs for member ``r1i1p1f1``
with daily output. Coverage differs per model, see ``Cmip6Variable.granularity``.
"""

from __future__ import annotations

import calendar
from enum import Enum
from pathlib import Path
from typing import Optional

from cmipfetch.config import settings
from cmipfetch.errors import UndefinedGranularityError, UnknownDomainError
from cmipfetch.models.enums import Granularity
from cmipfetch.models.schemas import (
    KELVIN_TO_CELSIUS,
    KG_PER_KG_TO_G_PER_KG,
    PASCAL_TO_HECTOPASCAL,
    PER_SECOND_TO_PER_DAY,
    AuxiliaryInput,
    DerivedSource,
    ModelSpec,
    RegularGrid,
    Transform,
    VariableSpec,
)

EXPERIMENT = "highresSST-present"
MEMBER = "r1i1p1f1"


class Cmip6Domain(str, Enum):
    CMCC_CM2_VHR4_daily = "CMCC_CM2_VHR4_daily"
    FGOALS_f3_H_daily = "FGOALS_f3_H_daily"
    HiRAM_SIT_HR_daily = "HiRAM_SIT_HR_daily"
    MRI_AGCM3_2_S_daily = "MRI_AGCM3_2_S_daily"

    @classmethod
    def from_name(cls, name: str) -> "Cmip6Domain":
        try:
            return cls(name)
        except ValueError:
            known = ", ".join(d.value for d in cls)
            raise UnknownDomainError(f"Invalid domain '{name}'. Known domains: {known}") from None

    @property
    def source_name(self) -> str:
        return {
            Cmip6Domain.CMCC_CM2_VHR4_daily: "CMCC-CM2-VHR4",
            Cmip6Domain.FGOALS_f3_H_daily: "FGOALS-f3-H",
            Cmip6Domain.HiRAM_SIT_HR_daily: "HiRAM-SIT-HR",
            Cmip6Domain.MRI_AGCM3_2_S_daily: "MRI-AGCM3-2-S",
        }[self]

    @property
    def grid_name(self) -> str:
        return {
            Cmip6Domain.CMCC_CM2_VHR4_daily: "gr",
            Cmip6Domain.FGOALS_f3_H_daily: "gr",
            Cmip6Domain.HiRAM_SIT_HR_daily: "gn",
            Cmip6Domain.MRI_AGCM3_2_S_daily: "gn",
        }[self]

    @property
    def institute(self) -> str:
        return {
            Cmip6Domain.CMCC_CM2_VHR4_daily: "CMCC",
            Cmip6Domain.FGOALS_f3_H_daily: "CAS",
            Cmip6Domain.HiRAM_SIT_HR_daily: "AS-RCEC",
            Cmip6Domain.MRI_AGCM3_2_S_daily: "MRI",
        }[self]

    @property
    def grid(self) -> RegularGrid:
        return {
            Cmip6Domain.CMCC_CM2_VHR4_daily: RegularGrid(
                nx=1152, ny=768, lat_min=-90, lon_min=-180, dx=0.3125, dy=180 / 768
            ),
            Cmip6Domain.FGOALS_f3_H_daily: RegularGrid(
                nx=1440, ny=720, lat_min=-90, lon_min=-180, dx=0.25, dy=0.25
            ),
            Cmip6Domain.HiRAM_SIT_HR_daily: RegularGrid(
                nx=1536, ny=768, lat_min=-90, lon_min=-180, dx=360 / 1536, dy=180 / 768
            ),
            Cmip6Domain.MRI_AGCM3_2_S_daily: RegularGrid(
                nx=1920, ny=960, lat_min=-90, lon_min=-180, dx=0.1875, dy=0.1875
            ),
        }[self]

    @property
    def version_orography(self) -> Optional[tuple[str, str]]:
        """(altitude, land mask) dataset versions. HiRAM publishes no fixed fields."""
        return {
            Cmip6Domain.CMCC_CM2_VHR4_daily: ("20210330", "20210330"),
            Cmip6Domain.FGOALS_f3_H_daily: ("20201204", "20210121"),
            Cmip6Domain.HiRAM_SIT_HR_daily: None,
            Cmip6Domain.MRI_AGCM3_2_S_daily: ("20200305", "20200305"),
        }[self]

    @property
    def dt_seconds(self) -> int:
        return 24 * 3600

    @property
    def spec(self) -> ModelSpec:
        versions = self.version_orography
        return ModelSpec(
            source_name=self.source_name,
            institute=self.institute,
            grid_name=self.grid_name,
            grid=self.grid,
            orography_version=versions[0] if versions else None,
            landmask_version=versions[1] if versions else None,
        )

    # Directories are resolved against the current settings on every access
    @property
    def download_directory(self) -> Path:
        return Path(settings.data_dir) / f"download-{self.value}"

    @property
    def omfile_directory(self) -> Path:
        return Path(settings.data_dir) / f"omfile-{self.value}"

    @property
    def archive_directory(self) -> Path:
        return Path(settings.data_dir) / f"archive-{self.value}"

    @property
    def surface_elevation_file(self) -> Path:
        return self.omfile_directory / "HSURF.zarr"


class Cmip6Variable(str, Enum):
    pressure_msl = "pressure_msl"
    temperature_2m_min = "temperature_2m_min"
    temperature_2m_max = "temperature_2m_max"
    temperature_2m = "temperature_2m"
    cloudcover = "cloudcover"
    precipitation = "precipitation"
    runoff = "runoff"
    snowfall_water_equivalent = "snowfall_water_equivalent"
    relative_humidity_2m_min = "relative_humidity_2m_min"
    relative_humidity_2m_max = "relative_humidity_2m_max"
    relative_humidity_2m = "relative_humidity_2m"
    windspeed_10m = "windspeed_10m"
    surface_temperature = "surface_temperature"
    # Moisture in upper portion of soil column
    soil_moisture_0_to_10cm = "soil_moisture_0_to_10cm"
    shortwave_radiation = "shortwave_radiation"

    @property
    def shortname(self) -> str:
        return {
            Cmip6Variable.pressure_msl: "psl",
            Cmip6Variable.temperature_2m_min: "tasmin",
            Cmip6Variable.temperature_2m_max: "tasmax",
            Cmip6Variable.temperature_2m: "tas",
            Cmip6Variable.cloudcover: "clt",
            Cmip6Variable.precipitation: "pr",
            Cmip6Variable.runoff: "mrro",
            Cmip6Variable.snowfall_water_equivalent: "prsn",
            Cmip6Variable.relative_humidity_2m_min: "hursmin",
            Cmip6Variable.relative_humidity_2m_max: "hursmax",
            Cmip6Variable.relative_humidity_2m: "hurs",
            Cmip6Variable.windspeed_10m: "sfcWind",
            Cmip6Variable.surface_temperature: "tslsi",
            Cmip6Variable.soil_moisture_0_to_10cm: "mrsos",
            Cmip6Variable.shortwave_radiation: "rsds",
        }[self]

    @property
    def scalefactor(self) -> float:
        return {
            Cmip6Variable.pressure_msl: 10,
            Cmip6Variable.temperature_2m_min: 20,
            Cmip6Variable.temperature_2m_max: 20,
            Cmip6Variable.temperature_2m: 20,
            Cmip6Variable.cloudcover: 1,
            Cmip6Variable.precipitation: 10,
            Cmip6Variable.runoff: 10,
            Cmip6Variable.snowfall_water_equivalent: 10,
            Cmip6Variable.relative_humidity_2m_min: 1,
            Cmip6Variable.relative_humidity_2m_max: 1,
            Cmip6Variable.relative_humidity_2m: 1,
            Cmip6Variable.windspeed_10m: 10,
            Cmip6Variable.surface_temperature: 20,
            Cmip6Variable.soil_moisture_0_to_10cm: 1000,
            Cmip6Variable.shortwave_radiation: 1,
        }[self]

    @property
    def multiply_add(self) -> Optional[Transform]:
        """Unit correction to the stored units (Celsius, hPa, mm/day)."""
        if self in (
            Cmip6Variable.temperature_2m_min,
            Cmip6Variable.temperature_2m_max,
            Cmip6Variable.temperature_2m,
        ):
            return KELVIN_TO_CELSIUS
        if self == Cmip6Variable.pressure_msl:
            return PASCAL_TO_HECTOPASCAL
        if self in (
            Cmip6Variable.precipitation,
            Cmip6Variable.snowfall_water_equivalent,
            Cmip6Variable.runoff,
        ):
            return PER_SECOND_TO_PER_DAY
        return None

    def version(self, domain: Cmip6Domain) -> str:
        if domain == Cmip6Domain.CMCC_CM2_VHR4_daily:
            if self == Cmip6Variable.precipitation:
                return "20210308"
            return "20190725"
        return {
            Cmip6Domain.FGOALS_f3_H_daily: "20190817",
            Cmip6Domain.HiRAM_SIT_HR_daily: "20210713",
            Cmip6Domain.MRI_AGCM3_2_S_daily: "20190711",
        }[domain]

    def granularity(self, domain: Cmip6Domain) -> Optional[Granularity]:
        """Source file split for this variable, or None if the model lacks it."""
        return _GRANULARITY[domain].get(self)


V = Cmip6Variable
Y = Granularity.YEARLY
M = Granularity.MONTHLY

_GRANULARITY: dict[Cmip6Domain, dict[Cmip6Variable, Granularity]] = {
    Cmip6Domain.MRI_AGCM3_2_S_daily: {v: Y for v in Cmip6Variable},
    # Only precipitation comes in yearly files
    Cmip6Domain.CMCC_CM2_VHR4_daily: {
        V.relative_humidity_2m: M,
        V.precipitation: Y,
        V.temperature_2m: M,
        V.windspeed_10m: M,
    },
    # No near-surface relative humidity, derived from specific humidity
    Cmip6Domain.FGOALS_f3_H_daily: {
        V.relative_humidity_2m: Y,
        V.cloudcover: Y,
        V.temperature_2m: Y,
        V.pressure_msl: Y,
        V.snowfall_water_equivalent: Y,
        V.shortwave_radiation: Y,
        V.windspeed_10m: Y,
        V.precipitation: Y,
    },
    # No u/v wind components near the surface
    Cmip6Domain.HiRAM_SIT_HR_daily: {
        V.temperature_2m: Y,
        V.temperature_2m_max: Y,
        V.temperature_2m_min: Y,
        V.cloudcover: Y,
        V.precipitation: Y,
        V.snowfall_water_equivalent: Y,
        V.relative_humidity_2m: Y,
        V.shortwave_radiation: Y,
        V.windspeed_10m: Y,
    },
}

DERIVED_VARIABLES: dict[tuple[Cmip6Domain, Cmip6Variable], DerivedSource] = {
    (Cmip6Domain.FGOALS_f3_H_daily, V.relative_humidity_2m): DerivedSource(
        source=AuxiliaryInput(short_name="huss", transform=KG_PER_KG_TO_G_PER_KG),
        pressure=AuxiliaryInput(short_name="psl", transform=PASCAL_TO_HECTOPASCAL),
        temperature=AuxiliaryInput(short_name="tas", transform=KELVIN_TO_CELSIUS),
    ),
}


def derived_source(domain: Cmip6Domain, variable: Cmip6Variable) -> Optional[DerivedSource]:
    return DERIVED_VARIABLES.get((domain, variable))


def variable_spec(domain: Cmip6Domain, variable: Cmip6Variable) -> VariableSpec:
    granularity = variable.granularity(domain)
    if granularity is None:
        raise UndefinedGranularityError(
            f"{variable.value} is not available for {domain.value}"
        )
    return VariableSpec(
        short_name=variable.shortname,
        scale_factor=variable.scalefactor,
        transform=variable.multiply_add,
        granularity=granularity,
        version=variable.version(domain),
    )


# ---------------------------------------------------------------------------
# Archive paths, relative to a mirror base URL
# ---------------------------------------------------------------------------
def _dataset_prefix(domain: Cmip6Domain, table: str, short: str, version: str) -> str:
    return (
        f"HighResMIP/{domain.institute}/{domain.source_name}/{EXPERIMENT}/{MEMBER}/"
        f"{table}/{short}/{domain.grid_name}/v{version}/"
        f"{short}_{table}_{domain.source_name}_{EXPERIMENT}_{MEMBER}_{domain.grid_name}"
    )


def daily_uri(
    domain: Cmip6Domain, short: str, version: str, year: int, month: int | None = None
) -> str:
    """Daily file covering a whole year, or one month when ``month`` is given."""
    prefix = _dataset_prefix(domain, "day", short, version)
    if month is None:
        return f"{prefix}_{year}0101-{year}1231.nc"
    last_day = calendar.monthrange(year, month)[1]
    return f"{prefix}_{year}{month:02d}01-{year}{month:02d}{last_day:02d}.nc"


def fixed_uri(domain: Cmip6Domain, short: str, version: str) -> str:
    """Time-invariant field such as ``orog`` or ``sftlf``."""
    return f"{_dataset_prefix(domain, 'fx', short, version)}.nc"
