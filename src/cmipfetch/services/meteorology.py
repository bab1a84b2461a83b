"""Psychrometric helpers for deriving relative humidity.

All functions are vectorized over numpy arrays. Units:
    temperature: °C
    pressure: hPa
    specific humidity: g/kg
    elevation: m
"""

from __future__ import annotations

import logging

import numpy as np

from cmipfetch.errors import DeriveShapeMismatchError

logger = logging.getLogger(__name__)

# Magnus coefficients (Bolton 1980)
MAGNUS_A = 6.112
MAGNUS_B = 17.67
MAGNUS_C = 243.5

# Ratio of gas constants dry air / water vapour, scaled for g/kg
EPSILON_G_PER_KG = 622.0
ONE_MINUS_EPSILON = 0.378

# Standard atmosphere lapse rate (K/m) and barometric exponent
LAPSE_RATE = 0.0065
BAROMETRIC_EXPONENT = 5.257

ELEVATION_SEA = -999.0


def saturation_vapor_pressure(temperature_c: np.ndarray) -> np.ndarray:
    return MAGNUS_A * np.exp(MAGNUS_B * temperature_c / (temperature_c + MAGNUS_C))


def vapor_pressure_from_specific(specific_gkg: np.ndarray, pressure_hpa: np.ndarray) -> np.ndarray:
    return specific_gkg * pressure_hpa / (EPSILON_G_PER_KG + ONE_MINUS_EPSILON * specific_gkg)


def surface_pressure(
    temperature_c: np.ndarray, sea_level_pressure_hpa: np.ndarray, elevation_m: np.ndarray
) -> np.ndarray:
    """Reduce sea level pressure to station level using the barometric formula."""
    lapse = LAPSE_RATE * elevation_m
    return sea_level_pressure_hpa * (
        1 - lapse / (temperature_c + 273.15 + lapse)
    ) ** BAROMETRIC_EXPONENT


def mask_non_land(
    elevation: np.ndarray,
    land_fraction: np.ndarray,
    threshold: float = 0.5,
    sentinel: float = ELEVATION_SEA,
) -> np.ndarray:
    """Set cells with a land fraction below ``threshold`` to ``sentinel``."""
    if elevation.shape != land_fraction.shape:
        raise DeriveShapeMismatchError(
            f"Elevation {elevation.shape} and land fraction {land_fraction.shape} differ"
        )
    return np.where(land_fraction < threshold, np.float32(sentinel), elevation).astype(np.float32)


def specific_to_relative_humidity(
    specific_humidity: np.ndarray,
    temperature: np.ndarray,
    sea_level_pressure: np.ndarray,
    elevation: np.ndarray,
    sea_sentinel: float = ELEVATION_SEA,
) -> np.ndarray:
    """Relative humidity in % from time-major (n_locations, n_time) inputs.

    ``elevation`` has one value per location and is broadcast across time.
    Sea cells (``sea_sentinel``) are treated as 0 m. Results outside
    [0, 100], including overflow from implausible inputs, are clamped; NaN
    inputs stay NaN.
    """
    shape = specific_humidity.shape
    if temperature.shape != shape or sea_level_pressure.shape != shape:
        raise DeriveShapeMismatchError(
            f"Input shapes differ: q={shape}, t={temperature.shape}, "
            f"p={sea_level_pressure.shape}"
        )
    if len(shape) != 2 or elevation.size != shape[0]:
        raise DeriveShapeMismatchError(
            f"Elevation has {elevation.size} locations, series have shape {shape}"
        )

    q = specific_humidity.astype(np.float64)
    t = temperature.astype(np.float64)
    slp = sea_level_pressure.astype(np.float64)
    z = elevation.astype(np.float64).reshape(-1, 1)
    z = np.where(z == sea_sentinel, 0.0, z)

    with np.errstate(all="ignore"):
        pressure = surface_pressure(t, slp, z)
        e = vapor_pressure_from_specific(q, pressure)
        es = saturation_vapor_pressure(t)
        rh = 100.0 * e / es

    missing = np.isnan(q) | np.isnan(t) | np.isnan(slp) | np.isnan(z)
    out_of_range = ~missing & ~((rh >= 0.0) & (rh <= 100.0))
    clamped = int(np.count_nonzero(out_of_range))
    if clamped:
        logger.debug("Clamped %d of %d relative humidity values to [0, 100]", clamped, rh.size)

    rh = np.clip(np.nan_to_num(rh, nan=0.0, posinf=100.0, neginf=0.0), 0.0, 100.0)
    rh[missing] = np.nan
    return rh.astype(np.float32)
