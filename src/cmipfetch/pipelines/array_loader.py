"""Turn a downloaded NetCDF variable into a normalized time-major GridArray.

Steps, in order:
    1. read the raw float buffer (space-major, time slowest)
    2. rewrap longitude from [0, 360) to [-180, 180)
    3. apply the optional unit transform
    4. transpose to time-major
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from cmipfetch.errors import ShapeMismatchError
from cmipfetch.models.arrays import GridArray
from cmipfetch.models.enums import ArrayLayout
from cmipfetch.models.schemas import Transform
from cmipfetch.services.source_file import SourceFile

logger = logging.getLogger(__name__)


def grid_dimensions(shape: tuple[int, ...]) -> tuple[int, int, int]:
    """Return ``(nt, ny, nx)`` for a ``(time, y, x)`` or ``(y, x)`` variable."""
    if len(shape) == 3:
        return shape[0], shape[1], shape[2]
    if len(shape) == 2:
        return 1, shape[0], shape[1]
    raise ShapeMismatchError(f"Expected 2 or 3 dimensions, got {shape}")


def shift180_longitude(data: np.ndarray, nt: int, ny: int, nx: int) -> np.ndarray:
    """Rotate every (time, latitude) row left by ``nx // 2`` cells, in place.

    A grid starting at 0°E then starts at 180°W. For odd ``nx`` the rotation is
    ``floor(nx / 2)`` and applying it twice does not restore the row.
    """
    if data.size != nt * ny * nx:
        raise ShapeMismatchError(f"Buffer has {data.size} values, expected {nt}x{ny}x{nx}")
    rows = data.reshape(nt * ny, nx)
    rows[:] = np.roll(rows, -(nx // 2), axis=1)
    return data


def apply_transform(data: np.ndarray, transform: Transform | None) -> np.ndarray:
    """Apply ``value * multiplier + offset`` in place."""
    if transform is None or transform.is_identity:
        return data
    data *= np.float32(transform.multiplier)
    data += np.float32(transform.offset)
    return data


def transpose_to_time_major(data: np.ndarray, nt: int, n_locations: int) -> np.ndarray:
    """Reorder a flat space-major buffer so time varies fastest. Returns a new buffer."""
    if data.size != nt * n_locations:
        raise ShapeMismatchError(
            f"Buffer has {data.size} values, expected {nt}x{n_locations}"
        )
    return np.ascontiguousarray(data.reshape(nt, n_locations).T).ravel()


def normalize(
    data: np.ndarray, shape: tuple[int, ...], transform: Transform | None = None
) -> GridArray:
    """Rewrap, rescale and transpose a raw space-major buffer."""
    nt, ny, nx = grid_dimensions(shape)
    if data.size != nt * ny * nx:
        raise ShapeMismatchError(f"Buffer has {data.size} values but shape is {shape}")

    spatial = GridArray(data.reshape(nt, ny * nx), ny, nx, ArrayLayout.SPACE_MAJOR)
    shift180_longitude(spatial.data, nt, ny, nx)
    apply_transform(spatial.data, transform)
    return spatial.transpose()


def load_variable(path: Path | str, name: str, transform: Transform | None = None) -> GridArray:
    """Load ``name`` from a NetCDF file as a time-major array."""
    with SourceFile(path) as source:
        data, shape = source.read_variable(name)
    array = normalize(data, shape, transform)
    logger.info(
        "Loaded %s from %s: %d locations x %d steps",
        name,
        Path(path).name,
        array.n_locations,
        array.n_time,
    )
    return array
