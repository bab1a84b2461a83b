"""2-D float buffers for gridded series in either space-major or time-major order."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from cmipfetch.errors import ShapeMismatchError
from cmipfetch.models.enums import ArrayLayout


@dataclass
class GridArray:
    """Gridded series on an ``ny`` x ``nx`` grid.

    ``SPACE_MAJOR`` data has shape ``(n_time, n_locations)``, ``TIME_MAJOR``
    data has shape ``(n_locations, n_time)``. Locations are numbered
    ``y * nx + x``. Both are C-contiguous, so the flat buffer index is
    ``t * n_locations + l`` and ``l * n_time + t`` respectively.
    """

    data: np.ndarray
    ny: int
    nx: int
    layout: ArrayLayout = ArrayLayout.TIME_MAJOR

    def __post_init__(self):
        if self.data.ndim != 2:
            raise ShapeMismatchError(f"Expected a 2-D buffer, got shape {self.data.shape}")
        n_loc = self.data.shape[1] if self.layout == ArrayLayout.SPACE_MAJOR else self.data.shape[0]
        if n_loc != self.ny * self.nx:
            raise ShapeMismatchError(
                f"Buffer has {n_loc} locations but grid is {self.ny}x{self.nx}"
            )

    @property
    def n_locations(self) -> int:
        return self.ny * self.nx

    @property
    def n_time(self) -> int:
        if self.layout == ArrayLayout.SPACE_MAJOR:
            return self.data.shape[0]
        return self.data.shape[1]

    def transpose(self) -> "GridArray":
        """Full copy into the other layout (not a view)."""
        flipped = (
            ArrayLayout.TIME_MAJOR
            if self.layout == ArrayLayout.SPACE_MAJOR
            else ArrayLayout.SPACE_MAJOR
        )
        return GridArray(np.ascontiguousarray(self.data.T), self.ny, self.nx, flipped)

    def location_series(self, y: int, x: int) -> np.ndarray:
        index = y * self.nx + x
        if self.layout == ArrayLayout.TIME_MAJOR:
            return self.data[index]
        return self.data[:, index]
