"""Thin xarray adapter over downloaded NetCDF source files."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import xarray as xr

from cmipfetch.errors import DecodeError, MissingVariableError, WrongTypeError

logger = logging.getLogger(__name__)


class SourceFile:
    """Read-only view of a NetCDF file.

    Values are returned raw: no CF masking, scaling or time decoding, so
    fill values such as ``1e20`` come through untouched.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        try:
            self._ds = xr.open_dataset(self.path, mask_and_scale=False, decode_times=False)
        except (OSError, RuntimeError, ValueError) as e:
            raise DecodeError(f"Could not open {self.path}: {e}") from e

    def __enter__(self) -> "SourceFile":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._ds.close()

    def variables(self) -> list[str]:
        return [str(name) for name in self._ds.data_vars]

    def read_variable(self, name: str) -> tuple[np.ndarray, tuple[int, ...]]:
        """Return the variable as a flat float32 buffer plus its dimension sizes."""
        if name not in self._ds.data_vars:
            raise MissingVariableError(f"Variable '{name}' not found in {self.path.name}")
        var = self._ds[name]
        if not np.issubdtype(var.dtype, np.floating):
            raise WrongTypeError(
                f"Variable '{name}' in {self.path.name} is {var.dtype}, expected float"
            )
        shape = tuple(int(n) for n in var.shape)
        # Callers transform the buffer in place, so never hand out the cached values
        try:
            data = np.array(var.values, dtype=np.float32).ravel()
        except (OSError, RuntimeError, ValueError) as e:
            # netCDF4 reports corrupt compressed chunks as RuntimeError
            raise DecodeError(f"Could not read '{name}' from {self.path.name}: {e}") from e
        logger.debug("Read %s%s from %s", name, shape, self.path.name)
        return data, shape
