"""Chunked, scale-factor quantized array store backed by zarr.

Values are stored as int32 ``round(value * scale_factor)``. Non-finite or
out-of-range values are written as ``FILL_VALUE`` and read back as NaN.
"""

from __future__ import annotations

import logging
import os
import shutil
import uuid
from pathlib import Path
from typing import Optional

import numpy as np
import zarr

logger = logging.getLogger(__name__)

FILL_VALUE = np.iinfo(np.int32).min
_INT32_MAX = np.iinfo(np.int32).max


def artifact_exists(path: Path | str) -> bool:
    return Path(path).exists()


def quantize(data: np.ndarray, scale_factor: float) -> np.ndarray:
    with np.errstate(invalid="ignore", over="ignore"):
        scaled = np.round(data.astype(np.float64) * scale_factor)
    valid = np.isfinite(scaled) & (scaled > FILL_VALUE) & (scaled <= _INT32_MAX)
    out = np.full(scaled.shape, FILL_VALUE, dtype=np.int32)
    out[valid] = scaled[valid].astype(np.int32)
    return out


def dequantize(stored: np.ndarray, scale_factor: float) -> np.ndarray:
    out = stored.astype(np.float32) / np.float32(scale_factor)
    out[stored == FILL_VALUE] = np.nan
    return out


def write_array(
    path: Path | str,
    data: np.ndarray,
    chunks: tuple[int, int],
    scale_factor: float,
    attrs: Optional[dict] = None,
) -> Path:
    """Write a ``dim0 x dim1`` array, replacing nothing: ``path`` must not exist.

    The array is written under a temporary name next to ``path`` and renamed
    into place once complete, so an interrupted write never leaves a partial
    artifact at ``path``.
    """
    path = Path(path)
    if data.ndim != 2:
        raise ValueError(f"Expected a 2-D array, got shape {data.shape}")
    if scale_factor <= 0:
        raise ValueError(f"Scale factor must be positive, got {scale_factor}")

    dim0, dim1 = data.shape
    chunk0 = max(1, min(chunks[0], dim0))
    chunk1 = max(1, min(chunks[1], dim1))

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex[:8]}.tmp")
    try:
        arr = zarr.open_array(
            store=str(tmp),
            mode="w",
            shape=(dim0, dim1),
            chunks=(chunk0, chunk1),
            dtype="int32",
            fill_value=int(FILL_VALUE),
        )
        arr[:] = quantize(data, scale_factor)
        arr.attrs.update(
            {
                "scale_factor": float(scale_factor),
                "fill_value": int(FILL_VALUE),
                **(attrs or {}),
            }
        )
        os.replace(tmp, path)
    except BaseException:
        shutil.rmtree(tmp, ignore_errors=True)
        raise

    logger.info(
        "Wrote %s (%dx%d, chunks %dx%d, scale %g)",
        path.name,
        dim0,
        dim1,
        chunk0,
        chunk1,
        scale_factor,
    )
    return path


def read_array(path: Path | str) -> np.ndarray:
    """Read the full array back as float32 in its stored ``dim0 x dim1`` shape."""
    arr = zarr.open_array(store=str(path), mode="r")
    scale_factor = float(arr.attrs.get("scale_factor", 1.0))
    return dequantize(np.asarray(arr[:]), scale_factor)


def read_all(path: Path | str) -> np.ndarray:
    """Read the full array as a flat float32 buffer."""
    return read_array(path).ravel()


def read_attrs(path: Path | str) -> dict:
    return dict(zarr.open_array(store=str(path), mode="r").attrs)
