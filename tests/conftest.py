"""Shared test fixtures."""

import os

# Set debug mode BEFORE any cmipfetch imports so Settings picks it up
os.environ["CMIPFETCH_DEBUG"] = "true"

from pathlib import Path
from unittest.mock import PropertyMock, patch

import numpy as np
import pytest
import requests
import xarray as xr

from cmipfetch.config import settings
from cmipfetch.models.catalog import Cmip6Domain
from cmipfetch.models.schemas import RegularGrid

SMALL_GRID = RegularGrid(nx=4, ny=2, lat_min=-90, lon_min=-180, dx=90, dy=90)


def write_nc(path: Path, name: str, data: np.ndarray, dtype="float32", zlib=False) -> Path:
    """Write ``data`` as a (time, lat, lon) or (lat, lon) NetCDF variable."""
    dims = ("time", "lat", "lon") if data.ndim == 3 else ("lat", "lon")
    ds = xr.Dataset({name: (dims, np.asarray(data, dtype=dtype))})
    encoding = {name: {"zlib": True, "complevel": 4, "shuffle": False}} if zlib else None
    ds.to_netcdf(path, encoding=encoding)
    ds.close()
    return path


def write_corrupt_nc(path: Path, name: str, data: np.ndarray) -> Path:
    """Compressed NetCDF whose data chunk has 64 bytes flipped.

    ``data`` should be large and incompressible so the middle of the file
    falls inside the compressed chunk, not the HDF5 metadata.
    """
    write_nc(path, name, data, zlib=True)
    raw = bytearray(path.read_bytes())
    middle = len(raw) // 2
    for i in range(middle, middle + 64):
        raw[i] ^= 0xFF
    path.write_bytes(bytes(raw))
    return path


def short_name_from_uri(url: str) -> str:
    """``.../{table}/{short}/{grid}/v{version}/{file}`` -> ``short``."""
    parts = url.rstrip("/").split("/")
    return parts[-4]


class FakeResponse:
    def __init__(self, status_code=200, content=b"", chunks=None, fail_after=None):
        self.status_code = status_code
        self.content = content
        self.headers = {"content-length": str(len(content))}
        self._chunks = chunks
        self._fail_after = fail_after

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def iter_content(self, chunk_size=1):
        chunks = self._chunks or [
            self.content[i : i + chunk_size] for i in range(0, len(self.content), chunk_size)
        ]
        for i, chunk in enumerate(chunks):
            if self._fail_after is not None and i >= self._fail_after:
                raise requests.ConnectionError("connection reset")
            yield chunk


class FakeSession:
    """Stands in for ``requests.Session``.

    ``routes`` maps a mirror base URL to a callable ``url -> FakeResponse`` or
    to a fixed response. Unknown mirrors answer 404.
    """

    def __init__(self, routes=None):
        self.routes = routes or {}
        self.requested: list[str] = []

    def get(self, url, stream=False, timeout=None):
        self.requested.append(url)
        for base, route in self.routes.items():
            if url.startswith(base):
                if isinstance(route, BaseException):
                    raise route
                return route(url) if callable(route) else route
        return FakeResponse(404)


class FakeArchive:
    """A mirror serving NetCDF files keyed by CMIP6 short name."""

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)
        self.files: dict[str, bytes] = {}
        self.requests: list[str] = []

    def publish(self, short: str, data: np.ndarray, dtype="float32") -> None:
        path = write_nc(self.root / f"{short}.nc", short, data, dtype=dtype)
        self.files[short] = path.read_bytes()

    def publish_corrupt(self, short: str, data: np.ndarray) -> None:
        path = write_corrupt_nc(self.root / f"{short}.nc", short, data)
        self.files[short] = path.read_bytes()

    def __call__(self, url: str) -> FakeResponse:
        self.requests.append(url)
        short = short_name_from_uri(url)
        if short not in self.files:
            return FakeResponse(404)
        return FakeResponse(200, self.files[short])


@pytest.fixture
def data_dir(tmp_path):
    """Point settings.data_dir at a temporary directory."""
    root = tmp_path / "data"
    with patch.object(settings, "data_dir", root):
        yield root


@pytest.fixture
def small_grid():
    """Shrink every domain grid to 2 x 4 cells."""
    with patch.object(Cmip6Domain, "grid", new_callable=PropertyMock, return_value=SMALL_GRID):
        yield SMALL_GRID


@pytest.fixture
def archive(tmp_path):
    return FakeArchive(tmp_path / "remote")


@pytest.fixture
def fetcher(archive):
    """MirrorFetcher whose second mirror is the fake archive; the first has nothing."""
    from cmipfetch.pipelines.mirror_fetcher import MirrorFetcher

    session = FakeSession({"https://empty.example/": FakeResponse(404), "https://archive.example/": archive})
    return MirrorFetcher(
        mirrors=["https://empty.example/", "https://archive.example/"],
        session=session,
        max_concurrent=2,
    )


@pytest.fixture
def space_major_series():
    """3 days on the 2 x 4 grid, value = 100 * t + 10 * y + x."""
    t, y, x = np.meshgrid(np.arange(3), np.arange(2), np.arange(4), indexing="ij")
    return (100 * t + 10 * y + x).astype(np.float32)
