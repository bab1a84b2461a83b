"""Per-domain surface elevation grid, built once and shared read-only.

The grid comes from the model's ``orog`` (surface altitude) and ``sftlf``
(land area fraction) fixed fields. Cells that are not land get -999.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

import numpy as np

from cmipfetch.config import settings
from cmipfetch.errors import CmipFetchError, ElevationError
from cmipfetch.models.catalog import Cmip6Domain, fixed_uri
from cmipfetch.pipelines.array_loader import load_variable
from cmipfetch.pipelines.mirror_fetcher import MirrorFetcher
from cmipfetch.services import store
from cmipfetch.services.meteorology import mask_non_land

logger = logging.getLogger(__name__)


class ElevationCache:
    """Memoized elevation grids keyed by domain.

    Concurrent callers for the same domain block on one construction. A
    failed construction is remembered and re-raised to every later caller
    without retrying.
    """

    def __init__(self, fetcher: MirrorFetcher | None = None):
        self.fetcher = fetcher
        self._grids: dict[Cmip6Domain, Optional[np.ndarray]] = {}
        self._errors: dict[Cmip6Domain, ElevationError] = {}
        self._locks: dict[Cmip6Domain, threading.Lock] = {}
        self._guard = threading.Lock()

    def get(self, domain: Cmip6Domain) -> Optional[np.ndarray]:
        """Flat elevation per location (``y * nx + x``), or None without orography."""
        with self._domain_lock(domain):
            if domain in self._errors:
                raise self._errors[domain]
            if domain not in self._grids:
                try:
                    self._grids[domain] = self._build(domain)
                except (CmipFetchError, OSError) as e:
                    error = ElevationError(f"Elevation for {domain.value} unavailable: {e}")
                    self._errors[domain] = error
                    raise error from e
            return self._grids[domain]

    def _domain_lock(self, domain: Cmip6Domain) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(domain)
            if lock is None:
                lock = self._locks[domain] = threading.Lock()
            return lock

    def _build(self, domain: Cmip6Domain) -> Optional[np.ndarray]:
        versions = domain.version_orography
        if versions is None:
            logger.info("%s has no orography, elevation unavailable", domain.value)
            return None

        path = domain.surface_elevation_file
        if not store.artifact_exists(path):
            self._download_and_persist(domain, versions)

        elevation = store.read_all(path)
        if elevation.size != domain.grid.count:
            raise ElevationError(
                f"{path} has {elevation.size} cells, grid has {domain.grid.count}"
            )
        elevation.setflags(write=False)
        logger.info("Elevation for %s ready (%d cells)", domain.value, elevation.size)
        return elevation

    def _download_and_persist(self, domain: Cmip6Domain, versions: tuple[str, str]) -> None:
        altitude_version, landmask_version = versions
        fetcher = self.fetcher or MirrorFetcher()
        download_dir = domain.download_directory

        altitude_file = fetcher.fetch(
            fixed_uri(domain, "orog", altitude_version), download_dir / "orog_fx.nc"
        )
        land_file = fetcher.fetch(
            fixed_uri(domain, "sftlf", landmask_version), download_dir / "sftlf_fx.nc"
        )

        altitude = load_variable(altitude_file, "orog")
        land_fraction = load_variable(land_file, "sftlf")
        elevation = mask_non_land(
            altitude.data.ravel(),
            land_fraction.data.ravel(),
            threshold=settings.land_fraction_threshold,
            sentinel=settings.elevation_sea_value,
        )

        grid = domain.grid
        if elevation.size != grid.count:
            raise ElevationError(
                f"orog has {elevation.size} cells, {domain.value} grid has {grid.count}"
            )
        chunk = settings.elevation_chunk
        store.write_array(
            domain.surface_elevation_file,
            elevation.reshape(grid.ny, grid.nx),
            chunks=(chunk, chunk),
            scale_factor=1,
            attrs={"domain": domain.value, "variable": "elevation", "units": "m"},
        )
