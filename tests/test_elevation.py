"""Tests for the once-per-domain elevation grid."""

import threading

import numpy as np
import pytest

from cmipfetch.errors import ElevationError
from cmipfetch.models.catalog import Cmip6Domain
from cmipfetch.services import store
from cmipfetch.services.elevation import ElevationCache

FGOALS = Cmip6Domain.FGOALS_f3_H_daily

OROG = np.array([[0, 10, 20, 30], [40, 50, 60, 70]], dtype=np.float32)
LAND = np.array([[100, 0, 100, 0], [100, 100, 0, 0]], dtype=np.float32)
# Rewrapped by two columns, non-land cells set to -999
EXPECTED = [20, -999, 0, -999, -999, -999, 40, 50]


@pytest.fixture
def published(archive):
    archive.publish("orog", OROG)
    archive.publish("sftlf", LAND)
    return archive


class TestElevationCache:
    def test_builds_and_persists(self, data_dir, small_grid, fetcher, published):
        elevation = ElevationCache(fetcher).get(FGOALS)

        np.testing.assert_array_equal(elevation, EXPECTED)
        assert store.artifact_exists(FGOALS.surface_elevation_file)
        assert store.read_array(FGOALS.surface_elevation_file).shape == (2, 4)

    def test_grid_is_read_only(self, data_dir, small_grid, fetcher, published):
        elevation = ElevationCache(fetcher).get(FGOALS)
        with pytest.raises(ValueError):
            elevation[0] = 1.0

    def test_memoized(self, data_dir, small_grid, fetcher, published):
        cache = ElevationCache(fetcher)
        first = cache.get(FGOALS)
        assert cache.get(FGOALS) is first
        assert len(published.requests) == 2

    def test_concurrent_callers_build_once(self, data_dir, small_grid, fetcher, published):
        cache = ElevationCache(fetcher)
        results = []
        threads = [threading.Thread(target=lambda: results.append(cache.get(FGOALS))) for _ in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 6
        assert all(r is results[0] for r in results)
        assert len(published.requests) == 2

    def test_existing_artifact_skips_download(self, data_dir, small_grid, fetcher, published):
        ElevationCache(fetcher).get(FGOALS)
        published.requests.clear()

        elevation = ElevationCache(fetcher).get(FGOALS)
        np.testing.assert_array_equal(elevation, EXPECTED)
        assert published.requests == []

    def test_failure_is_remembered(self, data_dir, small_grid, fetcher, archive):
        cache = ElevationCache(fetcher)
        with pytest.raises(ElevationError, match="FGOALS"):
            cache.get(FGOALS)
        attempts = len(archive.requests)

        with pytest.raises(ElevationError):
            cache.get(FGOALS)
        assert len(archive.requests) == attempts
        assert not store.artifact_exists(FGOALS.surface_elevation_file)

    def test_domain_without_orography(self, data_dir, small_grid, fetcher, archive):
        assert ElevationCache(fetcher).get(Cmip6Domain.HiRAM_SIT_HR_daily) is None
        assert archive.requests == []

    def test_grid_size_mismatch(self, data_dir, small_grid, fetcher, archive):
        archive.publish("orog", np.zeros((3, 4)))
        archive.publish("sftlf", np.zeros((3, 4)))
        with pytest.raises(ElevationError):
            ElevationCache(fetcher).get(FGOALS)
