"""Tests for Pydantic schemas."""

import pytest
from pydantic import ValidationError

from cmipfetch.models.enums import JobState
from cmipfetch.models.schemas import (
    KELVIN_TO_CELSIUS,
    Job,
    JobResult,
    RegularGrid,
    RunSummary,
    Transform,
)


class TestRegularGrid:
    def test_count(self):
        grid = RegularGrid(nx=1440, ny=720, lat_min=-90, lon_min=-180, dx=0.25, dy=0.25)
        assert grid.count == 1_036_800

    def test_rejects_empty_grid(self):
        with pytest.raises(ValidationError):
            RegularGrid(nx=0, ny=720, lat_min=-90, lon_min=-180, dx=0.25, dy=0.25)

    def test_frozen(self):
        grid = RegularGrid(nx=4, ny=2, lat_min=-90, lon_min=-180, dx=90, dy=90)
        with pytest.raises(ValidationError):
            grid.nx = 8


class TestTransform:
    def test_identity(self):
        assert Transform().is_identity
        assert not KELVIN_TO_CELSIUS.is_identity


class TestJobResult:
    def test_ok(self):
        job = Job(domain="FGOALS_f3_H_daily", variable="temperature_2m", year=1950)
        assert JobResult(job=job, state=JobState.PERSISTED).ok
        failed = JobResult(job=job, state=JobState.FAILED, reason="NotFoundError: gone")
        assert not failed.ok
        assert failed.artifact is None


class TestRunSummary:
    def test_defaults(self):
        summary = RunSummary(domain="MRI_AGCM3_2_S_daily")
        assert summary.ok
        assert summary.failures == []

    def test_failures_not_shared(self):
        a = RunSummary(domain="a")
        b = RunSummary(domain="b")
        a.failures.append("x")
        assert b.failures == []

    def test_not_ok_with_failures(self):
        assert not RunSummary(domain="a", failed=1).ok
