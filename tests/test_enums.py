"""Tests for domain enums."""

from cmipfetch.models.enums import ArrayLayout, Granularity, JobState


class TestGranularity:
    def test_values(self):
        assert Granularity("monthly") == Granularity.MONTHLY
        assert Granularity.YEARLY.value == "yearly"

    def test_string_comparison(self):
        assert Granularity.MONTHLY == "monthly"


class TestArrayLayout:
    def test_count(self):
        assert len(ArrayLayout) == 2


class TestJobState:
    def test_order(self):
        assert [s.value for s in JobState] == [
            "NOT_STARTED",
            "AUXILIARY_READY",
            "SOURCE_FETCHED",
            "NORMALIZED",
            "DERIVED",
            "PERSISTED",
            "FAILED",
        ]
