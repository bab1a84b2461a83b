from enum import Enum


class Granularity(str, Enum):
    """How one year of a variable is split into source files on the archive."""

    MONTHLY = "monthly"
    YEARLY = "yearly"


class ArrayLayout(str, Enum):
    SPACE_MAJOR = "space_major"
    TIME_MAJOR = "time_major"


class JobState(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    AUXILIARY_READY = "AUXILIARY_READY"
    SOURCE_FETCHED = "SOURCE_FETCHED"
    NORMALIZED = "NORMALIZED"
    DERIVED = "DERIVED"
    PERSISTED = "PERSISTED"
    FAILED = "FAILED"
