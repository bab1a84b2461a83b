"""Exception taxonomy shared by the fetch, decode, derive and pipeline layers."""

from __future__ import annotations


class CmipFetchError(Exception):
    """Base class for all errors raised by cmipfetch."""


# ---------------------------------------------------------------------------
# Fetch
# ---------------------------------------------------------------------------
class FetchError(CmipFetchError):
    def __init__(self, message: str, url: str | None = None):
        super().__init__(message)
        self.url = url


class NotFoundError(FetchError):
    """The resource is missing on the (last) mirror."""


class ServerError(FetchError):
    def __init__(self, message: str, url: str | None = None, status_code: int | None = None):
        super().__init__(message, url)
        self.status_code = status_code


class FetchTimeoutError(FetchError):
    pass


class TransportError(FetchError):
    pass


# ---------------------------------------------------------------------------
# Decode
# ---------------------------------------------------------------------------
class DecodeError(CmipFetchError):
    pass


class MissingVariableError(DecodeError):
    pass


class WrongTypeError(DecodeError):
    pass


class ShapeMismatchError(DecodeError):
    pass


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
class ConfigError(CmipFetchError):
    pass


class UnknownDomainError(ConfigError):
    pass


class UndefinedGranularityError(ConfigError):
    pass


# ---------------------------------------------------------------------------
# Derived quantities
# ---------------------------------------------------------------------------
class DeriveError(CmipFetchError):
    pass


class DeriveShapeMismatchError(DeriveError):
    pass


class ElevationError(CmipFetchError):
    """The per-domain elevation grid could not be built."""
