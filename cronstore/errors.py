"""
Error taxonomy for cronstore.

Every failure that leaves the package is one of these. SQLAlchemy and driver
exceptions are chained as ``__cause__``.
"""


class CronStoreError(Exception):
    """Base class for all cronstore errors."""
    pass


class StoreConnectionError(CronStoreError):
    """Raised when the pool cannot be created, the probe fails, or the
    connection is used before open()."""
    pass


class SerializationError(CronStoreError):
    """Raised when a document cannot be encoded, or a history row cannot be decoded."""
    pass


class QueryError(CronStoreError):
    """Raised for any other backing-store failure."""
    pass


class QueryTimeoutError(QueryError):
    """Raised when a statement deadline fires or no pooled connection frees up in time."""
    pass


class ConfigurationError(CronStoreError):
    """Raised when a setting mapping is invalid."""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class DriverError(CronStoreError):
    """Raised on driver registry misuse."""
    pass
