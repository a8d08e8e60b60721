"""Errors raised by message store adapters."""


class StoreError(Exception):
    """Base class for durable store failures."""


class StoreUnavailableError(StoreError):
    """The store could not be reached."""


class StoreWriteError(StoreError):
    """A write (insert/update/delete) was attempted and failed."""
