"""Exception hierarchy shared by all layers."""


class FluentiaError(Exception):
    """Base class for every error raised by Fluentia."""


class RemoteStoreError(FluentiaError):
    """The remote progress store could not be reached or returned garbage."""


class PushError(RemoteStoreError):
    """An upsert to the remote progress store failed."""


class CacheError(FluentiaError):
    """The durable local key/value store failed to read or write."""
