"""Exception types for Readme Sync."""


class SyncError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(SyncError):
    """A precondition is missing (e.g. no install root is configured).

    Never retried: the lifecycle cannot make progress until someone
    fixes the configuration.
    """


class IoError(SyncError):
    """A directory or file could not be accessed."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class WatchError(SyncError):
    """A directory watch died before it reported a qualifying file."""


class WatchTimeout(WatchError):
    """No qualifying file appeared within the configured wait."""


class RetryLimitExceeded(SyncError):
    """The restart policy gave up on a lifecycle."""


class SyncCancelled(SyncError):
    """The lifecycle was cancelled before it published."""


class ValidationError(SyncError):
    """A recorded attribute does not agree with the item's directory."""

    def __init__(self, item_id: str, message: str):
        super().__init__(message)
        self.item_id = item_id


class MissingAttributeError(ValidationError):
    """The item has no recorded attribute at all."""


class MismatchError(ValidationError):
    """The recorded attribute differs from the content on disk."""
