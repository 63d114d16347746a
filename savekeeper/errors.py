"""Exception hierarchy for SaveKeeper.

All application-specific exceptions inherit from SaveKeeperError,
allowing callers to catch broad or narrow as needed.
"""


class SaveKeeperError(Exception):
    """Base exception for all SaveKeeper errors."""


class NotFoundError(SaveKeeperError):
    """Requested application id is not in the catalog."""


class ValidationError(SaveKeeperError):
    """Supplied path does not exist or a policy value is out of range."""


class StorageError(SaveKeeperError):
    """Filesystem create/read/write failure during scan, archive, or prune."""


class TransportError(SaveKeeperError):
    """HTTP failure or malformed response from the knowledge source."""
