"""
Error taxonomy for storage and orchestration failures.

Every storage failure is translated into exactly one of these kinds
before it leaves the storage client. Nothing retries: an error is the
final result of the call that raised it. `kind` names the variant so
callers (and the HTTP layer) can branch without string matching.
"""


class ExplorerError(Exception):
    """Base class for all errors surfaced to callers."""
    kind = "Unknown"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class StorageError(ExplorerError):
    """Raised when an object storage operation fails."""
    pass


class SdkError(StorageError):
    """Generic transport or remote failure; remote message passed through."""
    kind = "SdkError"


class CredentialsError(StorageError):
    """Credentials could not be built or were rejected by the remote."""
    kind = "CredentialsError"


class BucketNotFoundError(StorageError):
    kind = "BucketNotFound"


class ObjectNotFoundError(StorageError):
    kind = "ObjectNotFound"


class NetworkError(StorageError):
    """The endpoint could not be reached or the connection dropped."""
    kind = "NetworkError"


class UnknownStorageError(StorageError):
    kind = "Unknown"


class AccountNotFoundError(ExplorerError):
    """No stored account has the requested local id."""
    kind = "AccountNotFound"


class TransferError(ExplorerError):
    """A local file could not be read for upload or written after download."""
    kind = "TransferError"
