"""Error taxonomy shared by the record store, blob store and directory services."""
from __future__ import annotations


class LenderDirectoryError(Exception):
    """Base class for every error raised by the directory services."""


class NotFoundError(LenderDirectoryError):
    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"{collection} record {record_id!r} not found")


class ConstraintViolationError(LenderDirectoryError):
    """The store rejected a write (duplicate key, broken foreign key, ...)."""


class StoreUnavailableError(LenderDirectoryError):
    """Backend failure that survived the adapter's retry budget."""


class BlobNotFoundError(LenderDirectoryError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Blob {name!r} not found")


class InvalidLenderError(LenderDirectoryError, ValueError):
    """Lender data violates a directory invariant."""


class InvalidDocumentError(LenderDirectoryError, ValueError):
    """Uploaded document is not an acceptable criteria sheet."""


class PartialFailureError(LenderDirectoryError):
    """
    A multi-step operation completed only in part.
    The lender write went through; the listed criteria sheets did not.
    """

    def __init__(self, lender_id: str, failures: list[tuple[str, BaseException]]):
        self.lender_id = lender_id
        self.failures = failures
        names = ", ".join(name for name, _ in failures)
        super().__init__(f"Lender {lender_id!r} saved but {len(failures)} criteria sheet(s) failed: {names}")

    @property
    def failed_names(self) -> list[str]:
        return [name for name, _ in self.failures]
