"""Error taxonomy of the document lifecycle engine.

Every failure that leaves a service is a subclass of :class:`LifecycleError`,
so callers (and the HTTP facade) can tell lifecycle failures apart from
programming errors.
"""


class LifecycleError(Exception):
    """Base class for all document lifecycle failures."""


class ApiRequestError(LifecycleError):
    """The backend answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int, url: str = "", body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.url = url
        self.body = body


class NetworkError(LifecycleError):
    """A read (relationships, audit, versions) could not reach the backend."""


class NotFoundError(LifecycleError):
    """The referenced document (or its version group) does not exist."""


######## UPLOAD ########

class UploadValidationError(LifecycleError):
    """The file cannot be uploaded as given (empty, missing name, ...)."""


class FileTooLargeError(UploadValidationError):
    """The file exceeds the configured upload size limit."""

    def __init__(self, message: str, size_bytes: int, limit_bytes: int):
        super().__init__(message)
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes


class UploadCancelledError(LifecycleError):
    """The upload session was abandoned before the commit phase."""


class SigningError(LifecycleError):
    """The backend refused or failed to issue a signed upload destination."""


class TransportError(LifecycleError):
    """The byte transfer failed on every attempt of the retry budget."""

    def __init__(self, message: str, attempts: int, status_code: int | None = None):
        super().__init__(message)
        self.attempts = attempts
        self.status_code = status_code


class ExtractionError(LifecycleError):
    """OCR or structured metadata extraction failed."""


class PlacementRequiredError(LifecycleError):
    """An elevated caller must choose a destination folder or department."""


class FolderCreationError(LifecycleError):
    """A prefix of the destination folder path could not be created."""

    def __init__(self, message: str, path: list[str]):
        super().__init__(message)
        self.path = path


class RecordCreationError(LifecycleError):
    """The pending document record could not be created."""


class FinalizeError(LifecycleError):
    """The pending record exists but could not be bound to its stored file."""

    def __init__(self, message: str, document_id: str):
        super().__init__(message)
        self.document_id = document_id


######## VERSIONS & LINKS ########

class VersionConflictError(LifecycleError):
    """The backend rejected a version reorder because of a conflicting change."""


class DuplicateLinkError(LifecycleError):
    """The exact (from, to, type) link already exists."""


class SelfLinkError(LifecycleError):
    """A document cannot be linked to itself."""
