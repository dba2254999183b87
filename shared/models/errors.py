"""Exception types shared between the capability clients and the services."""

from typing import Literal

ErrorKind = Literal["auth", "permission", "not_found", "other"]


def kind_from_status(status_code: int | None) -> ErrorKind:
    """Map an HTTP status code to a storage error kind.

    Args:
        status_code (int | None): The upstream HTTP status, if any.

    Returns:
        ErrorKind: "auth" for 401, "permission" for 403, "not_found" for 404, else "other".
    """
    if status_code == 401:
        return "auth"
    if status_code == 403:
        return "permission"
    if status_code == 404:
        return "not_found"
    return "other"


class ClientResponseError(Exception):
    """Raised by an HTTP client when its backend answers with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StorageError(ClientResponseError):
    """Raised by cloud-storage clients when the provider API rejects a request.

    Carries a structured ``kind`` so callers never have to sniff the message.
    """

    def __init__(self, message: str, kind: ErrorKind = "other", status_code: int | None = None) -> None:
        super().__init__(message, status_code=status_code)
        self.kind: ErrorKind = kind


class SourceAccessError(Exception):
    """Raised by the credential lifecycle after classification and bookkeeping."""

    def __init__(self, message: str, kind: ErrorKind = "other") -> None:
        super().__init__(message)
        self.kind: ErrorKind = kind


class SourceNotFoundError(Exception):
    """The document source does not exist or belongs to another user."""


class ConversationNotFoundError(Exception):
    """The conversation does not exist or belongs to another user."""


class UnsupportedFormatError(Exception):
    """No text extractor handles the file extension."""


class UniqueConstraintError(Exception):
    """A repository insert collided with a unique key."""


class SyncAlreadyRunningError(Exception):
    """A sync run is already in flight on this orchestrator."""


class TrackedFileNotFoundError(Exception):
    """The file is not tracked under the given source."""
