from __future__ import annotations


class AirgenError(Exception):
    """Base class for errors raised by the studio."""


class RecordStoreError(AirgenError):
    """Raised when the record store rejects or fails a request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthError(RecordStoreError):
    """Credentials were refused (401/403)."""


class NotFoundError(RecordStoreError):
    """Base or table does not exist (404)."""


class NetworkError(RecordStoreError):
    """The request never produced an HTTP response."""


class StoreConnectionError(AirgenError):
    """Bad credentials, base or table; raised before any run starts."""

    def __init__(self, message: str, cause: RecordStoreError | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class FetchError(AirgenError):
    """The initial record load failed."""

    def __init__(self, message: str, cause: RecordStoreError | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class GenerationError(AirgenError):
    """The generation service failed for a single record."""


class MissingInputError(AirgenError):
    """A record lacks the input the configured mode needs."""


class CommitError(AirgenError):
    """Writing a pending update back to the record store failed."""

    def __init__(self, record_id: str, cause: RecordStoreError) -> None:
        super().__init__(f"{record_id}: {cause.message}")
        self.record_id = record_id
        self.cause = cause


class NotConnectedError(AirgenError):
    """An operation needs a record store connection and none is open."""


class RunInProgressError(AirgenError):
    """A batch run is already active."""
