"""
Error codes and exceptions for the sync-sdk.

Error codes follow the format: Sync-{Component}-{HTTP_Code}-{Unique_ID}

Components:
- Client: HTTP transport and source API errors
- Extraction: Orchestrator and fetcher errors
- Repository: Sink errors
- StateStore: Checkpoint persistence errors
- Temporal: Workflow and activity errors

Rate limiting is not an error inside the extraction core: the tracker and the
fetcher report it as a tagged result. ``RateLimitError`` exists only so the
HTTP layer can hand a server-side rejection to the fetcher.
"""

from typing import Optional


class ErrorCode:
    """Error code with component, HTTP code, and description."""

    def __init__(
        self, component: str, http_code: str, unique_id: str, description: str
    ):
        self.code = f"Sync-{component}-{http_code}-{unique_id}"
        self.description = description

    def __str__(self) -> str:
        return f"{self.code}: {self.description}"


# Client Errors
CLIENT_ERRORS = {
    "REQUEST_FAILED": ErrorCode("Client", "500", "00", "Request to source failed"),
    "AUTH_ERROR": ErrorCode("Client", "401", "00", "Source authentication failed"),
    "RATE_LIMITED": ErrorCode("Client", "429", "00", "Source rejected the request"),
    "INVALID_RESPONSE": ErrorCode(
        "Client", "502", "00", "Source returned an unexpected payload"
    ),
}

# Extraction Errors
EXTRACTION_ERRORS = {
    "SCOPE_VALIDATION_ERROR": ErrorCode(
        "Extraction", "400", "00", "Required scope identifiers are missing"
    ),
    "RECORD_TYPE_ERROR": ErrorCode(
        "Extraction", "400", "01", "Record type definitions are inconsistent"
    ),
    "FETCH_FAILED": ErrorCode(
        "Extraction", "500", "00", "Fetching a record type failed"
    ),
}

# Repository Errors
REPOSITORY_ERRORS = {
    "REPOSITORY_NOT_FOUND": ErrorCode(
        "Repository", "404", "00", "Repository is not initialized"
    ),
    "PUSH_FAILED": ErrorCode("Repository", "500", "00", "Pushing records failed"),
}

# State Store Errors
STATE_STORE_ERRORS = {
    "STATE_READ_ERROR": ErrorCode(
        "StateStore", "500", "00", "Reading the checkpoint failed"
    ),
    "STATE_WRITE_ERROR": ErrorCode(
        "StateStore", "500", "01", "Writing the checkpoint failed"
    ),
}

# Temporal Errors
TEMPORAL_ERRORS = {
    "PASS_INVOCATION_LIMIT": ErrorCode(
        "Temporal", "500", "00", "Extraction pass exceeded its invocation limit"
    ),
}


class SyncError(Exception):
    """Base class for every error raised by the SDK.

    Args:
        message (str): Human readable description.
        error_code (Optional[ErrorCode]): Registered code for the failure.
    """

    def __init__(self, message: str, error_code: Optional[ErrorCode] = None):
        self.message = message
        self.error_code = error_code
        super().__init__(message)

    def __str__(self) -> str:
        if self.error_code:
            return f"{self.error_code.code}: {self.message}"
        return self.message


class ValidationError(SyncError):
    """Raised when the event scope lacks identifiers the source requires."""

    def __init__(self, message: str):
        super().__init__(message, EXTRACTION_ERRORS["SCOPE_VALIDATION_ERROR"])


class SinkError(SyncError):
    """Raised when a repository rejects a push or cannot be found."""

    def __init__(self, message: str, error_code: Optional[ErrorCode] = None):
        super().__init__(message, error_code or REPOSITORY_ERRORS["PUSH_FAILED"])


class TransportError(SyncError):
    """Raised when a request to the source fails.

    Args:
        message (str): Description of the failure.
        status_code (Optional[int]): HTTP status, when a response was received.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[ErrorCode] = None,
    ):
        self.status_code = status_code
        super().__init__(message, error_code or CLIENT_ERRORS["REQUEST_FAILED"])


class RateLimitError(TransportError):
    """Raised by the HTTP layer when the source rejects a request for rate.

    Args:
        delay_ms (int): Milliseconds the source asked the caller to wait.
    """

    def __init__(self, delay_ms: int, status_code: Optional[int] = None):
        self.delay_ms = max(0, int(delay_ms))
        super().__init__(
            f"Rate limit exceeded. Need to wait {self.delay_ms} ms",
            status_code=status_code,
            error_code=CLIENT_ERRORS["RATE_LIMITED"],
        )


class StateStoreError(SyncError):
    """Raised when the checkpoint cannot be read or written."""
