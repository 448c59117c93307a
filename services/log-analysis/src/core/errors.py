"""
BugSage - Service Errors
========================

Failure kinds surfaced by the log analysis service. Each carries the
HTTP status and error code the API reports it with.
"""


class BugSageError(Exception):
    """Base class for errors the API turns into structured responses."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationError(BugSageError):
    """Missing, malformed or rejected bearer token."""

    status_code = 401
    error_code = "authentication_failed"


class UpstreamServiceError(BugSageError):
    """The text-generation provider failed or returned nothing usable."""

    status_code = 502
    error_code = "upstream_service_error"

    def __init__(self, message: str, provider: str):
        super().__init__(message)
        self.provider = provider


class PersistenceError(BugSageError):
    """The history store could not complete an operation."""

    status_code = 503
    error_code = "persistence_error"


class HistoryItemNotFoundError(BugSageError):
    """No saved analysis with the given ID belongs to the caller."""

    status_code = 404
    error_code = "not_found"

    def __init__(self, item_id: str):
        super().__init__(f"Analysis {item_id} not found")
        self.item_id = item_id
