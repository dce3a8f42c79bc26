"""Exceptions raised by the API clients.

Callers catch ``ClientError`` at the boundary where a failure is tolerated,
e.g. per relation, and let the specific subclasses carry the HTTP detail.
"""


class ClientError(Exception):
    """Base class for every client failure."""


class ClientConnectionError(ClientError):
    """The server could not be reached or the request timed out."""


class AuthenticationError(ClientError):
    """The API rejected the credentials (HTTP 401/403)."""


class ResourceNotFoundError(ClientError):
    """The requested resource does not exist (HTTP 404)."""


class JsonParseError(ClientError):
    """A response body was not valid JSON."""


class ApiError(ClientError):
    """Any other error response, e.g. a rejected relation (HTTP 422)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(ApiError):
    """Too many requests (HTTP 429); ``retry_after`` is in seconds when sent."""

    def __init__(self, message: str, retry_after: int | None = None) -> None:
        super().__init__(message, status_code=429)
        self.retry_after = retry_after
