"""Error taxonomy shared by the store, the services and the API layer."""

from fastapi import status


class ServiceError(Exception):
    """Base error carrying a client-safe message and the HTTP status it maps to."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidInput(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthorized(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(ServiceError):
    status_code = status.HTTP_409_CONFLICT


class ServiceUnavailable(ServiceError):
    """Raised when the database (or another piece of infrastructure) cannot be reached in time."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class UpstreamNotConfigured(ServiceUnavailable):
    """Raised when a relay is called but its base URL or credential is missing."""


class UpstreamUnavailable(ServiceUnavailable):
    """Raised when an upstream media service is unreachable or times out."""

    status_code = status.HTTP_502_BAD_GATEWAY
