from http import HTTPStatus


class AppError(Exception):
    """Base application error for the IP lookup service.

    Subclasses set `status_code`; the exception message is returned to the
    caller as-is in the `{"message", "code"}` error body.
    """

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequestError(AppError):
    """Base error for requests whose IP address cannot be used."""

    status_code = HTTPStatus.BAD_REQUEST


class InvalidIpError(BadRequestError):
    """Raised when the candidate IP address is syntactically invalid."""


class IpUndeterminedError(BadRequestError):
    """Raised when no IP address can be derived from the request."""


class IpNotFoundError(AppError):
    """Raised when no geolocation record exists for the IP."""

    status_code = HTTPStatus.NOT_FOUND


class ServiceUnavailableError(AppError):
    """Raised when the GeoIP provider has not been loaded."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR


class DatabaseNotLoadedError(ServiceUnavailableError):
    """Raised by the health check when the GeoIP database is missing."""


class ConfigurationError(AppError):
    """Raised at startup when the service configuration is unusable."""


class DatabaseOpenError(AppError):
    """Raised at startup when the GeoIP database cannot be opened."""
