from typing import Any, Optional


class SkycastError(Exception):
    """Base class for every failure raised by skycast."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class GatewayError(SkycastError):
    """A server-side failure that maps onto an HTTP error response."""

    status_code = 500

    def __init__(self, message: str, *, status_code: Optional[int] = None, details: Any = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_body(self) -> dict:
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class MissingCredential(GatewayError):
    status_code = 500

    def __init__(self, message: str = "Server missing OPENWEATHER_API_KEY"):
        super().__init__(message)


class InvalidRequest(GatewayError):
    status_code = 400


class LocationNotFound(GatewayError):
    status_code = 404


class UpstreamShapeError(GatewayError):
    status_code = 502


class UpstreamError(GatewayError):
    """Non-success reply from the Provider; carries the Provider's own status."""

    status_code = 502


class InternalError(GatewayError):
    status_code = 500


class EmptyQuery(SkycastError):
    def __init__(self, message: str = "Please enter a city name."):
        super().__init__(message)


class SearchFailed(SkycastError):
    """Raised on the client side when a call to the HTTP surface fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
