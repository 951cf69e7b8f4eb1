from typing import Optional


class FlightSearchError(Exception):
    """Base class for errors that end a search request."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def public_message(self) -> str:
        return self.message


class ValidationError(FlightSearchError):
    """User-correctable problem with the search input. Shown verbatim."""

    status_code = 400


class AuthError(FlightSearchError):
    """
    The credential exchange with the provider failed.
    The detail is for the server log only; clients get a generic message.
    """

    status_code = 500

    @property
    def public_message(self) -> str:
        return "Upstream authentication provider failed."


class ProviderError(FlightSearchError):
    """Upstream search failure (rate limit, bad query, outage, timeout)."""

    status_code = 500

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status
