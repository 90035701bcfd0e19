"""Exceptions raised by the Helix client."""

from __future__ import annotations


class HelixError(Exception):
    """Base class for every error raised by twhelix."""

    @property
    def is_invalid_oauth_token(self) -> bool:
        return False

    @property
    def is_spurious(self) -> bool:
        """True for failures presumed transient (5xx, 429, network)."""
        return False


class ConfigurationError(HelixError):
    """Raised for invalid construction input or missing environment settings."""

    pass


class HttpStatusError(HelixError):
    """A response came back with a non-2xx status.

    The response body is kept verbatim for diagnostics.
    """

    def __init__(self, status_code: int, body: str | None = None, url: str | None = None) -> None:
        self.status_code = status_code
        self.body = body
        self.url = url
        message = f"HTTP {status_code}"
        if url:
            message += f" for url: {url}"
        if body:
            message += f", body:\n\n{body}"
        super().__init__(message)

    @classmethod
    def from_response(cls, response) -> HttpStatusError:
        """Build the matching subclass for a `requests.Response`."""
        status = response.status_code
        if status == 401:
            error_cls: type[HttpStatusError] = UnauthorizedError
        elif status == 429:
            error_cls = RateLimitedError
        elif status >= 500:
            error_cls = ServerError
        elif status >= 400:
            error_cls = ClientError
        else:
            error_cls = cls
        return error_cls(status, response.text, response.url)


class UnauthorizedError(HttpStatusError):
    """401: the bearer token was rejected."""

    @property
    def is_invalid_oauth_token(self) -> bool:
        return True


class ClientError(HttpStatusError):
    """4xx other than 401. Never retried."""

    pass


class ServerError(HttpStatusError):
    """5xx. Retried."""

    @property
    def is_spurious(self) -> bool:
        return True


class RateLimitedError(HttpStatusError):
    """429. Retried once the advertised cooldown has passed."""

    @property
    def is_spurious(self) -> bool:
        return True


class TransportError(HelixError):
    """Network-level failure (timeout, connection reset, DNS)."""

    @property
    def is_spurious(self) -> bool:
        return True


class RetriesExhaustedError(HelixError):
    """Raised when a retry cap is configured and spurious failures exceed it."""

    def __init__(self, attempts: int, last_error: HelixError) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Giving up after {attempts} spurious failures: {last_error}")


class ResponseJsonError(HelixError):
    """The response body could not be decoded into the expected shape."""

    def __init__(self, message: str, body: str) -> None:
        self.body = body
        super().__init__(f"{message}, body:\n\n{body}")


class ExactlyOneError(HelixError):
    """A call expecting exactly one result got zero or several."""

    def __init__(self, empty: bool) -> None:
        self.empty = empty
        if empty:
            message = "tried to get exactly one item from an iterator but it was empty"
        else:
            message = "tried to get exactly one item from an iterator but it contained multiple items"
        super().__init__(message)
