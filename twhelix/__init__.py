"""A client for the Twitch Helix API.

This package provides:
- OAuth client-credentials handling with a shared, thread-safe token cache
- A GET executor that respects rate limits, retries spurious failures and
  reauthenticates when a token is rejected
- Lazy iteration over cursor-paginated endpoints
- Typed entities for the endpoints in ``twhelix.models``
"""

from twhelix.auth import Credentials, SecretAndToken, SecretOnly, TokenOnly
from twhelix.client import HELIX_BASE_URL, HelixClient, exactly_one
from twhelix.errors import (
    ClientError,
    ConfigurationError,
    ExactlyOneError,
    HelixError,
    HttpStatusError,
    RateLimitedError,
    ResponseJsonError,
    RetriesExhaustedError,
    ServerError,
    TransportError,
    UnauthorizedError,
)

__all__ = [
    "HELIX_BASE_URL",
    "HelixClient",
    "Credentials",
    "SecretOnly",
    "TokenOnly",
    "SecretAndToken",
    "exactly_one",
    "HelixError",
    "ConfigurationError",
    "HttpStatusError",
    "UnauthorizedError",
    "ClientError",
    "ServerError",
    "RateLimitedError",
    "TransportError",
    "RetriesExhaustedError",
    "ResponseJsonError",
    "ExactlyOneError",
]
