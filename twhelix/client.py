from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable, Iterator
from datetime import datetime, timedelta, timezone
from typing import Any, TypeVar

import requests

from twhelix import paginated
from twhelix.auth import TOKEN_URL, CredentialStore, Credentials, TokenAuthority
from twhelix.errors import (
    ConfigurationError,
    ExactlyOneError,
    HelixError,
    HttpStatusError,
    ResponseJsonError,
    RetriesExhaustedError,
    TransportError,
)
from twhelix.utils.env import get_env, load_env_file_if_present
from twhelix.utils.http import (
    QueryParams,
    build_auth_headers,
    decode_json_text,
    json_with_text_in_error,
    query_pairs,
    session_with_retries,
)

logger = logging.getLogger(__name__)

HELIX_BASE_URL = "https://api.twitch.tv/helix"
DEFAULT_USER_AGENT = "twhelix"

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def exactly_one(items: Iterable[T]) -> T:
    """Return the only element of ``items``; raise ExactlyOneError otherwise.

    At most two elements are pulled, so this is safe on lazy page streams.
    """
    iterator = iter(items)
    try:
        first = next(iterator)
    except StopIteration:
        raise ExactlyOneError(empty=True) from None
    for _ in iterator:
        raise ExactlyOneError(empty=False)
    return first


class RateLimitState:
    """When set, no request should be sent before ``reset_at``."""

    def __init__(self) -> None:
        self.reset_at: datetime | None = None
        self._lock = threading.Lock()

    def update(self, reset_at: datetime) -> None:
        with self._lock:
            if self.reset_at is None or reset_at > self.reset_at:
                self.reset_at = reset_at

    def seconds_until_reset(self, now: datetime) -> float | None:
        with self._lock:
            if self.reset_at is None:
                return None
            remaining = (self.reset_at - now).total_seconds()
            if remaining <= 0:
                self.reset_at = None
                return None
            return remaining


class HelixClient:
    """The entry point to the Helix API.

    ``user_agent`` and ``client_id`` are sent with every request. Since Helix
    requires OAuth on all endpoints, ``credentials`` must provide a token, a
    client secret to mint one, or both.

    The client may be shared between threads: the credentials and the
    rate-limit cooldown are shared, everything else is per call.

    Spurious failures (5xx, 429, network errors) are retried immediately and
    without limit unless ``max_spurious_retries`` is set.
    """

    def __init__(
        self,
        user_agent: str,
        client_id: str,
        credentials: Credentials,
        *,
        timeout: float = 30.0,
        max_spurious_retries: int | None = None,
        session: requests.Session | None = None,
        token_url: str = TOKEN_URL,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.headers = {"User-Agent": user_agent, "Client-ID": client_id}
        for name, value in self.headers.items():
            try:
                requests.utils.check_header_validity((name, value))
            except (requests.exceptions.InvalidHeader, TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid {name} header value {value!r}: {e}") from e
        self.client_id = client_id
        self.timeout = timeout
        self.max_spurious_retries = max_spurious_retries
        self.session = session or session_with_retries(single_attempt=[token_url])
        self.rate_limit = RateLimitState()
        self.credentials = CredentialStore(credentials)
        self.auth = TokenAuthority(
            self.credentials,
            self.session,
            client_id,
            headers=self.headers,
            token_url=token_url,
            timeout=timeout,
        )
        self._clock = clock
        self._sleep = sleep

    @classmethod
    def from_env(cls, user_agent: str = DEFAULT_USER_AGENT, **kwargs: Any) -> HelixClient:
        """Build a client from ``TWITCH_CLIENT_ID`` and the credential variables
        read by ``Credentials.from_env``."""
        load_env_file_if_present()
        client_id = get_env("TWITCH_CLIENT_ID", required=True)
        return cls(user_agent, client_id, Credentials.from_env(dotenv=False), **kwargs)

    def get_oauth_token(self, from_error: HelixError | None = None) -> str:
        """Return a token, reauthenticating if ``from_error`` says the last one was rejected."""
        return self.auth.obtain(from_error)

    def get_query(self, path: str, params: QueryParams = None) -> Any:
        """GET ``HELIX_BASE_URL + path`` and return the ``data`` field."""
        return self.get_json(f"{HELIX_BASE_URL}{path}", params)

    def get_json(self, url: str, params: QueryParams = None) -> Any:
        """GET an absolute URL and return the ``data`` field of the response."""
        text = self.get_text(url, params)
        document = decode_json_text(text)
        if not isinstance(document, dict) or "data" not in document:
            raise ResponseJsonError("Response has no data field", text)
        return document["data"]

    def paginate(
        self,
        url: str,
        params: QueryParams = None,
        item_factory: Callable[[Any], T] | None = None,
    ) -> Iterator[T]:
        """Lazily iterate over every item of a paginated endpoint."""
        return paginated.stream(self, url, params, item_factory)

    def get_raw(self, url: str, params: QueryParams = None) -> Any:
        """GET an absolute URL and return the decoded JSON document."""
        return json_with_text_in_error(self._execute(url, params))

    def get_text(self, url: str, params: QueryParams = None) -> str:
        """GET an absolute URL and return the response body undecoded."""
        return self._execute(url, params).text

    def _execute(self, url: str, params: QueryParams) -> requests.Response:
        """Send one logical GET and return the successful response.

        Waits out any rate-limit cooldown before each attempt (and before
        minting a first token), retries spurious failures, and reauthenticates
        once when the token is rejected. Other errors are raised immediately.
        """
        query = query_pairs(params)
        self._wait_for_rate_limit()
        token = self.auth.obtain()
        spurious_failures = 0
        reauthenticated = False
        while True:
            self._wait_for_rate_limit()
            try:
                response = self._send(url, query, token)
            except HelixError as e:
                if e.is_spurious:
                    spurious_failures += 1
                    if (
                        self.max_spurious_retries is not None
                        and spurious_failures > self.max_spurious_retries
                    ):
                        raise RetriesExhaustedError(spurious_failures, e) from e
                    logger.warning(f"Retrying {url} after spurious failure: {e}")
                    continue
                if e.is_invalid_oauth_token and not reauthenticated:
                    logger.warning(f"OAuth token rejected by {url}, reauthenticating")
                    token = self.auth.obtain(e)
                    reauthenticated = True
                    continue
                raise
            return response

    def _send(self, url: str, query: list[tuple[str, str]], token: str) -> requests.Response:
        logger.debug(f"GET {url}")
        try:
            response = self.session.get(
                url,
                params=query,
                headers={**self.headers, **build_auth_headers(token)},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransportError(f"GET {url} failed: {e}") from e
        self._record_rate_limit(response)
        if not 200 <= response.status_code < 300:
            raise HttpStatusError.from_response(response)
        return response

    def _record_rate_limit(self, response: requests.Response) -> None:
        """Store the cooldown advertised by the response headers, if any."""
        headers = response.headers
        reset_at: datetime | None = None
        if response.status_code == 429 and headers.get("Retry-After"):
            try:
                reset_at = self._clock() + timedelta(seconds=float(headers["Retry-After"]))
            except (ValueError, OverflowError, OSError):
                logger.debug(f"Ignoring unusable Retry-After: {headers['Retry-After']!r}")
        exhausted = response.status_code == 429 or headers.get("Ratelimit-Remaining") == "0"
        if reset_at is None and exhausted and headers.get("Ratelimit-Reset"):
            try:
                reset_at = datetime.fromtimestamp(int(headers["Ratelimit-Reset"]), tz=timezone.utc)
            except (ValueError, OverflowError, OSError):
                logger.debug(f"Ignoring unusable Ratelimit-Reset: {headers['Ratelimit-Reset']!r}")
        if reset_at is not None:
            self.rate_limit.update(reset_at)

    def _wait_for_rate_limit(self) -> None:
        # re-check after sleeping; another response may have pushed the reset later
        while True:
            delay = self.rate_limit.seconds_until_reset(self._clock())
            if delay is None:
                return
            logger.info(f"Rate limited, waiting {delay:.1f}s")
            self._sleep(delay)
