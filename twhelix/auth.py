"""Credentials and OAuth token handling for the Helix API.

Three kinds of credentials are supported:

- ``SecretOnly``: a client secret and scopes; a token is minted on first use.
- ``TokenOnly``: a ready-made token; when it expires the error is passed on.
- ``SecretAndToken``: a cached token plus the secret to replace it when rejected.

Minting a token turns ``SecretOnly`` into ``SecretAndToken``. A known secret is
never dropped.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass

import requests

from twhelix.errors import (
    ConfigurationError,
    HelixError,
    HttpStatusError,
    ResponseJsonError,
    TransportError,
)
from twhelix.utils.env import get_env, get_env_list, load_env_file_if_present
from twhelix.utils.http import json_with_text_in_error

logger = logging.getLogger(__name__)

TOKEN_URL = "https://id.twitch.tv/oauth2/token"


def _join_scopes(scopes: Iterable[str] | str) -> str:
    if isinstance(scopes, str):
        return scopes
    return " ".join(str(scope) for scope in scopes)


@dataclass(frozen=True)
class Credentials:
    """Authentication material. Use one of the constructors below."""

    @property
    def cached_token(self) -> str | None:
        return None

    @property
    def can_mint(self) -> bool:
        return False

    def with_token(self, token: str) -> Credentials:
        raise NotImplementedError

    @staticmethod
    def from_client_secret(client_secret: str, scopes: Iterable[str] | str = ()) -> SecretOnly:
        """Use the given client secret to generate a new OAuth token."""
        return SecretOnly(client_secret=client_secret, scopes=_join_scopes(scopes))

    @staticmethod
    def from_oauth_token(token: str) -> TokenOnly:
        """Use the given OAuth token. When it expires, the error reaches the caller."""
        return TokenOnly(token=token)

    @staticmethod
    def from_client_secret_and_oauth_token(
        client_secret: str, scopes: Iterable[str] | str, token: str
    ) -> SecretAndToken:
        """Use the given token, minting a replacement from the secret when it expires."""
        return SecretAndToken(client_secret=client_secret, scopes=_join_scopes(scopes), token=token)

    @staticmethod
    def from_env(dotenv: bool = True) -> Credentials:
        """Build credentials from ``TWITCH_CLIENT_SECRET``, ``TWITCH_SCOPES`` and
        ``TWITCH_OAUTH_TOKEN``.

        Raises ConfigurationError if neither a secret nor a token is set.
        """
        if dotenv:
            load_env_file_if_present()
        secret = get_env("TWITCH_CLIENT_SECRET")
        token = get_env("TWITCH_OAUTH_TOKEN")
        scopes = get_env_list("TWITCH_SCOPES")
        if secret and token:
            return Credentials.from_client_secret_and_oauth_token(secret, scopes, token)
        if secret:
            return Credentials.from_client_secret(secret, scopes)
        if token:
            return Credentials.from_oauth_token(token)
        raise ConfigurationError(
            "Missing credentials. Set TWITCH_CLIENT_SECRET and/or TWITCH_OAUTH_TOKEN"
        )


@dataclass(frozen=True, repr=False)
class SecretOnly(Credentials):
    client_secret: str
    scopes: str = ""

    @property
    def can_mint(self) -> bool:
        return True

    def with_token(self, token: str) -> SecretAndToken:
        return SecretAndToken(client_secret=self.client_secret, scopes=self.scopes, token=token)

    def __repr__(self) -> str:
        return f"SecretOnly(scopes={self.scopes!r})"


@dataclass(frozen=True, repr=False)
class TokenOnly(Credentials):
    token: str

    @property
    def cached_token(self) -> str:
        return self.token

    def with_token(self, token: str) -> TokenOnly:
        return TokenOnly(token=token)

    def __repr__(self) -> str:
        return "TokenOnly(token=***)"


@dataclass(frozen=True, repr=False)
class SecretAndToken(Credentials):
    client_secret: str
    scopes: str
    token: str

    @property
    def cached_token(self) -> str:
        return self.token

    @property
    def can_mint(self) -> bool:
        return True

    def with_token(self, token: str) -> SecretAndToken:
        return SecretAndToken(client_secret=self.client_secret, scopes=self.scopes, token=token)

    def __repr__(self) -> str:
        return f"SecretAndToken(scopes={self.scopes!r}, token=***)"


class CredentialStore:
    """Thread-safe holder for the current credentials.

    The stored value is immutable; readers get a snapshot and a new token
    replaces the whole value at once, so a reader never sees a half-updated
    store.
    """

    def __init__(self, credentials: Credentials) -> None:
        if not isinstance(credentials, (SecretOnly, TokenOnly, SecretAndToken)):
            raise ConfigurationError(f"Unsupported credentials: {type(credentials).__name__}")
        self._credentials = credentials
        self._lock = threading.Lock()

    def snapshot(self) -> Credentials:
        with self._lock:
            return self._credentials

    def set_token(self, token: str) -> Credentials:
        with self._lock:
            self._credentials = self._credentials.with_token(token)
            return self._credentials


class TokenAuthority:
    """Hands out bearer tokens, minting a new one only when it has to."""

    def __init__(
        self,
        store: CredentialStore,
        session: requests.Session,
        client_id: str,
        headers: dict[str, str] | None = None,
        token_url: str = TOKEN_URL,
        timeout: float = 30.0,
    ) -> None:
        self.store = store
        self.session = session
        self.client_id = client_id
        self.headers = headers or {}
        self.token_url = token_url
        self.timeout = timeout

    def obtain(self, from_error: HelixError | None = None) -> str:
        """Return an OAuth token.

        ``from_error`` is the failure of the previous request, if any. An
        invalid-token error triggers reauthentication when a client secret is
        known; any other error is raised again unchanged.
        """
        if from_error is not None and not from_error.is_invalid_oauth_token:
            raise from_error
        credentials = self.store.snapshot()
        if from_error is None and credentials.cached_token is not None:
            logger.debug("Using cached OAuth token")
            return credentials.cached_token
        if not credentials.can_mint:
            # token rejected and no secret to mint a new one
            raise from_error
        token = self._mint(credentials)
        self.store.set_token(token)
        return token

    def _mint(self, credentials: SecretOnly | SecretAndToken) -> str:
        params = {
            "client_id": self.client_id,
            "client_secret": credentials.client_secret,
            "grant_type": "client_credentials",
            "scope": credentials.scopes,
        }
        try:
            response = self.session.post(
                self.token_url, params=params, headers=self.headers, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise TransportError(f"Token request failed: {e}") from e
        if not 200 <= response.status_code < 300:
            raise HttpStatusError.from_response(response)

        payload = json_with_text_in_error(response)
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise ResponseJsonError("access_token missing in token response", response.text)
        logger.info(f"Minted new OAuth token ({token[:4]}...)")
        return token
