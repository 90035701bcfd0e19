from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import Any, Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from twhelix.errors import ResponseJsonError

QueryParams = Union[Mapping[str, Any], Iterable[tuple[str, Any]], None]


def session_with_retries(
    connect: int = 3, backoff: float = 0.5, single_attempt: Iterable[str] = ()
) -> requests.Session:
    """Session that retries failed connection attempts at the socket level.

    Status-based retries are left to the request executor, which needs to see
    every response to track rate limits and reauthenticate. URLs starting with
    a prefix in ``single_attempt`` (the token endpoint) are never retried.
    """
    sess = requests.Session()
    retries = Retry(
        total=connect,
        connect=connect,
        read=0,
        status=0,
        backoff_factor=backoff,
        allowed_methods=("GET", "POST"),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retries)
    sess.mount("http://", adapter)
    sess.mount("https://", adapter)
    for prefix in single_attempt:
        sess.mount(prefix, HTTPAdapter(max_retries=0))
    return sess


def build_auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def query_pairs(params: QueryParams) -> list[tuple[str, str]]:
    """Flatten query params into ``(key, value)`` pairs.

    Mapping values that are lists/tuples/sets become repeated keys, which is how
    Helix takes multi-valued filters (``?id=1&id=2``).
    """
    if params is None:
        return []
    items = params.items() if isinstance(params, Mapping) else params
    pairs: list[tuple[str, str]] = []
    for key, value in items:
        if isinstance(value, (list, tuple, set, frozenset)):
            pairs.extend((key, str(v)) for v in value)
        else:
            pairs.append((key, str(value)))
    return pairs


def json_with_text_in_error(response: requests.Response) -> Any:
    """Decode a JSON body, keeping the raw text in the error if it fails."""
    return decode_json_text(response.text)


def decode_json_text(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError as e:
        raise ResponseJsonError(f"Invalid JSON in response: {e}", text) from e
