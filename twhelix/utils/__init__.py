"""Utility functions for twhelix."""

from twhelix.utils.env import get_env, get_env_list, load_env_file_if_present
from twhelix.utils.http import (
    build_auth_headers,
    decode_json_text,
    json_with_text_in_error,
    query_pairs,
    session_with_retries,
)

__all__ = [
    "load_env_file_if_present",
    "get_env",
    "get_env_list",
    "build_auth_headers",
    "decode_json_text",
    "json_with_text_in_error",
    "query_pairs",
    "session_with_retries",
]
