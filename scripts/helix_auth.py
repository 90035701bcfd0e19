#!/usr/bin/env python
from __future__ import annotations

import argparse
import json
import logging

from twhelix.auth import Credentials
from twhelix.client import DEFAULT_USER_AGENT, HelixClient
from twhelix.utils.env import get_env, get_env_list, load_env_file_if_present


def main() -> int:
    parser = argparse.ArgumentParser(description="Mint a Helix app access token (client credentials)")
    parser.add_argument(
        "--env-file",
        default=".env",
        help="File with TWITCH_CLIENT_ID / TWITCH_CLIENT_SECRET / TWITCH_SCOPES (default: .env)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    load_env_file_if_present(args.env_file)
    client_id = get_env("TWITCH_CLIENT_ID", required=True)
    secret = get_env("TWITCH_CLIENT_SECRET", required=True)
    # secret only, so a fresh token is always minted
    credentials = Credentials.from_client_secret(secret, get_env_list("TWITCH_SCOPES"))
    client = HelixClient(DEFAULT_USER_AGENT, client_id, credentials)
    token = client.get_oauth_token()
    print(json.dumps({"ok": True, "token_prefix": token[:6] + "...", "len": len(token)}))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
