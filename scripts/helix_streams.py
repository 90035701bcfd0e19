#!/usr/bin/env python
from __future__ import annotations

import argparse
import itertools
import logging

import pandas as pd

from twhelix.client import HelixClient
from twhelix.models import Stream


def main() -> int:
    parser = argparse.ArgumentParser(description="List live streams (/helix/streams)")
    parser.add_argument("--game", action="append", default=[], help="Game ID filter (repeatable)")
    parser.add_argument("--user", action="append", default=[], help="User ID filter (repeatable)")
    parser.add_argument("--language", action="append", default=[], help="Language filter (repeatable)")
    parser.add_argument("--limit", type=int, default=20, help="Rows to fetch and display")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    client = HelixClient.from_env(user_agent="twhelix-streams")
    streams = Stream.list(client, games=args.game, users=args.user, languages=args.language)
    # pages are fetched lazily, so only as many as needed for --limit
    rows = [
        {
            "user": s.user_name,
            "title": s.title,
            "viewers": s.viewer_count,
            "language": s.language,
            "started_at": s.started_at,
            "url": s.url,
        }
        for s in itertools.islice(streams, args.limit)
    ]
    df = pd.DataFrame(rows)
    print(df.to_string(index=False) if not df.empty else "No live streams found")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
