"""Data types returned by the API, with helpers for the endpoints that return them."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from twhelix.client import HELIX_BASE_URL, exactly_one
from twhelix.paginated import decode_item

if TYPE_CHECKING:
    from twhelix.client import HelixClient

KRAKEN_VIDEOS_URL = "https://api.twitch.tv/v5/videos"


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class GameId(str):
    """An unvalidated game ID."""

    def get(self, client: HelixClient) -> Game:
        """Get info about this game from the API."""
        games = client.get_query("/games", [("id", self)])
        return decode_item(Game.from_dict, exactly_one(games))


class StreamId(str):
    """An unvalidated stream ID."""


class TagId(str):
    """An unvalidated stream tag ID."""


class UserId(str):
    """An unvalidated user/channel ID."""


class VideoId(str):
    """An unvalidated video ID."""

    def chatlog_after(self, client: HelixClient, start: timedelta) -> Chatlog:
        """Get the next chunk of chat for this video, starting ``start`` into it.

        Uses an undocumented endpoint of the old Kraken API, which returns the
        document without a ``data`` envelope.
        """
        document = client.get_raw(
            f"{KRAKEN_VIDEOS_URL}/{self}/comments",
            [("content_offset_seconds", str(int(start.total_seconds())))],
        )
        return decode_item(Chatlog.from_dict, document)


@dataclass
class Follow:
    """A follow relationship: ``from_id`` follows ``to_id``."""

    from_id: UserId
    from_name: str
    to_id: UserId
    to_name: str
    followed_at: datetime

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Follow:
        return cls(
            from_id=UserId(data["from_id"]),
            from_name=data["from_name"],
            to_id=UserId(data["to_id"]),
            to_name=data["to_name"],
            followed_at=_parse_timestamp(data["followed_at"]),
        )

    @classmethod
    def from_user(cls, client: HelixClient, from_id: str) -> Iterator[Follow]:
        """All users followed by ``from_id``."""
        return client.paginate(
            f"{HELIX_BASE_URL}/users/follows", [("from_id", from_id)], cls.from_dict
        )


@dataclass
class Game:
    id: GameId
    name: str
    box_art_url: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Game:
        return cls(id=GameId(data["id"]), name=data["name"], box_art_url=data.get("box_art_url") or None)

    @classmethod
    def list(cls, client: HelixClient, ids: Iterable[str]) -> Iterator[Game]:
        """The games with the given IDs, in arbitrary order. At most 100 IDs."""
        return client.paginate(f"{HELIX_BASE_URL}/games", [("id", i) for i in ids], cls.from_dict)

    def __str__(self) -> str:
        return self.name


class StreamType(enum.Enum):
    LIVE = "live"
    # returned "in case of error"
    ERROR = ""


@dataclass
class Stream:
    """A live stream as returned by the streams endpoint."""

    id: StreamId
    user_id: UserId
    user_name: str
    game_id: GameId
    title: str
    type: StreamType
    viewer_count: int
    started_at: datetime
    language: str
    thumbnail_url: str
    tag_ids: list[TagId] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Stream:
        return cls(
            id=StreamId(data["id"]),
            user_id=UserId(data["user_id"]),
            user_name=data["user_name"],
            game_id=GameId(data["game_id"]),
            title=data["title"],
            type=StreamType(data["type"]),
            viewer_count=int(data["viewer_count"]),
            started_at=_parse_timestamp(data["started_at"]),
            language=data["language"],
            thumbnail_url=data["thumbnail_url"],
            tag_ids=[TagId(t) for t in data.get("tag_ids") or []],
        )

    @classmethod
    def list(
        cls,
        client: HelixClient,
        games: Iterable[str] | None = None,
        users: Iterable[str] | None = None,
        languages: Iterable[str] | None = None,
    ) -> Iterator[Stream]:
        """All live streams by decreasing viewer count.

        The filters are optional. ``games`` takes at most 10 entries, the
        others at most 100.
        """
        query: list[tuple[str, str]] = []
        query.extend(("game_id", g) for g in games or ())
        query.extend(("user_id", u) for u in users or ())
        query.extend(("language", lang) for lang in languages or ())
        return client.paginate(f"{HELIX_BASE_URL}/streams", query, cls.from_dict)

    def game(self, client: HelixClient) -> Game:
        return self.game_id.get(client)

    @property
    def url(self) -> str:
        return f"https://twitch.tv/streams/{self.id}/channel/{self.user_id}"

    def __str__(self) -> str:
        return self.title


class BroadcasterType(enum.Enum):
    PARTNER = "partner"
    AFFILIATE = "affiliate"
    REGULAR = ""


class UserType(enum.Enum):
    STAFF = "staff"
    ADMIN = "admin"
    GLOBAL_MOD = "global_mod"
    REGULAR = ""


@dataclass
class User:
    id: UserId
    login: str
    display_name: str
    type: UserType
    broadcaster_type: BroadcasterType
    description: str
    view_count: int
    # only present with the user:read:email scope
    email: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        return cls(
            id=UserId(data["id"]),
            login=data["login"],
            display_name=data["display_name"],
            type=UserType(data["type"]),
            broadcaster_type=BroadcasterType(data["broadcaster_type"]),
            description=data["description"],
            view_count=int(data.get("view_count", 0)),
            email=data.get("email"),
        )

    @classmethod
    def list(cls, client: HelixClient, ids: Iterable[str]) -> Iterator[User]:
        """The users with the given IDs, in arbitrary order. At most 100 IDs."""
        return client.paginate(f"{HELIX_BASE_URL}/users", [("id", i) for i in ids], cls.from_dict)

    @classmethod
    def by_names(cls, client: HelixClient, names: Iterable[str]) -> Iterator[User]:
        """The users with the given login names, in arbitrary order. At most 100 names."""
        return client.paginate(f"{HELIX_BASE_URL}/users", [("login", n) for n in names], cls.from_dict)

    @classmethod
    def me(cls, client: HelixClient) -> User:
        """The user the client's token belongs to."""
        return exactly_one(client.paginate(f"{HELIX_BASE_URL}/users", None, cls.from_dict))


@dataclass
class MessageBody:
    body: str
    is_action: bool
    # hex, if the user picked one
    user_color: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MessageBody:
        return cls(body=data["body"], is_action=bool(data["is_action"]), user_color=data.get("user_color"))


@dataclass
class Message:
    message: MessageBody
    state: str
    more_replies: Any = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        return cls(
            message=MessageBody.from_dict(data["message"]),
            state=data["state"],
            more_replies=data.get("more_replies"),
        )


@dataclass
class Chatlog:
    comments: list[Message]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Chatlog:
        return cls(comments=[Message.from_dict(c) for c in data["comments"]])
