"""Lazy iteration over cursor-paginated Helix endpoints."""

from __future__ import annotations

import enum
import json
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar

from twhelix.errors import ResponseJsonError
from twhelix.utils.http import QueryParams, decode_json_text, query_pairs

if TYPE_CHECKING:
    from twhelix.client import HelixClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CursorState(enum.Enum):
    START = "start"
    AT = "at"
    END = "end"


@dataclass(frozen=True)
class Cursor:
    """Position in a paginated result: before the first page, at a server
    cursor, or past the last page."""

    state: CursorState
    token: str | None = None

    @classmethod
    def start(cls) -> Cursor:
        return cls(CursorState.START)

    @classmethod
    def end(cls) -> Cursor:
        return cls(CursorState.END)

    @classmethod
    def from_pagination(cls, pagination: Any) -> Cursor:
        """Decode the ``pagination`` object; a missing or empty cursor means the end."""
        token = pagination.get("cursor") if isinstance(pagination, dict) else None
        if token:
            return cls(CursorState.AT, str(token))
        return cls.end()

    def query(self) -> list[tuple[str, str]] | None:
        """Extra query params for the next page, or None when there is none."""
        if self.state is CursorState.START:
            return []
        if self.state is CursorState.AT:
            return [("after", self.token)]
        return None


@dataclass
class PageResult:
    items: list[Any] = field(default_factory=list)
    next: Cursor = field(default_factory=Cursor.end)

    @classmethod
    def from_text(cls, text: str) -> PageResult:
        """Decode one page body; errors quote the body as the server sent it."""
        document = decode_json_text(text)
        if not isinstance(document, dict) or not isinstance(document.get("data"), list):
            raise ResponseJsonError("Expected a paginated document with a data list", text)
        return cls(items=document["data"], next=Cursor.from_pagination(document.get("pagination")))


def decode_item(item_factory: Callable[[Any], T] | None, raw: Any, body: str | None = None) -> T:
    """Apply ``item_factory`` to one raw JSON item, raising ResponseJsonError if it does not fit.

    ``body`` is the response text to attach to the error; defaults to the item itself.
    """
    if item_factory is None:
        return raw
    try:
        return item_factory(raw)
    except (KeyError, TypeError, ValueError) as e:
        raise ResponseJsonError(f"Could not decode item: {e!r}", body if body is not None else json.dumps(raw)) from e


def stream(
    client: HelixClient,
    url: str,
    params: QueryParams = None,
    item_factory: Callable[[Any], T] | None = None,
) -> Iterator[T]:
    """Yield the items of every page of ``url`` in server order.

    Pages are fetched one at a time as the consumer iterates, and each page is
    decoded in full before any of its items is yielded. An empty page ends the
    iteration even if it carries a cursor. The first error is raised out of the
    generator and no further pages are requested.
    """
    fixed = query_pairs(params)
    cursor = Cursor.start()
    page_number = 0
    while True:
        cursor_query = cursor.query()
        if cursor_query is None:
            return
        page_number += 1
        logger.debug(f"Fetching page {page_number} of {url}")
        text = client.get_text(url, fixed + cursor_query)
        page = PageResult.from_text(text)
        if not page.items:
            return
        items = [decode_item(item_factory, raw, text) for raw in page.items]
        yield from items
        cursor = page.next
