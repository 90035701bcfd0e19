from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from twhelix.errors import ClientError, ResponseJsonError
from twhelix.paginated import Cursor, CursorState, PageResult, stream

URL = "https://api.twitch.tv/helix/streams"


def _bodies(*documents):
    """Response texts for get_text; exceptions are passed through to be raised."""
    return [d if isinstance(d, Exception) else json.dumps(d) for d in documents]


def _pages():
    return _bodies(
        {"data": [{"id": 1}, {"id": 2}], "pagination": {"cursor": "C1"}},
        {"data": [{"id": 3}], "pagination": {"cursor": "C2"}},
        {"data": [], "pagination": {}},
    )


class TestCursor:
    def test_start_adds_nothing(self):
        assert Cursor.start().query() == []

    def test_at_adds_after(self):
        assert Cursor(CursorState.AT, "abc").query() == [("after", "abc")]

    def test_end_stops(self):
        assert Cursor.end().query() is None

    @pytest.mark.parametrize("pagination", [None, {}, {"cursor": None}, {"cursor": ""}, "garbage"])
    def test_missing_cursor_is_end(self, pagination):
        assert Cursor.from_pagination(pagination) == Cursor.end()

    def test_present_cursor(self):
        assert Cursor.from_pagination({"cursor": "xyz"}) == Cursor(CursorState.AT, "xyz")


class TestPageResult:
    def test_from_text(self):
        page = PageResult.from_text(json.dumps({"data": [{"id": 1}], "pagination": {"cursor": "C1"}}))

        assert page.items == [{"id": 1}]
        assert page.next == Cursor(CursorState.AT, "C1")

    def test_without_pagination(self):
        assert PageResult.from_text(json.dumps({"data": [{"id": 1}]})).next == Cursor.end()

    def test_data_must_be_a_list(self):
        with pytest.raises(ResponseJsonError):
            PageResult.from_text(json.dumps({"data": {"id": 1}}))

    def test_error_quotes_body_verbatim(self):
        text = '{"data":   {"id": 1},\n "pagination": {}}'

        with pytest.raises(ResponseJsonError) as exc_info:
            PageResult.from_text(text)

        assert exc_info.value.body == text

    def test_invalid_json(self):
        with pytest.raises(ResponseJsonError) as exc_info:
            PageResult.from_text("<html>gateway timeout</html>")

        assert exc_info.value.body == "<html>gateway timeout</html>"


class TestStream:
    def test_three_pages_in_order(self, make_client):
        client = make_client()

        with patch.object(client, "get_text", side_effect=_pages()) as mock_get:
            items = list(stream(client, URL, [("game_id", "33214")]))

        assert items == [{"id": 1}, {"id": 2}, {"id": 3}]
        assert mock_get.call_count == 3
        assert mock_get.call_args_list[0][0] == (URL, [("game_id", "33214")])
        assert mock_get.call_args_list[1][0] == (URL, [("game_id", "33214"), ("after", "C1")])
        assert mock_get.call_args_list[2][0] == (URL, [("game_id", "33214"), ("after", "C2")])

    def test_missing_cursor_ends_without_extra_fetch(self, make_client):
        client = make_client()
        pages = [{"data": [{"id": 1}], "pagination": {}}]

        with patch.object(client, "get_text", side_effect=_bodies(*pages)) as mock_get:
            assert list(stream(client, URL)) == [{"id": 1}]

        assert mock_get.call_count == 1

    def test_empty_page_with_cursor_ends(self, make_client):
        client = make_client()
        pages = [
            {"data": [{"id": 1}], "pagination": {"cursor": "C1"}},
            {"data": [], "pagination": {"cursor": "C2"}},
        ]

        with patch.object(client, "get_text", side_effect=_bodies(*pages)) as mock_get:
            assert list(stream(client, URL)) == [{"id": 1}]

        assert mock_get.call_count == 2

    def test_empty_first_page(self, make_client):
        client = make_client()

        with patch.object(client, "get_text", return_value=json.dumps({"data": [], "pagination": {"cursor": "C1"}})) as mock_get:
            assert list(stream(client, URL)) == []

        assert mock_get.call_count == 1

    def test_fresh_stream_repeats_same_order(self, make_client):
        client = make_client()

        with patch.object(client, "get_text", side_effect=_pages() + _pages()):
            first = list(stream(client, URL))
            second = list(stream(client, URL))

        assert first == second == [{"id": 1}, {"id": 2}, {"id": 3}]

    def test_is_lazy(self, make_client):
        client = make_client()

        with patch.object(client, "get_text", side_effect=_pages()) as mock_get:
            items = stream(client, URL)
            assert mock_get.call_count == 0

            assert next(items) == {"id": 1}
            assert next(items) == {"id": 2}
            assert mock_get.call_count == 1

            assert next(items) == {"id": 3}
            assert mock_get.call_count == 2

    def test_error_ends_stream(self, make_client):
        client = make_client()
        error = ClientError(400, '{"message":"Malformed query params."}')
        side_effect = [{"data": [{"id": 1}], "pagination": {"cursor": "C1"}}, error, {"data": [{"id": 2}]}]

        with patch.object(client, "get_text", side_effect=_bodies(*side_effect)) as mock_get:
            items = stream(client, URL)
            assert next(items) == {"id": 1}
            with pytest.raises(ClientError):
                next(items)
            with pytest.raises(StopIteration):
                next(items)

        assert mock_get.call_count == 2

    def test_item_factory(self, make_client):
        client = make_client()

        with patch.object(client, "get_text", side_effect=_pages()):
            ids = list(client.paginate(URL, None, lambda item: item["id"] * 10))

        assert ids == [10, 20, 30]

    def test_item_factory_failure_is_decode_error(self, make_client):
        client = make_client()

        with patch.object(client, "get_text", side_effect=_pages()):
            with pytest.raises(ResponseJsonError, match="Could not decode item"):
                list(client.paginate(URL, None, lambda item: item["missing"]))

    def test_through_the_session(self, make_client, session, make_response):
        session.get.side_effect = [make_response(text=page) for page in _pages()]
        client = make_client()

        assert [item["id"] for item in client.paginate(URL, {"first": 2})] == [1, 2, 3]
        assert session.get.call_args_list[1][1]["params"] == [("first", "2"), ("after", "C1")]

    def test_malformed_item_discards_whole_page(self, make_client):
        client = make_client()
        page = json.dumps({"data": [{"id": 1}, {"bad": 2}], "pagination": {"cursor": "C1"}})
        yielded = []

        with patch.object(client, "get_text", return_value=page) as mock_get:
            with pytest.raises(ResponseJsonError) as exc_info:
                for item in client.paginate(URL, None, lambda item: item["id"]):
                    yielded.append(item)

        assert yielded == []
        assert exc_info.value.body == page
        assert mock_get.call_count == 1
