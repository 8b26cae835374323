"""Tests for waypost.server.sender — Response to ASGI messages."""

from typing import Any

from waypost.http.response import Response
from waypost.server.sender import send_response


async def _capture(response: Response, method: str = "GET") -> list[dict[str, Any]]:
    messages: list[dict[str, Any]] = []

    async def send(message: dict[str, Any]) -> None:
        messages.append(message)

    await send_response(response, send, method=method)
    return messages


class TestSendResponse:
    async def test_start_and_body(self) -> None:
        start, body = await _capture(Response(body=b'{"a":1}', status=201))
        assert start["type"] == "http.response.start"
        assert start["status"] == 201
        headers = dict(start["headers"])
        assert headers[b"content-type"] == b"application/json; charset=utf-8"
        assert headers[b"content-length"] == b"7"
        assert body == {"type": "http.response.body", "body": b'{"a":1}'}

    async def test_header_names_lowercased(self) -> None:
        start, _ = await _capture(Response().with_header("X-Trace", "abc"))
        assert (b"x-trace", b"abc") in start["headers"]

    async def test_head_drops_body_keeps_length(self) -> None:
        start, body = await _capture(Response(body=b"12345"), method="HEAD")
        assert dict(start["headers"])[b"content-length"] == b"5"
        assert body["body"] == b""

    async def test_no_body_for_204(self) -> None:
        start, body = await _capture(Response(body=b"ignored", status=204))
        assert dict(start["headers"])[b"content-length"] == b"0"
        assert body["body"] == b""
