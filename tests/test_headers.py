"""Tests for waypost.http.headers and waypost.http.query — immutable mappings."""

import pytest

from waypost.http.headers import Headers
from waypost.http.query import QueryParams


def _h(*pairs: tuple[str, str]) -> Headers:
    """Shorthand: build Headers from string pairs."""
    raw = tuple((k.encode("latin-1"), v.encode("latin-1")) for k, v in pairs)
    return Headers(raw)


class TestHeaders:
    def test_case_insensitive(self) -> None:
        h = _h(("Content-Type", "text/html"))
        assert h["content-type"] == "text/html"
        assert h["CONTENT-TYPE"] == "text/html"

    def test_missing_key_raises(self) -> None:
        with pytest.raises(KeyError):
            _h(("Accept", "*/*"))["X-Missing"]

    def test_contains_rejects_non_str(self) -> None:
        h = _h(("Accept", "*/*"))
        assert "Accept" in h
        assert 42 not in h  # type: ignore[operator]

    def test_multi_values(self) -> None:
        h = _h(("Accept", "a"), ("accept", "b"))
        assert h["accept"] == "a"
        assert h.get_list("ACCEPT") == ["a", "b"]
        assert len(h) == 1
        assert list(h) == ["accept"]

    def test_from_dict(self) -> None:
        h = Headers.from_dict({"X-Trace": "t"})
        assert h.get("x-trace") == "t"
        assert h.raw == ((b"x-trace", b"t"),)


class TestQueryParams:
    def test_first_value(self) -> None:
        q = QueryParams(b"a=1&a=2&b=x")
        assert q["a"] == "1"
        assert q.get_list("a") == ["1", "2"]
        assert set(q) == {"a", "b"}

    def test_blank_values_kept(self) -> None:
        q = QueryParams(b"empty=&flag")
        assert q.get("empty") == ""
        assert "flag" in q

    def test_percent_decoding(self) -> None:
        q = QueryParams(b"city=S%C3%A3o+Paulo")
        assert q["city"] == "São Paulo"

    def test_default(self) -> None:
        assert QueryParams().get("x", "fallback") == "fallback"
        assert QueryParams(b"k=v").raw == b"k=v"
