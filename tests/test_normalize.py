"""as_buffer() tests.

Test coverage:
- Identity for bytes and None
- Deferred values (sync, async, chained) and the depth limit
- Streams
- JSON for structured values, safe strings for everything else
- Encodings
"""

from __future__ import annotations

import asyncio
import json
import os
from dataclasses import dataclass
from unittest import mock

import pytest

from buffer_helpers.config import reload_config
from buffer_helpers.errors import RecursionLimitError
from buffer_helpers.normalize import RecursionState, as_buffer, normalize
from buffer_helpers.streams import ReadableStream


def deferred_chain(length: int, terminal):
    """Wrap ``terminal`` in ``length`` deferred-value functions."""
    value = terminal
    for _ in range(length):
        value = (lambda inner: (lambda *args: inner))(value)
    return value


@dataclass
class Payload:
    name: str
    size: int


class TestIdentity:
    @pytest.mark.asyncio
    async def test_bytes_returned_unchanged(self):
        data = b"\x00raw\xff"
        assert await as_buffer(data) is data

    @pytest.mark.asyncio
    async def test_bytearray_returned_unchanged(self):
        data = bytearray(b"abc")
        assert await as_buffer(data) is data

    @pytest.mark.asyncio
    async def test_none_passes_through(self):
        assert await as_buffer(None) is None

    @pytest.mark.asyncio
    async def test_alias(self):
        assert normalize is as_buffer


class TestDeferredValues:
    """Callables are unwrapped in a loop with a depth limit."""

    @pytest.mark.asyncio
    async def test_sync_function(self):
        assert await as_buffer(lambda *args: "lazy") == b"lazy"

    @pytest.mark.asyncio
    async def test_async_function(self):
        async def produce(encoding, depth, max_depth):
            await asyncio.sleep(0)
            return b"async"

        assert await as_buffer(produce) == b"async"

    @pytest.mark.asyncio
    async def test_arguments(self):
        calls = []

        def produce(encoding, depth, max_depth):
            calls.append((encoding, depth, max_depth))
            if depth < 2:
                return produce
            return "done"

        assert await as_buffer(produce, " UTF-8 ", 5) == b"done"
        assert calls == [("utf-8", 0, 5), ("utf-8", 1, 5), ("utf-8", 2, 5)]

    @pytest.mark.asyncio
    async def test_chain_at_default_limit(self):
        value = deferred_chain(63, b"terminal")
        assert await as_buffer(value) == b"terminal"

    @pytest.mark.asyncio
    async def test_chain_over_default_limit(self):
        value = deferred_chain(64, b"terminal")
        with pytest.raises(RecursionLimitError) as exc_info:
            await as_buffer(value)
        assert exc_info.value.max_depth == 63

    @pytest.mark.asyncio
    @pytest.mark.parametrize("length", [0, 1, 3])
    async def test_custom_limit_ok(self, length):
        assert await as_buffer(deferred_chain(length, "x"), max_depth=3) == b"x"

    @pytest.mark.asyncio
    async def test_custom_limit_exceeded(self):
        with pytest.raises(RecursionLimitError):
            await as_buffer(deferred_chain(4, "x"), max_depth=3)

    @pytest.mark.asyncio
    async def test_zero_limit_allows_no_calls(self):
        assert await as_buffer(b"x", max_depth=0) == b"x"
        with pytest.raises(RecursionLimitError):
            await as_buffer(deferred_chain(1, b"x"), max_depth=0)

    @pytest.mark.asyncio
    async def test_self_returning_function(self):
        def forever(*args):
            return forever

        with pytest.raises(RecursionLimitError):
            await as_buffer(forever)

    @pytest.mark.asyncio
    async def test_deep_limit_does_not_overflow_stack(self):
        limit = 5000
        value = deferred_chain(limit, b"deep")
        assert await as_buffer(value, max_depth=limit) == b"deep"

    @pytest.mark.asyncio
    async def test_invalid_limit_uses_default(self):
        value = deferred_chain(10, b"ok")
        assert await as_buffer(value, max_depth=-1) == b"ok"

    @pytest.mark.asyncio
    async def test_explicit_state(self):
        state = RecursionState(current_depth=2, max_depth=2)
        with pytest.raises(RecursionLimitError):
            await as_buffer(deferred_chain(1, b"x"), state=state)
        assert state.current_depth == 3

    @pytest.mark.asyncio
    async def test_error_from_function_propagates(self):
        def broken(*args):
            raise KeyError("missing")

        with pytest.raises(KeyError):
            await as_buffer(broken)

    @pytest.mark.asyncio
    async def test_configured_limit(self, restore_config):
        with mock.patch.dict(os.environ, {"BUFHELP_MAX_DEPTH": "2"}, clear=False):
            reload_config()
            with pytest.raises(RecursionLimitError):
                await as_buffer(deferred_chain(3, b"x"))
            assert await as_buffer(deferred_chain(2, b"x")) == b"x"


class TestStreams:
    @pytest.mark.asyncio
    async def test_readable_stream(self):
        stream = ReadableStream()
        stream.push("ab")
        stream.push(b"cd")
        stream.end()

        assert await as_buffer(stream) == b"abcd"

    @pytest.mark.asyncio
    async def test_deferred_stream(self):
        stream = ReadableStream()
        stream.push(b"from stream")
        stream.end()

        assert await as_buffer(lambda *args: stream) == b"from stream"

    @pytest.mark.asyncio
    async def test_ended_empty_stream(self):
        stream = ReadableStream()
        stream.end()

        assert await as_buffer(stream) == b""

    @pytest.mark.asyncio
    async def test_stream_reader(self):
        reader = asyncio.StreamReader()
        reader.feed_data(b"reader")
        reader.feed_eof()

        assert await as_buffer(reader) == b"reader"

    @pytest.mark.asyncio
    async def test_stream_error_while_reading(self):
        async def source():
            yield b"a"
            raise OSError("disk error")

        with pytest.raises(OSError, match="disk error"):
            await as_buffer(source())


class TestStructuredValues:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [
        {"a": 1, "b": [1, 2, {"c": None}]},
        {},
        [1, "two", 3.0],
        ("x", "y"),
    ])
    async def test_json(self, value):
        assert await as_buffer(value) == json.dumps(value).encode()

    @pytest.mark.asyncio
    async def test_dataclass(self):
        result = await as_buffer(Payload("file", 3))
        assert json.loads(result) == {"name": "file", "size": 3}

    @pytest.mark.asyncio
    async def test_non_ascii_json(self):
        value = {"name": "é"}
        result = await as_buffer(value, "utf-16")
        assert result == json.dumps(value).encode("utf-16")


class TestStringValues:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("value,expected", [
        ("text", b"text"),
        ("", b""),
        (42, b"42"),
        (1.5, b"1.5"),
        (True, b"True"),
        (ValueError("bad"), b"bad"),
    ])
    async def test_safe_string(self, value, expected):
        assert await as_buffer(value) == expected

    @pytest.mark.asyncio
    async def test_custom_str(self):
        class Version:
            def __str__(self) -> str:
                return "1.2.3"

        assert await as_buffer(Version()) == b"1.2.3"

    @pytest.mark.asyncio
    async def test_encoding(self):
        assert await as_buffer("héllo", "latin-1") == "héllo".encode("latin-1")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("encoding", [None, "", "   "])
    async def test_blank_encoding_uses_default(self, encoding):
        assert await as_buffer("héllo", encoding) == "héllo".encode("utf-8")

    @pytest.mark.asyncio
    async def test_unknown_encoding(self):
        with pytest.raises(LookupError):
            await as_buffer("text", "no-such-codec")

    @pytest.mark.asyncio
    async def test_unencodable_text(self):
        with pytest.raises(UnicodeEncodeError):
            await as_buffer("€", "ascii")
