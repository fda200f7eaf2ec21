"""Tests for Raycast SSE reassembly and OpenAI re-framing."""

import json
from typing import List

import httpx
import pytest

from app.raycast_models import ApiError, RaycastSSEData
from app.streaming import (
    VendorStreamDecoder,
    collect_completion_text,
    iter_chat_events,
    iter_vendor_events,
    openai_stream_from_upstream,
    parse_event_line,
)


STREAM = (
    'data: {"text":"Hél"}\n'
    "\n"
    ": keep-alive comment\n"
    'data: {"text":"lo ✓"}\r\n'
    "data: {not json}\n"
    'data: {"text":"!", "finish_reason":null}\n'
    'data: {"finish_reason":"stop"}\n'
).encode("utf-8")


def _decode(chunks: List[bytes]) -> List[RaycastSSEData]:
    decoder = VendorStreamDecoder()
    events: List[RaycastSSEData] = []
    for chunk in chunks:
        events.extend(decoder.feed(chunk))
    events.extend(decoder.flush())
    return events


def _summary(events):
    return [(e.text, e.finish_reason) for e in events]


async def _aiter(items):
    for item in items:
        yield item


def _parse_sse(body: bytes):
    frames = [f for f in body.decode("utf-8").split("\n\n") if f]
    assert all(f.startswith("data: ") for f in frames)
    payloads = [f[len("data: "):] for f in frames]
    return [p if p == "[DONE]" else json.loads(p) for p in payloads]


async def _drain(gen) -> bytes:
    out = b""
    async for chunk in gen:
        out += chunk
    return out


def test_decoder_parses_data_lines_and_skips_garbage():
    assert _summary(_decode([STREAM])) == [
        ("Hél", None),
        ("lo ✓", None),
        ("!", None),
        (None, "stop"),
    ]


def test_decoder_is_chunk_boundary_invariant():
    expected = _summary(_decode([STREAM]))

    for i in range(len(STREAM) + 1):
        for j in range(i, len(STREAM) + 1):
            chunks = [STREAM[:i], STREAM[i:j], STREAM[j:]]
            assert _summary(_decode(chunks)) == expected, (i, j)


def test_decoder_handles_single_byte_chunks():
    chunks = [STREAM[i:i + 1] for i in range(len(STREAM))]

    assert _summary(_decode(chunks)) == _summary(_decode([STREAM]))


def test_decoder_flushes_unterminated_last_line():
    decoder = VendorStreamDecoder()

    assert decoder.feed(b'data: {"text":"tail"}') == []
    assert _summary(decoder.flush()) == [("tail", None)]
    assert decoder.flush() == []


@pytest.mark.parametrize(
    "line",
    [
        "",
        "event: message",
        "data:",
        "data: [DONE]",
        "data: [1, 2]",
        'data: "just a string"',
        "data: {broken",
        'data: {"text": 5}',
    ],
)
def test_parse_event_line_ignores_non_events(line):
    assert parse_event_line(line) is None


def test_parse_event_line_distinguishes_null_and_value():
    assert parse_event_line('data: {"finish_reason": null}').finished is False
    assert parse_event_line('data: {"text": "x"}').finished is False
    assert parse_event_line('data:{"finish_reason":"length"}').finished is True


@pytest.mark.asyncio
async def test_collect_completion_text_concatenates_in_order():
    chunks = [b'data: {"text":"Hel"}\n', b'data: {"text":"lo"}\n', b'data: {"finish_reason":"stop"}\n']

    text = await collect_completion_text(iter_vendor_events(_aiter(chunks)))

    assert text == "Hello"


@pytest.mark.asyncio
async def test_collect_completion_text_matches_any_chunking():
    expected = await collect_completion_text(iter_vendor_events(_aiter([STREAM])))

    for i in range(0, len(STREAM), 7):
        split = [STREAM[:i], STREAM[i:]]
        assert await collect_completion_text(iter_vendor_events(_aiter(split))) == expected

    assert expected == "Héllo ✓!"


@pytest.mark.asyncio
async def test_openai_stream_scenario():
    chunks = [b'data: {"text":"Hel"}\n', b'data: {"text":"lo"}\n', b'data: {"finish_reason":"stop"}\n']

    body = await _drain(
        openai_stream_from_upstream("openai-gpt-4o-mini", iter_vendor_events(_aiter(chunks)), "chatcmpl-abc")
    )
    frames = _parse_sse(body)

    assert frames[-1] == "[DONE]"
    chunk_objs = frames[:-1]
    assert [c["choices"][0]["delta"].get("content") for c in chunk_objs] == ["Hel", "lo", None]
    assert [c["choices"][0]["finish_reason"] for c in chunk_objs] == [None, None, "stop"]
    assert {c["id"] for c in chunk_objs} == {"chatcmpl-abc"}
    assert {c["created"] for c in chunk_objs} == {chunk_objs[0]["created"]}
    assert all(c["object"] == "chat.completion.chunk" for c in chunk_objs)
    assert all(c["model"] == "openai-gpt-4o-mini" for c in chunk_objs)


@pytest.mark.asyncio
async def test_openai_stream_stops_reading_after_finish_reason():
    consumed = []
    closed = []

    async def events():
        try:
            for event in [
                RaycastSSEData(text="a"),
                RaycastSSEData(text="b", finish_reason="length"),
                RaycastSSEData(text="never"),
            ]:
                consumed.append(event.text)
                yield event
        finally:
            closed.append(True)

    frames = _parse_sse(await _drain(openai_stream_from_upstream("m", events(), "id")))

    assert consumed == ["a", "b"]
    assert closed == [True]
    assert frames[-2]["choices"][0] == {"index": 0, "delta": {"content": "b"}, "finish_reason": "length"}
    assert frames[-1] == "[DONE]"


@pytest.mark.asyncio
async def test_openai_stream_emits_chunk_for_empty_text():
    chunks = [b'data: {"text":""}\n', b'data: {"text":"x"}\n']

    frames = _parse_sse(
        await _drain(openai_stream_from_upstream("m", iter_vendor_events(_aiter(chunks)), "id"))
    )

    assert [f if f == "[DONE]" else f["choices"][0]["delta"] for f in frames] == [
        {"content": ""},
        {"content": "x"},
        "[DONE]",
    ]


@pytest.mark.asyncio
async def test_openai_stream_sends_done_without_finish_reason():
    frames = _parse_sse(
        await _drain(openai_stream_from_upstream("m", _aiter([RaycastSSEData(text="x"), RaycastSSEData()]), "id"))
    )

    assert [f if f == "[DONE]" else f["choices"][0]["delta"] for f in frames] == [{"content": "x"}, "[DONE]"]


@pytest.mark.asyncio
async def test_closing_client_stream_closes_upstream_events():
    closed = []

    async def events():
        try:
            while True:
                yield RaycastSSEData(text="tick")
        finally:
            closed.append(True)

    stream = openai_stream_from_upstream("m", events(), "id")
    assert (await stream.__anext__()).startswith(b"data: ")
    await stream.aclose()

    assert closed == [True]


class _FailingStream(httpx.AsyncByteStream):
    def __init__(self):
        self.closed = False

    async def __aiter__(self):
        yield b'data: {"text":"partial"}\n'
        raise httpx.ReadError("connection reset")

    async def aclose(self):
        self.closed = True


@pytest.mark.asyncio
async def test_transport_error_mid_stream_raises_and_releases_response():
    stream = _FailingStream()
    response = httpx.Response(200, stream=stream)

    received = []
    with pytest.raises(ApiError):
        async for event in iter_chat_events(response):
            received.append(event.text)

    assert received == ["partial"]
    assert stream.closed is True


@pytest.mark.asyncio
async def test_openai_stream_propagates_transport_error():
    stream = _FailingStream()
    events = iter_chat_events(httpx.Response(200, stream=stream))

    with pytest.raises(ApiError):
        await _drain(openai_stream_from_upstream("m", events, "id"))
    assert stream.closed is True
