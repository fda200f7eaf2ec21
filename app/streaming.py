"""Reassemble Raycast SSE into events and re-frame them as OpenAI output."""

import codecs
import json
import logging
import time
from typing import AsyncGenerator, AsyncIterable, AsyncIterator, List, Optional

import httpx
from pydantic import ValidationError

from .assembler import build_chunk, sse_done, sse_encode
from .raycast_models import ApiError, RaycastSSEData

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"


def parse_event_line(line: str) -> Optional[RaycastSSEData]:
    """Parse one line of the vendor stream; None for anything that is not an event."""
    line = line.strip()
    if not line.startswith(DATA_PREFIX):
        return None

    data = line[len(DATA_PREFIX):].strip()
    # Raycast doesn't send [DONE], skip it if it ever does
    if not data or data == "[DONE]":
        return None

    try:
        obj = json.loads(data)
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse SSE data line: %r (%s)", data, e)
        return None

    if not isinstance(obj, dict):
        logger.warning("Ignoring non-object SSE payload: %r", data)
        return None

    try:
        return RaycastSSEData.model_validate(obj)
    except ValidationError as e:
        logger.warning("SSE event model error: %s", e)
        return None


class VendorStreamDecoder:
    """
    Incremental line splitter for the Raycast byte stream.

    Chunks may cut lines, and UTF-8 characters, anywhere; feed() only returns
    events for lines that are complete, and flush() handles the tail.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> List[RaycastSSEData]:
        self._buffer += self._decoder.decode(chunk)
        events: List[RaycastSSEData] = []
        while True:
            newline = self._buffer.find("\n")
            if newline < 0:
                break
            line = self._buffer[:newline]
            self._buffer = self._buffer[newline + 1:]
            event = parse_event_line(line)
            if event is not None:
                events.append(event)
        return events

    def flush(self) -> List[RaycastSSEData]:
        """Treat whatever is left after the stream ended as a final line."""
        # feed() leaves no newline behind, so the tail is at most one line
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        event = parse_event_line(tail)
        return [event] if event is not None else []


async def iter_vendor_events(byte_chunks: AsyncIterable[bytes]) -> AsyncGenerator[RaycastSSEData, None]:
    """Yield parsed events from an async iterable of raw byte chunks."""
    decoder = VendorStreamDecoder()
    async for chunk in byte_chunks:
        for event in decoder.feed(chunk):
            yield event
    for event in decoder.flush():
        yield event


async def iter_chat_events(response: httpx.Response) -> AsyncGenerator[RaycastSSEData, None]:
    """
    Yield events from an open Raycast chat response and always close it.

    Closing this generator early (consumer stopped or client went away)
    releases the upstream connection.
    """
    try:
        async for event in iter_vendor_events(response.aiter_bytes()):
            yield event
    except httpx.HTTPError as e:
        raise ApiError(f"Network error reading stream: {str(e)}")
    finally:
        await response.aclose()


async def openai_stream_from_upstream(
    model: str,
    events: AsyncIterator[RaycastSSEData],
    request_id: str,
) -> AsyncGenerator[bytes, None]:
    """
    Bridge Raycast events ('text' = delta, 'finish_reason' = end) into a
    chat.completion.chunk stream terminated by [DONE].

    Behavior:
    - Each event carrying a text field, even an empty one, emits one content
      delta with finish_reason null.
    - The first event with a non-null finish_reason emits a final chunk carrying
      it and stops reading from upstream.
    - If upstream ends without a finish_reason, [DONE] is still sent.
    """
    created = int(time.time())
    try:
        async for event in events:
            if event.finished:
                yield sse_encode(
                    build_chunk(
                        chunk_id=request_id,
                        model=model,
                        created=created,
                        content=event.text,
                        finish_reason=event.finish_reason,
                    )
                )
                break

            # An empty text field still yields a (blank) delta
            if event.text is not None:
                yield sse_encode(
                    build_chunk(
                        chunk_id=request_id,
                        model=model,
                        created=created,
                        content=event.text,
                    )
                )

        # Stream terminator
        yield sse_done()
    except ApiError as e:
        logger.error("Error processing Raycast stream: %s", e.message)
        raise
    finally:
        aclose = getattr(events, "aclose", None)
        if aclose is not None:
            await aclose()


async def collect_completion_text(events: AsyncIterator[RaycastSSEData]) -> str:
    """Drain the whole stream and concatenate every event's text in order."""
    parts: List[str] = []
    async for event in events:
        parts.append(event.text or "")
    return "".join(parts)
