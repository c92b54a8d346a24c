"""Incremental decoder for chat-completion server-sent-event streams.

The streaming completion API answers with ``data: {...}`` lines, one JSON
chunk per event, terminated by ``data: [DONE]``. Network chunks are not
aligned to lines, so the decoder buffers partial lines between feeds.

Usage::

    for fragment in iter_fragments(response.iter_text()):
        print(fragment, end="", flush=True)
"""

from __future__ import annotations

import codecs
import json
import logging
from collections.abc import Iterable, Iterator

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class StreamDecoder:
    """Push-style SSE decoder producing content fragments.

    Feed it arbitrary text or bytes chunks; each ``feed()`` returns the
    fragments completed by that chunk. After the ``[DONE]`` sentinel the
    decoder is finished and ignores further input.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._done = False

    @property
    def done(self) -> bool:
        """True once the termination sentinel has been seen."""
        return self._done

    def feed(self, chunk: str | bytes) -> list[str]:
        """Buffer a chunk and return fragments from every complete line."""
        if self._done:
            return []
        if isinstance(chunk, bytes):
            chunk = self._utf8.decode(chunk)
        self._buffer += chunk

        fragments: list[str] = []
        while not self._done:
            newline = self._buffer.find("\n")
            if newline < 0:
                break
            line = self._buffer[:newline].rstrip("\r")
            self._buffer = self._buffer[newline + 1:]
            fragment = self._decode_line(line)
            if fragment:
                fragments.append(fragment)
        if self._done:
            self._buffer = ""
        return fragments

    def _decode_line(self, line: str) -> str | None:
        if not line.strip():
            return None
        if not line.startswith(DATA_PREFIX):
            # event:, id:, retry: and ": comment" lines carry no content
            return None

        payload = line[len(DATA_PREFIX):].strip()
        if payload == DONE_SENTINEL:
            self._done = True
            return None

        try:
            event = json.loads(payload)
        except ValueError:
            logger.debug("Skipping malformed stream event: %.200s", payload)
            return None
        return extract_delta_content(event)


def extract_delta_content(event: object) -> str | None:
    """Return ``choices[0].delta.content`` of a stream event, if non-empty."""
    if not isinstance(event, dict):
        return None
    choices = event.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    delta = first.get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    if isinstance(content, str) and content:
        return content
    return None


def iter_fragments(chunks: Iterable[str | bytes]) -> Iterator[str]:
    """Lazily decode content fragments from a chunked SSE stream.

    Stops at the ``[DONE]`` sentinel without reading further chunks, or when
    ``chunks`` is exhausted. An unterminated final line is discarded.
    """
    decoder = StreamDecoder()
    for chunk in chunks:
        yield from decoder.feed(chunk)
        if decoder.done:
            return


def collect_text(chunks: Iterable[str | bytes]) -> str:
    """Decode a whole stream and return the concatenated content."""
    return "".join(iter_fragments(chunks))
