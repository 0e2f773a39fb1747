"""
Incremental decoder for the chat completion event stream.

The chat endpoint relays the gateway's stream verbatim: newline-delimited
lines of the form ``data: <json>`` where each record carries one text delta
at ``choices[0].delta.content``, terminated by ``data: [DONE]``. Bytes arrive
in chunks whose boundaries need not align with lines, records or multi-byte
characters, so the decoder keeps two pieces of carry-over state between
chunks:

* ``buffer``: decoded text after the last newline, not yet a complete line.
* ``pending``: a complete ``data:`` payload that failed to parse. The decoder
  is then in ``DecoderState.AWAITING_CONTINUATION`` and retries the payload
  joined to the next line (the newline is JSON whitespace).

A held payload is never emitted unless it parses, and never dropped until the
stream proves it malformed: the next line starts a new record, is an event
boundary, the stream ends, or the payload outgrows ``max_line_chars``. Dropped
records are logged, never raised.
"""

import codecs
import json
import logging
from enum import Enum
from typing import Any, Callable, Iterable, Iterator, List, Optional

from .config import MAX_LINE_CHARS

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_TOKEN = "[DONE]"


class DecoderState(str, Enum):
    SCANNING = "scanning"
    AWAITING_CONTINUATION = "awaiting_continuation"


def extract_delta(record: Any) -> Optional[str]:
    """Returns the text delta of a parsed record, or None if it carries none."""
    try:
        content = record["choices"][0]["delta"].get("content")
    except (KeyError, IndexError, TypeError, AttributeError):
        return None
    if isinstance(content, str) and content:
        return content
    return None


class StreamDecoder:
    """Turns raw stream chunks into text deltas.

    Parameters
    ----------
    on_text : callable, optional
        Called with the full accumulated text after every delta.
    max_line_chars : int
        Upper bound for a single line or a held payload. Anything longer is
        dropped with a warning.
    """

    def __init__(
        self,
        on_text: Optional[Callable[[str], None]] = None,
        max_line_chars: int = MAX_LINE_CHARS,
    ) -> None:
        self.on_text = on_text
        self.max_line_chars = max_line_chars
        self.state = DecoderState.SCANNING
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._pending: Optional[str] = None
        self._text = ""
        self._done = False
        self._skipping = False

    @property
    def text(self) -> str:
        return self._text

    @property
    def buffer(self) -> str:
        return self._buffer

    @property
    def pending(self) -> Optional[str]:
        return self._pending

    @property
    def done(self) -> bool:
        return self._done

    def feed(self, chunk: bytes) -> List[str]:
        """Decodes one chunk and returns the deltas it completed."""
        self._buffer += self._decoder.decode(chunk)
        deltas = []
        while True:
            newline = self._buffer.find("\n")
            if newline == -1:
                break
            line = self._buffer[:newline]
            self._buffer = self._buffer[newline + 1 :]
            if self._skipping:
                # tail of an oversized line already reported
                self._skipping = False
                continue
            delta = self._consume_line(line)
            if delta:
                deltas.append(delta)

        if len(self._buffer) > self.max_line_chars:
            logger.warning(
                "Dropping stream line longer than %d characters", self.max_line_chars
            )
            self._buffer = ""
            self._skipping = True
            if self._pending is not None:
                self._drop_pending("continuation too long")
        return deltas

    def finish(self) -> List[str]:
        """Flushes whatever is left once the source has no more bytes."""
        remaining = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        if self._skipping:
            remaining = remaining.partition("\n")[2]
            self._skipping = False
            if self._pending is not None:
                self._drop_pending("continuation too long")

        deltas = []
        for line in remaining.split("\n") if remaining else []:
            if self._done:
                break
            delta = self._consume_line(line)
            if delta:
                deltas.append(delta)

        if self._pending is not None:
            self._drop_pending("stream ended")
        return deltas

    def _consume_line(self, line: str) -> Optional[str]:
        if line.endswith("\r"):
            line = line[:-1]

        if len(line) > self.max_line_chars:
            logger.warning(
                "Dropping stream line longer than %d characters", self.max_line_chars
            )
            if self._pending is not None:
                self._drop_pending("continuation too long")
            return None

        if self._pending is not None:
            if not line.strip():
                self._drop_pending("event boundary")
            elif line.startswith(DATA_PREFIX):
                self._drop_pending("next record started")
            else:
                return self._resolve(self._pending + "\n" + line)

        if self._done:
            return None
        if not line.strip() or line.startswith(":"):
            return None
        if not line.startswith(DATA_PREFIX):
            return None

        payload = line[len(DATA_PREFIX) :].strip()
        if payload == DONE_TOKEN:
            self._done = True
            return None
        return self._resolve(payload)

    def _resolve(self, payload: str) -> Optional[str]:
        try:
            record = json.loads(payload)
        except ValueError:
            if len(payload) > self.max_line_chars:
                self._pending = payload
                self._drop_pending("record too long")
                return None
            self._pending = payload
            self.state = DecoderState.AWAITING_CONTINUATION
            return None

        self._pending = None
        self.state = DecoderState.SCANNING
        delta = extract_delta(record)
        if delta:
            self._text += delta
            if self.on_text is not None:
                self.on_text(self._text)
        return delta

    def _drop_pending(self, reason: str) -> None:
        logger.warning(
            "Dropping malformed stream record (%s): %.80r", reason, self._pending
        )
        self._pending = None
        self.state = DecoderState.SCANNING


def iter_deltas(chunks: Iterable[bytes], **kwargs: Any) -> Iterator[str]:
    """Yields every delta of a complete chunk sequence, flush included."""
    decoder = StreamDecoder(**kwargs)
    for chunk in chunks:
        yield from decoder.feed(chunk)
    yield from decoder.finish()


def decode_stream(chunks: Iterable[bytes], **kwargs: Any) -> str:
    return "".join(iter_deltas(chunks, **kwargs))
