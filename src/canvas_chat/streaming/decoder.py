"""
Incremental decoder for server-sent-event frames.

Network chunks arrive at arbitrary boundaries, possibly in the middle of a
line or of a multi-byte character. :class:`FrameDecoder` buffers whatever
is incomplete and only hands out whole frames:

    decoder = FrameDecoder()
    decoder.feed('event: message\\ndata: {"tok')      # -> []
    decoder.feed('en": "Hi"}\\n\\n')                   # -> [Frame("message", '{"token": "Hi"}')]
"""

from __future__ import annotations

import codecs
import json
from dataclasses import dataclass
from typing import Any

from canvas_chat.logging import get_logger

logger = get_logger("streaming.decoder")

DEFAULT_EVENT_TYPE = "message"
FRAME_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class Frame:
    """One decoded event: its type and raw payload text."""

    event_type: str
    payload: str

    def json(self) -> Any:
        """Parse the payload as JSON. Raises ``ValueError`` if malformed."""
        return json.loads(self.payload)


class FrameDecoder:
    """Reassembles frames from a stream of text or byte chunks."""

    def __init__(self) -> None:
        self._buffer = ""
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")

    @property
    def pending(self) -> str:
        """Text received but not yet part of a complete frame."""
        return self._buffer

    def reset(self) -> None:
        self._buffer = ""
        self._utf8.reset()

    def feed(self, chunk: str | bytes) -> list[Frame]:
        """Add a chunk and return every frame it completes, in order."""
        if isinstance(chunk, (bytes, bytearray)):
            chunk = self._utf8.decode(bytes(chunk))
        if not chunk:
            return []

        text = self._buffer + chunk
        # A trailing "\r" may be the first half of a "\r\n" split across chunks.
        held = ""
        if text.endswith("\r"):
            text, held = text[:-1], "\r"

        *complete, rest = _normalize(text).split(FRAME_SEPARATOR)
        self._buffer = rest + held
        return _parse_blocks(complete)

    def flush(self) -> list[Frame]:
        """
        Finish the stream and return the frames still completable.

        A held-back ``\\r`` now counts as a line ending. Text after the last
        frame separator is discarded, as an event without its blank line is
        never dispatched.
        """
        text = _normalize(self._buffer + self._utf8.decode(b"", final=True))
        *complete, rest = text.split(FRAME_SEPARATOR)
        if rest.strip():
            logger.debug("Discarding unterminated frame at end of stream: %r", rest)
        self.reset()
        return _parse_blocks(complete)


def _normalize(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _parse_blocks(blocks: list[str]) -> list[Frame]:
    frames: list[Frame] = []
    for block in blocks:
        frame = parse_frame(block)
        if frame is not None:
            frames.append(frame)
    return frames


def parse_frame(block: str) -> Frame | None:
    """
    Parse the lines of one frame.

    Returns None for blank blocks and for frames without any ``data`` line.
    """
    if not block.strip():
        return None

    event_type = DEFAULT_EVENT_TYPE
    data_lines: list[str] = []
    for line in block.split("\n"):
        if not line or line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "event":
            event_type = value.strip() or DEFAULT_EVENT_TYPE
        elif name == "data":
            data_lines.append(value)
        # id, retry and unknown fields carry nothing we use

    if not data_lines or not "".join(data_lines).strip():
        logger.debug("Dropping %r frame without data", event_type)
        return None
    return Frame(event_type=event_type, payload="\n".join(data_lines))
