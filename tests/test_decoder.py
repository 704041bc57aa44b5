"""Tests for the incremental SSE frame decoder."""

from __future__ import annotations

import pytest

from canvas_chat.streaming.decoder import Frame, FrameDecoder, parse_frame

STREAM = (
    'event: stream_start\ndata: {"status": "started"}\n\n'
    'event: message\ndata: {"token": "Hel"}\n\n'
    'event: message\ndata: {"token": "lo"}\n\n'
    'event: conversation_id\ndata: {"conversation_id": "c-1"}\n\n'
    'event: stream_end\ndata: {"message_id": "m-1", "status": "complete"}\n\n'
)


def _decode_all(chunks: list) -> list[Frame]:
    decoder = FrameDecoder()
    frames: list[Frame] = []
    for chunk in chunks:
        frames.extend(decoder.feed(chunk))
    frames.extend(decoder.flush())
    return frames


class TestFrameDecoder:
    def test_single_chunk(self) -> None:
        frames = _decode_all([STREAM])
        assert [f.event_type for f in frames] == [
            "stream_start",
            "message",
            "message",
            "conversation_id",
            "stream_end",
        ]
        assert frames[1].json() == {"token": "Hel"}

    def test_chunk_boundaries_do_not_matter(self) -> None:
        whole = _decode_all([STREAM])
        char_by_char = _decode_all(list(STREAM))
        assert char_by_char == whole

    @pytest.mark.parametrize("size", [1, 2, 3, 7, 64])
    def test_byte_chunks(self, size: int) -> None:
        raw = STREAM.encode()
        chunks = [raw[i : i + size] for i in range(0, len(raw), size)]
        assert _decode_all(chunks) == _decode_all([STREAM])

    def test_multibyte_character_split_across_chunks(self) -> None:
        raw = 'event: message\ndata: {"token": "café \U0001f600"}\n\n'.encode()
        split = raw.index("é".encode()) + 1
        frames = _decode_all([raw[:split], raw[split:]])
        assert frames[0].json() == {"token": "café \U0001f600"}

    def test_partial_frame_stays_pending(self) -> None:
        decoder = FrameDecoder()
        assert decoder.feed('event: message\ndata: {"tok') == []
        assert decoder.pending == 'event: message\ndata: {"tok'
        frames = decoder.feed('en": "Hi"}\n\n')
        assert frames == [Frame("message", '{"token": "Hi"}')]
        assert decoder.pending == ""

    def test_crlf_line_endings(self) -> None:
        text = 'event: message\r\ndata: {"token": "a"}\r\n\r\n'
        assert _decode_all([text]) == [Frame("message", '{"token": "a"}')]
        # A CRLF pair split between chunks still separates frames
        assert _decode_all([text[:-1], text[-1:]]) == [Frame("message", '{"token": "a"}')]

    def test_bare_cr_line_endings(self) -> None:
        text = 'event: message\rdata: {"token": "a"}\r\r'
        assert _decode_all([text]) == [Frame("message", '{"token": "a"}')]
        assert _decode_all(list(text)) == [Frame("message", '{"token": "a"}')]

    def test_cr_then_crlf_across_chunks(self) -> None:
        # "\r" ends the data line, the following "\r\n" is the blank line
        decoder = FrameDecoder()
        assert decoder.feed('data: {"token": "a"}\r') == []
        assert decoder.feed("\r") == []
        assert decoder.feed("\n") == [Frame("message", '{"token": "a"}')]
        assert decoder.pending == ""

    def test_flush_completes_frame_ended_by_held_cr(self) -> None:
        decoder = FrameDecoder()
        assert decoder.feed('data: {"token": "a"}\r\r') == []
        assert decoder.flush() == [Frame("message", '{"token": "a"}')]
        assert decoder.pending == ""

    def test_flush_discards_unterminated_frame(self) -> None:
        decoder = FrameDecoder()
        decoder.feed('data: {"token": "a"}\n')
        assert decoder.flush() == []
        assert decoder.pending == ""

    def test_reset_discards_partial_frame(self) -> None:
        decoder = FrameDecoder()
        decoder.feed("event: message\ndata: {")
        decoder.reset()
        assert decoder.pending == ""
        assert decoder.feed('data: {"token": "x"}\n\n') == [Frame("message", '{"token": "x"}')]


class TestParseFrame:
    def test_default_event_type(self) -> None:
        assert parse_frame('data: {"token": "x"}') == Frame("message", '{"token": "x"}')

    def test_multiple_data_lines_joined_with_newline(self) -> None:
        frame = parse_frame("event: message\ndata: {\"token\":\ndata: \"x\"}")
        assert frame is not None
        assert frame.payload == '{"token":\n"x"}'
        assert frame.json() == {"token": "x"}

    def test_frame_without_data_dropped(self) -> None:
        assert parse_frame("event: stream_end") is None
        assert parse_frame("event: message\ndata:   ") is None
        assert parse_frame("   ") is None

    def test_comments_and_unknown_fields_ignored(self) -> None:
        frame = parse_frame(': keep-alive\nid: 7\nretry: 100\nevent: error\ndata: {"error": "x"}')
        assert frame == Frame("error", '{"error": "x"}')

    def test_value_without_space(self) -> None:
        assert parse_frame('event:message\ndata:{"a":1}') == Frame("message", '{"a":1}')

    def test_malformed_json_raises_value_error(self) -> None:
        frame = parse_frame("data: {not json")
        assert frame is not None
        with pytest.raises(ValueError):
            frame.json()
