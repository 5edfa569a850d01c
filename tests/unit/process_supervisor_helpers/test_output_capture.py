import asyncio

import pytest

from serverrun.process_supervisor_helpers import OutputBuffer, combine_output, pump_stream


def test_output_buffer_accumulates_text():
    buffer = OutputBuffer()
    buffer.append(b"hello ")
    buffer.append(b"world")
    assert buffer.text == "hello world"
    assert len(buffer) == 11


def test_output_buffer_handles_split_multibyte_characters():
    buffer = OutputBuffer()
    encoded = "café ✓".encode("utf-8")
    assert buffer.append(encoded[:4]) == "caf"
    buffer.append(encoded[4:-1])
    buffer.append(encoded[-1:])
    assert buffer.text == "café ✓"


def test_output_buffer_flush_replaces_dangling_bytes():
    buffer = OutputBuffer()
    buffer.append("✓".encode("utf-8")[:2])
    assert buffer.text == ""
    buffer.flush()
    assert buffer.text == "�"


def test_combine_output_joins_streams_with_newline():
    assert combine_output("out", "err") == "out\nerr"
    assert combine_output("", "") == "\n"


@pytest.mark.asyncio
async def test_pump_stream_forwards_and_buffers_chunks():
    stream = asyncio.StreamReader()
    stream.feed_data(b"Server starting\n")
    stream.feed_data(b"Listening on 3000\n")
    stream.feed_eof()

    buffer = OutputBuffer()
    forwarded = []
    heard = []

    await pump_stream(stream, buffer, label="stdout", sink=forwarded.append, listener=heard.append)

    assert b"".join(forwarded) == b"Server starting\nListening on 3000\n"
    assert buffer.text == "Server starting\nListening on 3000\n"
    assert "".join(heard) == buffer.text


@pytest.mark.asyncio
async def test_pump_stream_without_sink_or_listener():
    stream = asyncio.StreamReader()
    stream.feed_data(b"quiet")
    stream.feed_eof()

    buffer = OutputBuffer()
    await pump_stream(stream, buffer, label="stderr")

    assert buffer.text == "quiet"
