"""Capture of server stdout/stderr into append-only text buffers."""

import asyncio
import codecs
import logging
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

ChunkSink = Callable[[bytes], None]
TextListener = Callable[[str], None]

READ_CHUNK_SIZE = 4096


class OutputBuffer:
    """Append-only text accumulated from raw byte chunks.

    Decoding is incremental so a multi-byte character split across two reads
    is not mangled.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._parts: List[str] = []
        self._joined = ""
        self._joined_parts = 0

    def append(self, chunk: bytes) -> str:
        text = self._decoder.decode(chunk)
        if text:
            self._parts.append(text)
        return text

    def flush(self) -> str:
        text = self._decoder.decode(b"", final=True)
        if text:
            self._parts.append(text)
        return text

    @property
    def text(self) -> str:
        if self._joined_parts != len(self._parts):
            self._joined = "".join(self._parts)
            self._joined_parts = len(self._parts)
        return self._joined

    def __len__(self) -> int:
        return len(self.text)


def combine_output(stdout: str, stderr: str) -> str:
    """Combined view of both streams as handed to the startup classifier."""
    return f"{stdout}\n{stderr}"


async def pump_stream(
    stream: asyncio.StreamReader,
    buffer: OutputBuffer,
    *,
    label: str,
    sink: Optional[ChunkSink] = None,
    listener: Optional[TextListener] = None,
) -> None:
    """
    Read *stream* until EOF, forwarding each chunk and appending it to *buffer*.

    Args:
        stream: Process pipe to drain
        buffer: Buffer receiving the decoded text
        label: Stream name used in debug logs
        sink: Receives every raw chunk for live display
        listener: Receives every decoded chunk after it has been buffered
    """
    while True:
        chunk = await stream.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        if sink is not None:
            sink(chunk)
        text = buffer.append(chunk)
        if text.strip():
            logger.debug("Server %s: %s", label, text.strip())
        if listener is not None and text:
            listener(text)

    buffer.flush()
