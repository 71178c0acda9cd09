from __future__ import annotations

"""Incremental decoding of vendor streaming bodies.

`decode` is a plain generator: the consumer pulls the next chunk when it is
ready for it, and closing the generator early stops reading the body.
"""

import codecs
from typing import Iterable, Iterator

from . import get_adapter
from .base import StreamChunk


def iter_lines(byte_chunks: Iterable[bytes]) -> Iterator[str]:
    """Re-frame arbitrary byte chunks into text lines.

    Multi-byte characters and lines split across chunk boundaries are buffered
    until complete. A trailing line without a newline is flushed at the end.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""
    for chunk in byte_chunks:
        if not chunk:
            continue
        buffer += decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        *lines, buffer = buffer.split("\n")
        for line in lines:
            yield line.rstrip("\r")
    buffer += decoder.decode(b"", final=True)
    if buffer:
        yield buffer.rstrip("\r")


def decode(vendor: str, byte_chunks: Iterable[bytes]) -> Iterator[StreamChunk]:
    """Decode one vendor stream into deltas ending with exactly one final chunk."""
    adapter = get_adapter(vendor)
    yield from adapter.decode_stream(iter_lines(byte_chunks))


def collect(chunks: Iterable[StreamChunk]) -> str:
    return "".join(chunk.delta for chunk in chunks)
