"""
EPCIS Document Wrapper

Wraps a bare JSON array of events into a minimal EPCISDocument so it can be
processed like any other document. The array bytes are copied through
unchanged, so event order and content are preserved exactly.

Output shape:
    {
      "@context": ["https://ref.gs1.org/standards/epcis/2.0.0/epcis-context.jsonld"],
      "type": "EPCISDocument",
      "schemaVersion": "2.0",
      "creationDate": "<now, UTC, milliseconds>",
      "epcisBody": {"eventList": <input array>}
    }
"""

import io
import json
from datetime import datetime, timezone
from typing import BinaryIO, Iterable, Iterator, Optional

from epcis.exceptions import DocumentStructureError

EPCIS_CONTEXT_URL = "https://ref.gs1.org/standards/epcis/2.0.0/epcis-context.jsonld"

_WHITESPACE = b" \t\r\n"


def _document_prefix(creation_date: Optional[datetime] = None) -> bytes:
    created = (creation_date or datetime.now(timezone.utc)).astimezone(timezone.utc)
    header = {
        "@context": [EPCIS_CONTEXT_URL],
        "type": "EPCISDocument",
        "schemaVersion": "2.0",
        "creationDate": created.strftime("%Y-%m-%dT%H:%M:%S.") + f"{created.microsecond // 1000:03d}Z",
    }
    # Drop the closing brace so the body can follow
    return json.dumps(header)[:-1].encode("utf-8") + b', "epcisBody": {"eventList": '


def wrap_event_list(
    stream: BinaryIO,
    chunk_size: int = 64 * 1024,
    creation_date: Optional[datetime] = None,
) -> Iterator[bytes]:
    """
    Wrap a JSON array byte stream into an EPCISDocument byte stream.

    Args:
        stream: Binary stream containing a JSON array of events
        chunk_size: Bytes copied per read
        creation_date: Document creation date (defaults to now)

    Yields:
        Chunks of the wrapped document

    Raises:
        DocumentStructureError: If the input does not start with a JSON array
    """
    chunk = stream.read(chunk_size)
    while chunk and not chunk.lstrip(_WHITESPACE):
        chunk = stream.read(chunk_size)
    chunk = chunk.lstrip(_WHITESPACE) if chunk else b""
    if chunk.startswith(b"\xef\xbb\xbf"):
        chunk = chunk[3:].lstrip(_WHITESPACE)
    if not chunk.startswith(b"["):
        raise DocumentStructureError("Expecting input as JSON array")

    yield _document_prefix(creation_date)
    while chunk:
        yield chunk
        chunk = stream.read(chunk_size)
    yield b"}}"


class WrappedStream(io.RawIOBase):
    """Binary file object reading from an iterator of byte chunks."""

    def __init__(self, chunks: Iterable[bytes]):
        super().__init__()
        self._chunks = iter(chunks)
        self._pending = b""

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        while not self._pending:
            try:
                self._pending = next(self._chunks)
            except StopIteration:
                return 0
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size


def wrapped_document(stream: BinaryIO, **kwargs) -> BinaryIO:
    """Return a readable binary stream of the wrapped document."""
    return io.BufferedReader(WrappedStream(wrap_event_list(stream, **kwargs)))
