"""
Streaming JSON Event Extractor

Pulls EPCIS events out of a JSON byte stream one at a time without loading
the whole document. Supported inputs:
- EPCISDocument / EPCISQueryDocument objects (events under epcisBody.eventList
  or epcisBody.queryResults.resultsBody.eventList)
- A bare JSON array of event objects
- A single bare event object

The extractor is demand driven: the consumer asks for up to N items with
request(n) and the extractor reads only as many tokens as needed to satisfy
that demand. Besides events, a document header object (@context, type,
schemaVersion, creationDate) is forwarded once so the consumer can pick up
namespace declarations; it is sent ahead of the events when the header fields
precede the eventList, otherwise after the last event.

Example:
    >>> with open("document.json", "rb") as f:
    ...     extractor = EventListExtractor(f)
    ...     first_two = extractor.request(2)
    ...     extractor.cancel()
"""

import logging
from typing import Any, BinaryIO, Dict, Iterator, List, Optional, Tuple

import ijson

from epcis.constants import (
    BODY_CONTAINERS,
    DOCUMENT_SHAPE_FIELDS,
    DOCUMENT_TYPES,
    EVENT_LIST,
    TYPE,
)
from epcis.exceptions import DocumentParseError, DocumentStructureError, ExtractorDemandError

logger = logging.getLogger(__name__)

Token = Tuple[str, Any]

_SCALAR_EVENTS = {"null", "boolean", "integer", "double", "number", "string"}


class _TokenCursor:
    """Sequential view over ijson parse events (prefix dropped)."""

    def __init__(self, stream: BinaryIO, buf_size: int):
        self._events = ijson.parse(stream, buf_size=buf_size)

    def next(self) -> Optional[Token]:
        try:
            _, event, value = next(self._events)
        except StopIteration:
            return None
        except ijson.JSONError as e:
            raise DocumentParseError(f"Invalid JSON document: {e}") from e
        return event, value

    def read_value(self, first: Token) -> Any:
        """Build the complete value starting at `first` (scalar, object or array)."""
        builder = ijson.ObjectBuilder()
        event, value = first
        builder.event(event, value)
        depth = 1 if event in ("start_map", "start_array") else 0
        while depth:
            token = self.next()
            if token is None:
                raise DocumentParseError("Invalid JSON document: unexpected end of input")
            event, value = token
            builder.event(event, value)
            if event in ("start_map", "start_array"):
                depth += 1
            elif event in ("end_map", "end_array"):
                depth -= 1
        return builder.value

    def skip_value(self, first: Token) -> None:
        self.read_value(first)

    def close(self) -> None:
        close = getattr(self._events, "close", None)
        if close is not None:
            close()


def has_document_shape(header: Dict[str, Any]) -> bool:
    """Whether a header carries @context, type, schemaVersion and creationDate."""
    return all(field in header for field in DOCUMENT_SHAPE_FIELDS)


class EventListExtractor:
    """
    Demand-driven extractor of event objects from a JSON byte stream.

    Not safe for concurrent use; one extractor serves one consumer.
    """

    def __init__(self, stream: BinaryIO, buf_size: int = 64 * 1024):
        self._cursor = _TokenCursor(stream, buf_size)
        self._items = self._produce()
        self._completed = False
        self._cancelled = False
        self.header: Dict[str, Any] = {}

    @property
    def completed(self) -> bool:
        """True once the stream is exhausted or the extractor was cancelled."""
        return self._completed

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def request(self, n: int) -> List[Dict[str, Any]]:
        """
        Pull up to `n` items (events, plus the header object once).

        Args:
            n: Maximum number of items to return; must be positive

        Returns:
            Between 0 and n items; an empty list once completed

        Raises:
            ExtractorDemandError: If n is not positive
            DocumentParseError: If the JSON is malformed
            DocumentStructureError: If the document has the wrong shape
        """
        if n <= 0:
            raise ExtractorDemandError(f"Demand must be positive, got {n}")
        items: List[Dict[str, Any]] = []
        while len(items) < n and not self._completed:
            try:
                items.append(next(self._items))
            except StopIteration:
                self._completed = True
            except Exception:
                self._terminate()
                raise
        return items

    def cancel(self) -> None:
        """Stop extraction; no further input is read."""
        if not self._completed:
            logger.debug("Event extraction cancelled")
            self._cancelled = True
            self._terminate()

    def _terminate(self) -> None:
        self._completed = True
        self._items.close()
        self._cursor.close()

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        while True:
            batch = self.request(1)
            if not batch:
                return
            yield batch[0]

    # Producer

    def _produce(self) -> Iterator[Dict[str, Any]]:
        token = self._cursor.next()
        if token is None:
            raise DocumentStructureError("Empty JSON document")

        event, _ = token
        if event == "start_array":
            yield from self._event_phase()
            self._expect_end()
            return
        if event != "start_map":
            raise DocumentStructureError("Expected a JSON object or array at top level")

        emitted = 0
        header_sent = False
        found_event_list = False
        depth = 1

        # Header phase: scan keys, descending into body containers, until eventList
        while depth:
            token = self._cursor.next()
            if token is None:
                raise DocumentParseError("Invalid JSON document: unexpected end of input")
            event, value = token
            if event == "end_map":
                depth -= 1
                continue
            key = value
            first = self._cursor.next()
            if first is None:
                raise DocumentParseError("Invalid JSON document: unexpected end of input")

            if key in BODY_CONTAINERS and first[0] == "start_map":
                depth += 1
                continue
            if key == EVENT_LIST and not found_event_list:
                if first[0] != "start_array":
                    raise DocumentStructureError("invalid eventList structure, must be an array")
                found_event_list = True
                if has_document_shape(self.header):
                    header_sent = True
                    yield dict(self.header)
                for item in self._event_phase():
                    emitted += 1
                    yield item
                continue
            if depth == 1:
                self.header[key] = self._cursor.read_value(first)
            else:
                # Body fields such as queryName stay out of the header
                self._cursor.skip_value(first)

        self._expect_end()

        if not found_event_list and self.header.get(TYPE) not in DOCUMENT_TYPES and TYPE in self.header:
            logger.debug("Top-level object is a single event")
            yield dict(self.header)
            return
        if not header_sent and has_document_shape(self.header):
            yield dict(self.header)
        logger.debug("Extracted %d events", emitted)

    def _event_phase(self) -> Iterator[Dict[str, Any]]:
        while True:
            token = self._cursor.next()
            if token is None:
                raise DocumentParseError("Invalid JSON document: unterminated eventList")
            if token[0] == "end_array":
                return
            if token[0] != "start_map":
                self._cursor.skip_value(token)
                continue
            item = self._cursor.read_value(token)
            if TYPE in item:
                yield item
            else:
                logger.debug("Dropping eventList entry without type")

    def _expect_end(self) -> None:
        if self._cursor.next() is not None:
            raise DocumentParseError("Invalid JSON document: trailing content")
