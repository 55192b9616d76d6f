"""
XML Event Builder

Streams an EPCIS 2.0 XML document through a SAX parser and produces one
EventNode tree per event element (ObjectEvent, AggregationEvent, ...). Trees
are yielded as soon as their closing tag has been parsed, so documents of any
size are processed with memory bounded by the largest single event.

Structure mapping (must match the JSON builder):
- WHAT: <epcList><epc>..</epc></epcList> entries become "epc" leaves
- WHY:  <bizTransaction>, <source>, <destination> entries become anonymous
        nodes holding their "type" attribute and text as leaves
- HOW:  <sensorMetadata>/<sensorReport> attributes become leaves

DOCTYPE declarations are rejected (defusedxml, forbid_dtd=True).
"""

import logging
from collections import deque
from typing import BinaryIO, Deque, Dict, FrozenSet, Iterator, List, Optional
from xml.sax import SAXParseException
from xml.sax.handler import ContentHandler

from defusedxml import DefusedXmlException
from defusedxml.expatreader import DefusedExpatParser

from epcis.constants import (
    DEFAULT_EXCLUDED_FIELDS,
    EPC,
    EPC_LISTS,
    EVENT_TYPES,
    SENSOR_ELEMENT,
    SENSOR_ELEMENT_LIST,
    TYPE,
    XML_NAMESPACE_ATTRIBUTE,
)
from epcis.event_node import EventNode
from epcis.exceptions import DocumentParseError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

# (element, parent) pairs of list entries that become anonymous nodes
WHY_ENTRIES = {
    ("bizTransaction", "bizTransactionList"),
    ("source", "sourceList"),
    ("destination", "destinationList"),
}

HOW_ELEMENTS = {"sensorMetadata", "sensorReport"}


class EventTreeHandler(ContentHandler):
    """
    SAX handler building event trees.

    Completed trees are appended to `completed`; the caller drains the queue
    after every chunk fed to the parser.
    """

    def __init__(self, excluded_fields: FrozenSet[str] = DEFAULT_EXCLUDED_FIELDS):
        super().__init__()
        self.excluded_fields = excluded_fields
        self.namespaces: Dict[str, str] = {}
        self.completed: Deque[EventNode] = deque()
        self._path: List[str] = []
        self._attributes: List[Dict[str, str]] = []
        self._text: List[str] = []
        self._current: Optional[EventNode] = None

    # Path tests

    def _skipping(self) -> bool:
        return any(name in self.excluded_fields for name in self._path)

    def _in_what(self) -> bool:
        return len(self._path) >= 2 and self._path[-1] == EPC and self._path[-2] in EPC_LISTS

    def _in_why(self) -> bool:
        return len(self._path) >= 2 and (self._path[-1], self._path[-2]) in WHY_ENTRIES

    def _in_how(self) -> bool:
        return (
            len(self._path) >= 3
            and self._path[-1] in HOW_ELEMENTS
            and self._path[-2] == SENSOR_ELEMENT
            and self._path[-3] == SENSOR_ELEMENT_LIST
        )

    # SAX callbacks

    def startElement(self, name, attrs):
        self._path.append(name)
        self._text = []

        attributes = {}
        for key, value in attrs.items():
            if key.startswith(XML_NAMESPACE_ATTRIBUTE):
                self.namespaces[key[len(XML_NAMESPACE_ATTRIBUTE):]] = value
            elif key != "xmlns":
                attributes[key] = value.strip()
        self._attributes.append(attributes)

        if self._skipping():
            return
        if name in EVENT_TYPES and self._current is None:
            self._current = EventNode(namespaces=self.namespaces)
            self._current.add_child(TYPE, name)
            return
        if self._current is None:
            return

        if self._in_why():
            self._current = self._current.add_child(None)
        elif not self._in_what():
            self._current = self._current.add_child(name)

    def characters(self, content):
        self._text.append(content)

    def endElement(self, name):
        text = "".join(self._text).strip() or None
        self._text = []
        attributes = self._attributes.pop()

        try:
            if self._skipping() or self._current is None:
                return

            if name in EVENT_TYPES and self._current.parent is None:
                self.completed.append(self._current)
                logger.debug("Parsed XML %s", name)
                self._current = None
            elif self._in_what():
                self._current.add_child(name, text)
            elif self._in_why() or self._in_how():
                for key, value in attributes.items():
                    self._current.add_child(key, value)
                if text is not None:
                    self._current.add_child(name, text)
                self._current = self._current.parent
            else:
                self._current.value = text
                for key, value in attributes.items():
                    if not key.startswith("xsi:") and not value.startswith("xsd:"):
                        self._current.add_child(key, value)
                self._current = self._current.parent
        finally:
            self._path.pop()


def iter_xml_events(
    stream: BinaryIO,
    excluded_fields: FrozenSet[str] = DEFAULT_EXCLUDED_FIELDS,
    chunk_size: int = CHUNK_SIZE,
) -> Iterator[EventNode]:
    """
    Parse an EPCIS XML document incrementally and yield one tree per event.

    Args:
        stream: Binary file-like object positioned at the document start
        excluded_fields: Element names whose subtrees are dropped
        chunk_size: Bytes read from the stream per parser feed

    Yields:
        EventNode trees in document order

    Raises:
        DocumentParseError: On malformed XML, an empty document or a DOCTYPE
    """
    handler = EventTreeHandler(excluded_fields)
    parser = DefusedExpatParser(forbid_dtd=True)
    parser.setContentHandler(handler)

    received = False
    try:
        while True:
            chunk = stream.read(chunk_size)
            if not chunk:
                break
            received = True
            parser.feed(chunk)
            while handler.completed:
                yield handler.completed.popleft()
        if not received:
            raise DocumentParseError("Empty XML document")
        parser.close()
    except (SAXParseException, DefusedXmlException) as e:
        raise DocumentParseError(f"Invalid XML document: {e}") from e

    while handler.completed:
        yield handler.completed.popleft()
