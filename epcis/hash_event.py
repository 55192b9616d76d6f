"""
EPCIS Event Hashing Module

This module creates the GS1 event hash identifiers of EPCIS events:

    ni:///sha-256;<hex digest>?ver=CBV2.0

Process:
1. Parse the XML or JSON source into one event tree per event
2. Canonicalise each tree into its pre-hash string
3. Digest the UTF-8 pre-hash with each requested algorithm

Requesting the pseudo algorithm "prehash" returns the pre-hash string itself,
which is useful to debug differences between two implementations.
"""

import hashlib
import io
import logging
from typing import Any, BinaryIO, Dict, Iterator, Mapping, Optional, Sequence, Union

from epcis.canonicalise import EventCanonicaliser
from epcis.constants import CONTEXT, DEFAULT_ALGORITHM, DOCUMENT_TYPES, PREHASH, TYPE
from epcis.context import CBVVersion, HashContext
from epcis.event_node import EventNode
from epcis.exceptions import ConfigurationError
from epcis.extractor import EventListExtractor
from epcis.json_builder import build_event_tree, merge_context
from epcis.xml_builder import iter_xml_events

logger = logging.getLogger(__name__)

Source = Union[BinaryIO, bytes, str]

# Event hash algorithm name -> hashlib constructor name
HASH_ALGORITHMS: Dict[str, str] = {
    "sha-1": "sha1",
    "sha-224": "sha224",
    "sha-256": "sha256",
    "sha-384": "sha384",
    "sha-512": "sha512",
    "sha3-224": "sha3_224",
    "sha3-256": "sha3_256",
    "sha3-384": "sha3_384",
    "sha3-512": "sha3_512",
    "md5": "md5",
}


def generate_hash_id(
    prehash: str,
    algorithm: str = DEFAULT_ALGORITHM,
    cbv_version: CBVVersion = CBVVersion.V2_0,
) -> str:
    """
    Digest a pre-hash string into a ni:/// hash identifier.

    Args:
        prehash: Canonical pre-hash string (line breaks are removed)
        algorithm: One of HASH_ALGORITHMS; unknown names fall back to sha-256
        cbv_version: Version tag appended as ?ver=

    Returns:
        Hash identifier string

    Example:
        >>> generate_hash_id("eventType=ObjectEvent")[:15]
        'ni:///sha-256;'
    """
    name = algorithm.lower()
    if name not in HASH_ALGORITHMS:
        logger.warning("Unsupported hash algorithm %r, using %s", algorithm, DEFAULT_ALGORITHM)
        name = DEFAULT_ALGORITHM

    data = prehash.replace("\r", "").replace("\n", "").encode("utf-8")
    digest = hashlib.new(HASH_ALGORITHMS[name], data).hexdigest()
    return f"ni:///{name};{digest}?ver={cbv_version.tag}"


def _as_stream(source: Source) -> BinaryIO:
    if isinstance(source, str):
        return io.BytesIO(source.encode("utf-8"))
    if isinstance(source, (bytes, bytearray)):
        return io.BytesIO(bytes(source))
    return source


def _require_single(outputs: Sequence[str]) -> str:
    if len(outputs) != 1:
        raise ConfigurationError(
            f"A single hash string needs exactly one algorithm, got {len(outputs)}: {list(outputs)}"
        )
    return outputs[0]


class EventHashGenerator:
    """
    Generates pre-hash strings and hash identifiers for EPCIS events.

    A generator is configured once through its HashContext and may then be
    used from several threads; each call builds its own trees.

    Example:
        >>> generator = EventHashGenerator(HashContext().with_excluded_fields("bizStep"))
        >>> with open("document.xml", "rb") as f:
        ...     for result in generator.from_xml(f, "prehash", "sha-256"):
        ...         print(result["sha-256"])
    """

    def __init__(self, context: Optional[HashContext] = None):
        self.context = context or HashContext()
        self._canonicaliser = EventCanonicaliser(self.context)

    def prehash(self, tree: EventNode) -> str:
        """Pre-hash string of an event tree, rendered with the context's join string."""
        return self._canonicaliser.render(tree)[0]

    def hash_tree(self, tree: EventNode, outputs: Sequence[str] = (DEFAULT_ALGORITHM,)) -> Dict[str, str]:
        """
        Compute all requested outputs for one event tree.

        Returns:
            Mapping of output name -> value in request order; empty if the
            event has no pre-hash content
        """
        prehash, digest_input = self._canonicaliser.render(tree)
        if not digest_input:
            logger.debug("Skipping event with no pre-hash content (all fields excluded)")
            return {}
        result: Dict[str, str] = {}
        for output in outputs:
            if output.lower() == PREHASH:
                result[output] = prehash
            else:
                result[output] = generate_hash_id(digest_input, output, self.context.cbv_version)
        return result

    def from_event(
        self,
        event: Mapping[str, Any],
        *outputs: str,
        namespaces: Optional[Dict[str, str]] = None,
    ) -> Dict[str, str]:
        """Hash one already-parsed JSON event."""
        tree = build_event_tree(event, namespaces, self.context.excluded_fields)
        return self.hash_tree(tree, outputs or (DEFAULT_ALGORITHM,))

    def from_json(self, source: Source, *outputs: str) -> Iterator[Dict[str, str]]:
        """
        Hash every event of a JSON document, bare event array or single event.

        Args:
            source: Binary stream, bytes or str
            *outputs: Algorithm names and/or "prehash" (default: sha-256)

        Yields:
            One result mapping per event, in source order
        """
        outputs = outputs or (DEFAULT_ALGORITHM,)
        return self._hash_json(EventListExtractor(_as_stream(source)), outputs)

    def _hash_json(self, extractor: EventListExtractor, outputs: Sequence[str]) -> Iterator[Dict[str, str]]:
        namespaces: Dict[str, str] = {}
        for item in extractor:
            if item.get(TYPE) in DOCUMENT_TYPES:
                merge_context(namespaces, item.get(CONTEXT))
                continue
            result = self.from_event(item, *outputs, namespaces=namespaces)
            if result:
                yield result

    def from_xml(self, source: Source, *outputs: str) -> Iterator[Dict[str, str]]:
        """
        Hash every event of an EPCIS XML document.

        Yields:
            One result mapping per event, in document order
        """
        outputs = outputs or (DEFAULT_ALGORITHM,)
        return self._hash_xml(_as_stream(source), outputs)

    def _hash_xml(self, stream: BinaryIO, outputs: Sequence[str]) -> Iterator[Dict[str, str]]:
        for tree in iter_xml_events(stream, self.context.excluded_fields):
            result = self.hash_tree(tree, outputs)
            if result:
                yield result

    def hash_ids_from_json(self, source: Source, output: str = DEFAULT_ALGORITHM, *more: str) -> Iterator[str]:
        """
        Like from_json, but yields plain strings for a single output.

        Raises:
            ConfigurationError: Immediately, if more than one output is requested
        """
        name = _require_single((output,) + more)
        return (result[name] for result in self.from_json(source, name))

    def hash_ids_from_xml(self, source: Source, output: str = DEFAULT_ALGORITHM, *more: str) -> Iterator[str]:
        """
        Like from_xml, but yields plain strings for a single output.

        Raises:
            ConfigurationError: Immediately, if more than one output is requested
        """
        name = _require_single((output,) + more)
        return (result[name] for result in self.from_xml(source, name))


def hash_event(event: Mapping[str, Any], algorithm: str = DEFAULT_ALGORITHM) -> str:
    """
    Generate the hash identifier of a single parsed JSON event.

    Args:
        event: EPCIS 2.0 JSON event (dict)
        algorithm: Hash algorithm name

    Returns:
        ni:/// hash identifier

    Example:
        >>> hash_event({"type": "ObjectEvent", "eventTime": "2021-05-27T13:00:00Z",
        ...             "eventTimeZoneOffset": "+01:00", "action": "OBSERVE"})
        'ni:///sha-256;...?ver=CBV2.0'
    """
    return EventHashGenerator().from_event(event, algorithm).get(algorithm, "")
