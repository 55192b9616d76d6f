"""
EPCIS event hash generation package

Canonical pre-hash strings and ni:/// hash identifiers for EPCIS 2.0 events
supplied as XML or JSON-LD.
"""

from .context import CBVVersion, HashContext
from .event_node import EventNode
from .canonicalise import EventCanonicaliser, canonicalise_event
from .extractor import EventListExtractor
from .hash_event import EventHashGenerator, generate_hash_id, hash_event
from .document_wrapper import wrap_event_list, wrapped_document
from .exceptions import (
    EventHashError,
    ConfigurationError,
    DocumentParseError,
    DocumentStructureError,
    EventFormatError,
    ExtractorDemandError,
)

__all__ = [
    "CBVVersion",
    "HashContext",
    "EventNode",
    "EventCanonicaliser",
    "canonicalise_event",
    "EventListExtractor",
    "EventHashGenerator",
    "generate_hash_id",
    "hash_event",
    "wrap_event_list",
    "wrapped_document",
    "EventHashError",
    "ConfigurationError",
    "DocumentParseError",
    "DocumentStructureError",
    "EventFormatError",
    "ExtractorDemandError",
]
