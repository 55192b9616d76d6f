"""
Event Hash Exceptions

All errors raised while generating event hashes derive from EventHashError so
callers (HTTP service, CLI) can catch a single base class.
"""


class EventHashError(Exception):
    """Base class for event hash generation failures"""
    pass


class ConfigurationError(EventHashError):
    """Raised when a HashContext or requested output list is invalid"""
    pass


class DocumentParseError(EventHashError):
    """Raised when the XML or JSON source is not well-formed"""
    pass


class DocumentStructureError(EventHashError):
    """Raised when the source parses but has the wrong top-level shape"""
    pass


class EventFormatError(EventHashError):
    """Raised when a field value cannot be canonicalised (e.g. bad timestamp)"""
    pass


class ExtractorDemandError(EventHashError, ValueError):
    """Raised when a non-positive number of events is requested"""
    pass
