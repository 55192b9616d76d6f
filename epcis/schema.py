"""
EPCIS Field Ordering Schema

Canonical order of every standard EPCIS 2.0 event field, as defined for the
event hash by the CBV standard. The catalogue is nested: each field maps to the
ordered catalogue of its own children. It is built once at import time and is
read-only afterwards.
"""

from types import MappingProxyType
from typing import Mapping, Sequence, Tuple

_QUANTITY_ELEMENT = ("epcClass", "quantity", "uom")

_SENSOR_METADATA = (
    "time",
    "startTime",
    "endTime",
    "deviceID",
    "deviceMetadata",
    "rawData",
    "dataProcessingMethod",
    "bizRules",
)

_SENSOR_REPORT = (
    "type",
    "exception",
    "deviceID",
    "deviceMetadata",
    "rawData",
    "dataProcessingMethod",
    "time",
    "microorganism",
    "chemicalSubstance",
    "value",
    "component",
    "stringValue",
    "booleanValue",
    "hexBinaryValue",
    "uriValue",
    "minValue",
    "maxValue",
    "meanValue",
    "sDev",
    "percRank",
    "percValue",
    "uom",
    "coordinateReferenceSystem",
)


def _leaves(*names: str) -> dict:
    return {name: {} for name in names}


def _freeze(tree: dict) -> Mapping:
    return MappingProxyType({key: _freeze(value) for key, value in tree.items()})


FIELD_ORDER: Mapping[str, Mapping] = _freeze({
    "type": {},
    "eventTime": {},
    "eventTimeZoneOffset": {},
    "certificationInfo": {},
    "epcList": _leaves("epc"),
    "parentID": {},
    "inputEPCList": _leaves("epc"),
    "childEPCs": _leaves("epc"),
    "quantityList": _leaves(*_QUANTITY_ELEMENT),
    "childQuantityList": _leaves(*_QUANTITY_ELEMENT),
    "inputQuantityList": _leaves(*_QUANTITY_ELEMENT),
    "outputEPCList": _leaves("epc"),
    "outputQuantityList": _leaves(*_QUANTITY_ELEMENT),
    "action": {},
    "transformationID": {},
    "bizStep": {},
    "disposition": {},
    "persistentDisposition": _leaves("set", "unset"),
    "readPoint": _leaves("id"),
    "bizLocation": _leaves("id"),
    "bizTransactionList": _leaves("type", "bizTransaction"),
    "sourceList": _leaves("type", "source"),
    "destinationList": _leaves("type", "destination"),
    "sensorElementList": {
        "sensorMetadata": _leaves(*_SENSOR_METADATA),
        "sensorReport": _leaves(*_SENSOR_REPORT),
    },
    "ilmd": {},
})


def contains_path(path: Sequence[str]) -> bool:
    """
    Check whether a field path (outermost first) exists in the catalogue.

    Example:
        >>> contains_path(["readPoint", "id"])
        True
        >>> contains_path(["readPoint", "example:gate"])
        False
    """
    if not path:
        return False
    level = FIELD_ORDER
    for name in path:
        if name not in level:
            return False
        level = level[name]
    return True


def sort_order(path: Sequence[str]) -> Tuple[str, ...]:
    """
    Return the canonical child order for the field at `path`.

    An empty path yields the top-level event order. Path entries that are not
    in the catalogue are skipped, so the deepest known field decides.
    """
    if not path:
        return tuple(FIELD_ORDER)
    level = None
    current = FIELD_ORDER
    for name in path:
        if name in current:
            level = current[name]
            current = level
    return tuple(level) if level is not None else ()
