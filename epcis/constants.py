"""
EPCIS Field Constants

Field-name groups that drive how events are turned into trees and how tree
nodes are formatted. Names follow the EPCIS 2.0 JSON-LD / XML binding.
"""

import re
from typing import Dict, FrozenSet

EPC = "epc"
TYPE = "type"
EVENT_LIST = "eventList"
EPCIS_BODY = "epcisBody"
CONTEXT = "@context"
ILMD = "ilmd"
ERROR_DECLARATION = "errorDeclaration"
SENSOR_ELEMENT_LIST = "sensorElementList"
SENSOR_ELEMENT = "sensorElement"
SENSOR_REPORT = "sensorReport"
EVENT_TYPE_FIELD = "eventType"
PREHASH = "prehash"
DEFAULT_ALGORITHM = "sha-256"

# Namespace added whenever a document carries an @context
CBV_MDA_PREFIX = "cbvmda"
CBV_MDA_URI = "urn:epcglobal:cbv:mda"

EVENT_TYPES: FrozenSet[str] = frozenset({
    "ObjectEvent",
    "AggregationEvent",
    "TransactionEvent",
    "TransformationEvent",
    "AssociationEvent",
})

DOCUMENT_TYPES: FrozenSet[str] = frozenset({"EPCISDocument", "EPCISQueryDocument"})

# Header markers a document must carry to be forwarded by the extractor
DOCUMENT_SHAPE_FIELDS = (CONTEXT, TYPE, "schemaVersion", "creationDate")

# Containers between a document root and its eventList
BODY_CONTAINERS: FrozenSet[str] = frozenset({EPCIS_BODY, "queryResults", "resultsBody"})

DEFAULT_EXCLUDED_FIELDS: FrozenSet[str] = frozenset({
    ERROR_DECLARATION,
    "declarationTime",
    "reason",
    "correctiveEventIDs",
    "correctiveEventID",
    "recordTime",
    "eventID",
    CONTEXT,
    "rdfs:comment",
    "#text",
    "comment",
})

EPC_LISTS: FrozenSet[str] = frozenset({"epcList", "childEPCs", "inputEPCList", "outputEPCList"})

# Array field -> wrapper name given to each object entry
LIST_OF_OBJECTS: Dict[str, str] = {
    "quantityList": "quantityElement",
    "childQuantityList": "quantityElement",
    "inputQuantityList": "quantityElement",
    "outputQuantityList": "quantityElement",
    SENSOR_ELEMENT_LIST: SENSOR_ELEMENT,
    SENSOR_REPORT: SENSOR_REPORT,
}
LIST_ENTRY_WRAPPERS: FrozenSet[str] = frozenset(LIST_OF_OBJECTS.values())

# Arrays whose object entries become anonymous nodes
ANONYMOUS_ENTRY_LISTS: FrozenSet[str] = frozenset({
    "epcList",
    "childEPCs",
    "inputEPCList",
    "outputEPCList",
    "childQuantityList",
    "inputQuantityList",
    "outputQuantityList",
    "quantityElement",
    "readPoint",
    "bizLocation",
    "bizTransactionList",
    "sourceList",
    "destinationList",
    SENSOR_ELEMENT_LIST,
    SENSOR_ELEMENT,
    "sensorMetadata",
    SENSOR_REPORT,
    TYPE,
    "persistentDisposition",
    "bizTransaction",
    ILMD,
})

TIME_FIELDS: FrozenSet[str] = frozenset({"eventTime", "time", "startTime", "endTime", "declarationTime"})

SHORT_NAME_FIELDS: FrozenSet[str] = frozenset({
    EPC,
    "epcClass",
    "id",
    "deviceID",
    "deviceMetadata",
    "rawData",
    "dataProcessingMethod",
    "bizRules",
    "microorganism",
    "chemicalSubstance",
    "coordinateReferenceSystem",
    "uriValue",
})

SENSOR_VOCABULARY_FIELDS: FrozenSet[str] = frozenset({TYPE, "exception", "component"})

# Top-level field -> child fields whose bare words use its CBV vocabulary
BARE_WORD_FIELDS: Dict[str, FrozenSet[str]] = {
    "bizStep": frozenset({"bizStep"}),
    "disposition": frozenset({"disposition"}),
    "bizTransactionList": frozenset({TYPE}),
    "persistentDisposition": frozenset({"set", "unset"}),
    "sourceList": frozenset({TYPE}),
    "destinationList": frozenset({TYPE}),
}

# Children that repeat within their parent rather than forming a list label
REPEATED_VALUE_FIELDS: FrozenSet[str] = frozenset({"set", "unset"})

NUMBER_PATTERN = re.compile(r"^-?\d+(\.\d+)?$")

XML_NAMESPACE_ATTRIBUTE = "xmlns:"
