"""
JSON Event Builder

Turns one parsed EPCIS 2.0 JSON/JSON-LD event into an EventNode tree that is
structurally equivalent to the tree the XML builder produces for the same
event:
- Identifier lists (epcList, childEPCs, ...) hold leaves named "epc"
- Quantity and sensor lists wrap each object entry in quantityElement,
  sensorElement or sensorReport, matching the XML element names
- Business transaction, source and destination entries become anonymous nodes
"""

import logging
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

from epcis.constants import (
    ANONYMOUS_ENTRY_LISTS,
    CBV_MDA_PREFIX,
    CBV_MDA_URI,
    CONTEXT,
    DEFAULT_EXCLUDED_FIELDS,
    EPC,
    EPC_LISTS,
    ERROR_DECLARATION,
    LIST_OF_OBJECTS,
)
from epcis.event_node import EventNode
from epcis.exceptions import DocumentStructureError

logger = logging.getLogger(__name__)


def merge_context(namespaces: Dict[str, str], context: Any) -> None:
    """
    Merge JSON-LD @context namespace definitions into a namespace map.

    Args:
        namespaces: Prefix -> URI map to update in place
        context: Value of an @context field (string, object or array of both)

    Example:
        >>> ns = {}
        >>> merge_context(ns, ["https://ref.gs1.org/standards/epcis/epcis-context.jsonld",
        ...                    {"example": "https://ns.example.com/epcis/"}])
        >>> ns["example"]
        'https://ns.example.com/epcis/'
    """
    if context is None:
        return
    namespaces.setdefault(CBV_MDA_PREFIX, CBV_MDA_URI)
    entries = context if isinstance(context, list) else [context]
    for entry in entries:
        if isinstance(entry, Mapping):
            for prefix, uri in entry.items():
                if isinstance(uri, str):
                    namespaces[prefix] = uri


def value_text(value: Any) -> str:
    """Text form of a JSON scalar as it appears in the pre-hash string."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        value = Decimal(repr(value))
    if isinstance(value, Decimal):
        text = str(value)
        return format(value, "f") if "E" in text else text
    return str(value)


def _is_scalar(value: Any) -> bool:
    return not isinstance(value, (Mapping, list))


def _add_fields(parent: EventNode, fields: Iterable[Tuple[str, Any]], excluded: FrozenSet[str]) -> None:
    for key, value in fields:
        if key in excluded:
            continue
        if isinstance(value, list):
            _add_array(parent, key, value, excluded)
        elif isinstance(value, Mapping):
            if key == ERROR_DECLARATION:
                continue
            _add_fields(parent.add_child(key), value.items(), excluded)
        else:
            parent.add_child(key, value_text(value))


def _add_array(parent: EventNode, name: str, items: list, excluded: FrozenSet[str]) -> None:
    array = parent.add_child(name)
    for item in items:
        if _is_scalar(item):
            array.add_child(EPC if name in EPC_LISTS else name, value_text(item))
        elif isinstance(item, list):
            _add_array(array, name, item, excluded)
        else:
            if name in LIST_OF_OBJECTS:
                wrapper = LIST_OF_OBJECTS[name]
            elif name in ANONYMOUS_ENTRY_LISTS:
                wrapper = None
            else:
                wrapper = name
            _add_fields(array.add_child(wrapper), item.items(), excluded)


def build_event_tree(
    event: Any,
    namespaces: Optional[Dict[str, str]] = None,
    excluded_fields: FrozenSet[str] = DEFAULT_EXCLUDED_FIELDS,
) -> EventNode:
    """
    Build the event tree of one JSON event.

    Args:
        event: Parsed event object (dict)
        namespaces: Document-level prefix -> URI map; copied, not modified
        excluded_fields: Field names whose subtrees are dropped

    Returns:
        Root EventNode (unnamed) holding the event's fields

    Raises:
        DocumentStructureError: If the event is not a JSON object

    Example:
        >>> tree = build_event_tree({"type": "ObjectEvent", "epcList": ["urn:epc:id:sgtin:0614141.107346.2017"]})
        >>> [child.name for child in tree.children]
        ['type', 'epcList']
    """
    if not isinstance(event, Mapping):
        raise DocumentStructureError(f"Expected a JSON object for an event, got {type(event).__name__}")

    tree_namespaces = dict(namespaces or {})
    merge_context(tree_namespaces, event.get(CONTEXT))

    root = EventNode(namespaces=tree_namespaces)
    _add_fields(root, event.items(), excluded_fields)
    logger.debug("Built JSON event tree for %s", event.get("type"))
    return root
