"""
EPCIS Event Canonicalisation Module

This module turns an event tree into the canonical pre-hash string defined by
the GS1 CBV event hash algorithm. The same logical event must produce the same
string whether it arrived as XML or as JSON-LD.

Process:
1. Sort every node's children (schema order first, then user extensions by
   their expanded {namespace}name=value form)
2. Emit standard fields, rewriting identifiers and vocabulary to Web URIs
3. Emit user extensions: after all standard fields for CBV 2.0, inline
   within their enclosing standard field for CBV 2.1
4. Concatenate the lines (join string configurable for debugging)
"""

import logging
import re
import sys
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple

from epcis import schema
from epcis.constants import (
    BARE_WORD_FIELDS,
    EPC,
    EPC_LISTS,
    EVENT_TYPE_FIELD,
    EVENT_TYPES,
    NUMBER_PATTERN,
    REPEATED_VALUE_FIELDS,
    SENSOR_ELEMENT,
    SENSOR_ELEMENT_LIST,
    SENSOR_REPORT,
    SENSOR_VOCABULARY_FIELDS,
    SHORT_NAME_FIELDS,
    TIME_FIELDS,
)
from epcis.context import CBVVersion, HashContext
from epcis.event_node import EventNode
from epcis.exceptions import EventFormatError
from gs1.identifiers import (
    expand_short_names,
    is_class_urn,
    is_instance_urn,
    to_class_digital_link,
    to_digital_link,
)
from gs1.vocabulary import cbv_urn_to_web_uri, is_cbv_urn, sensor_vocabulary, to_cbv_vocabulary

logger = logging.getLogger(__name__)

NOT_FOUND = sys.maxsize

_TIMESTAMP = re.compile(
    r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(?::\d{2})?)(?:\.(\d+))?(Z|z|[+-]\d{2}:?\d{2})$"
)


def format_time(value: str) -> str:
    """
    Convert an xsd:dateTime to a millisecond-precision UTC timestamp.

    Args:
        value: Timestamp with an explicit offset, e.g. "2020-06-08T20:11:16+02:00"

    Returns:
        UTC timestamp such as "2020-06-08T18:11:16.000Z"; digits below
        milliseconds are truncated

    Raises:
        EventFormatError: If the value is not a timestamp with an offset
    """
    match = _TIMESTAMP.match(value.strip())
    if not match:
        raise EventFormatError(f"Invalid timestamp: {value!r}")

    base, fraction, offset = match.groups()
    if len(base) == 16:
        base += ":00"
    if offset in ("Z", "z"):
        offset = "+00:00"
    elif ":" not in offset:
        offset = f"{offset[:3]}:{offset[3:]}"
    micros = (fraction or "")[:6].ljust(6, "0")

    try:
        parsed = datetime.fromisoformat(f"{base}.{micros}{offset}")
    except ValueError as e:
        raise EventFormatError(f"Invalid timestamp: {value!r}") from e

    utc = parsed.astimezone(timezone.utc)
    return f"{utc.strftime('%Y-%m-%dT%H:%M:%S')}.{utc.microsecond // 1000:03d}Z"


def normalize_number(value: str) -> str:
    """
    Normalize a numeric string the way its floating point value prints.

    Example:
        >>> normalize_number("25.0")
        '25'
        >>> normalize_number("-477979.890")
        '-477979.89'
    """
    try:
        number = Decimal(value)
    except InvalidOperation:
        return value
    if number == number.to_integral_value():
        return str(int(number)) if abs(number) < 10 ** 7 else value
    if "." in value:
        return value.rstrip("0")
    return value


def identifier_value(value: str) -> str:
    """Canonical form of a value that may be a GS1 identifier."""
    if is_instance_urn(value):
        return to_digital_link(value)
    if is_class_urn(value):
        return to_class_digital_link(value)
    if NUMBER_PATTERN.match(value):
        return normalize_number(value)
    return expand_short_names(value)


def _gs1_conversion(func, value: str) -> str:
    try:
        return func(value)
    except ValueError as e:
        raise EventFormatError(str(e)) from e


class EventCanonicaliser:
    """
    Builds pre-hash lines for event trees under one HashContext.

    The canonicaliser holds no per-event state, so one instance may serve any
    number of events.
    """

    def __init__(self, context: Optional[HashContext] = None):
        self.context = context or HashContext()

    @property
    def inline_extensions(self) -> bool:
        return self.context.cbv_version is CBVVersion.V2_1

    def lines(self, root: EventNode) -> List[str]:
        """
        Return the ordered pre-hash lines of an event tree.

        The tree's children are reordered in place.
        """
        self._order(root)
        lines = self._standard_lines(root)
        if not self.inline_extensions:
            lines.extend(self._extension_lines(root))
        return [line for line in lines if line]

    def render(self, root: EventNode) -> Tuple[str, str]:
        """
        Canonicalise an event tree.

        Returns:
            Tuple of (pre-hash string rendered with the context's join string,
            text to digest with all line breaks removed)
        """
        text = "\n".join(self.lines(root)).strip()
        prehash = re.sub(r"[\n\r]+", lambda _: self.context.prehash_join, text)
        return prehash, re.sub(r"[\n\r]", "", text)

    # Ordering

    def _order(self, node: EventNode) -> str:
        """Sort the subtree in place and return its serialized children text."""
        order = schema.sort_order(node.field_path())
        keyed = []
        for child in node.children:
            subtree = self._order(child)
            position = order.index(child.name) if child.name in order else NOT_FOUND
            keyed.append(((position, self._display(child), subtree), child))
        keyed.sort(key=lambda item: item[0])
        node.children[:] = [child for _, child in keyed]
        return "\n".join(f"{key[1]}\n{key[2]}" for key, _ in keyed)

    def _display(self, node: EventNode) -> str:
        if node.name is None:
            return ""
        if node.is_leaf and node.value is not None and node.is_standard_field() and not node.is_ilmd_path:
            return self._format_standard(node)
        return self._extension_line(node)

    # Standard fields

    def _standard_lines(self, node: EventNode) -> List[str]:
        if node.is_leaf and node.name is not None and node.value is not None:
            if node.is_standard_field():
                if node.is_ilmd_path:
                    return [self._extension_line(node)]
                return [self._format_standard(node)]
            if self.inline_extensions:
                return [self._extension_line(node)]
            return []

        lines = [self._label(node)]
        for child in node.children:
            if self.inline_extensions and child.name is not None and not child.is_standard_field():
                lines.extend(self._extension_lines(child))
            else:
                lines.extend(self._standard_lines(child))
        return lines

    def _label(self, node: EventNode) -> str:
        if node.name is None:
            return ""
        if node.is_ilmd_path:
            return "" if node.is_array_wrapper() else self._extension_line(node)
        if not node.children or not node.is_standard_field() or self.context.is_excluded(node.name):
            return ""

        first = node.children[0]
        if first.name is not None:
            if node.name in REPEATED_VALUE_FIELDS:
                return ""
            if node.name == SENSOR_ELEMENT_LIST and not self.inline_extensions:
                return ""
            if first.name == SENSOR_REPORT and node.name != SENSOR_ELEMENT:
                return ""
        return node.name

    def _format_standard(self, node: EventNode) -> str:
        name, value = node.name, node.value
        parent = node.parent

        if self.context.is_excluded(name):
            return ""
        if name == EPC and parent is not None and parent.name in EPC_LISTS:
            uri = _gs1_conversion(to_digital_link, value) if is_instance_urn(value) else expand_short_names(value)
            return f"{EPC}={uri}"
        if is_instance_urn(value):
            return f"{name}={_gs1_conversion(to_digital_link, value)}"
        if is_class_urn(value):
            return f"{name}={_gs1_conversion(to_class_digital_link, value)}"
        if name in SHORT_NAME_FIELDS:
            return f"{name}={expand_short_names(value)}"
        if name in SENSOR_VOCABULARY_FIELDS and parent is not None and parent.name == SENSOR_REPORT:
            return f"{name}={sensor_vocabulary(name, value)}"
        if name in TIME_FIELDS:
            return f"{name}={format_time(value)}"
        if is_cbv_urn(value):
            return f"{name}={cbv_urn_to_web_uri(value)}"

        top = node.top_field
        if top in BARE_WORD_FIELDS and name in BARE_WORD_FIELDS[top]:
            return f"{name}={to_cbv_vocabulary(value, top)}"
        if value.startswith("gs1:"):
            return f"{name}={value[len('gs1:'):]}"
        if value in EVENT_TYPES:
            return f"{EVENT_TYPE_FIELD}={value}"
        if value == "":
            return name
        if NUMBER_PATTERN.match(value):
            return f"{name}={normalize_number(value)}"
        return f"{name}={value}"

    # User extensions

    def _extension_line(self, node: EventNode) -> str:
        uri = node.namespace_uri()
        name = f"{{{uri}}}{node.local_name()}" if uri else (node.name or "")
        if node.value:
            return f"{name}={_gs1_conversion(identifier_value, node.value)}"
        return name

    def _is_extension(self, node: EventNode) -> bool:
        return (
            node.name is not None
            and (not node.is_standard_field() or node.has_extension_content())
            and not self.context.is_excluded(node.name)
            and not node.is_under_context
        )

    def _extension_lines(self, node: EventNode) -> List[str]:
        if node.is_leaf:
            if node.value is not None and self._is_extension(node):
                return [self._extension_line(node)]
            return []

        lines = []
        if self._is_extension(node) and (node.name != SENSOR_ELEMENT_LIST or self.inline_extensions):
            first = node.children[0]
            if node.name == SENSOR_ELEMENT or (
                first.name is not None and first.name != node.name and first.name != SENSOR_REPORT
            ):
                lines.append(self._extension_line(node))
        for child in node.children:
            lines.extend(self._extension_lines(child))
        return lines


def canonicalise_event(root: EventNode, context: Optional[HashContext] = None) -> str:
    """
    Generate the pre-hash string of an event tree.

    Args:
        root: Event tree produced by the XML or JSON builder
        context: Hash configuration (defaults to CBV 2.0, default exclusions)

    Returns:
        Canonical pre-hash string

    Example:
        >>> from epcis.json_builder import build_event_tree
        >>> tree = build_event_tree({"type": "ObjectEvent", "action": "OBSERVE"})
        >>> canonicalise_event(tree)
        'eventType=ObjectEventaction=OBSERVE'
    """
    return EventCanonicaliser(context).render(root)[0]
