"""
EPCIS Event Tree Model

Both the XML and the JSON builder turn one EPCIS event into a tree of
EventNode objects. The canonicaliser then sorts and formats that tree into the
pre-hash string.

A node either holds a leaf value or has children (or neither, while it is
still being built). Nodes created for entries of an array of objects may have
no name. All nodes of one tree share the same namespace dictionary
(prefix -> URI), taken from the document's @context or xmlns declarations.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from epcis import schema
from epcis.constants import CONTEXT, ILMD, LIST_ENTRY_WRAPPERS, SENSOR_REPORT


@dataclass(eq=False)
class EventNode:
    """One field of an EPCIS event."""
    name: Optional[str] = None
    value: Optional[str] = None
    parent: Optional["EventNode"] = field(default=None, repr=False)
    namespaces: Dict[str, str] = field(default_factory=dict, repr=False)
    children: List["EventNode"] = field(default_factory=list)

    def add_child(self, name: Optional[str] = None, value: Optional[str] = None) -> "EventNode":
        """Create a child sharing this node's namespaces and append it."""
        child = EventNode(name=name, value=value, parent=self, namespaces=self.namespaces)
        self.children.append(child)
        return child

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def lineage(self) -> Iterator["EventNode"]:
        """Yield this node, then its parent, up to the root."""
        node = self
        while node is not None:
            yield node
            node = node.parent

    @property
    def is_ilmd_path(self) -> bool:
        return any(node.name == ILMD for node in self.lineage())

    @property
    def top_field(self) -> Optional[str]:
        """Name of the outermost named ancestor (the event-level field)."""
        top = self.name
        for node in self.lineage():
            if node.name is not None:
                top = node.name
        return top

    @property
    def is_under_context(self) -> bool:
        return (self.top_field or "").lower() == CONTEXT

    def field_path(self) -> List[str]:
        """
        Reconstruct the schema path of this node, outermost field first.

        List entry wrappers (quantityElement, sensorElement) and anonymous
        entries do not appear in the schema, so they are skipped; sensorReport
        is kept because it is itself a schema field. Repeated names produced by
        JSON arrays (sensorReport > sensorReport) are collapsed.
        """
        path: List[str] = []
        for node in self.lineage():
            name = node.name
            if name is None or name in path:
                continue
            if name in LIST_ENTRY_WRAPPERS and name != SENSOR_REPORT:
                continue
            path.append(name)
        path.reverse()
        return path

    def is_standard_field(self) -> bool:
        """
        Whether this node is a standard EPCIS field rather than a user extension.

        Everything below ilmd counts as standard, as do list entry wrappers.
        """
        if self.is_ilmd_path:
            return True
        if self.name in LIST_ENTRY_WRAPPERS:
            return True
        return schema.contains_path(self.field_path())

    def has_extension_content(self) -> bool:
        """
        Whether a standard container holds user extension fields somewhere below.

        Such containers must also be labelled in the extension section so the
        extension lines keep their enclosing field name.
        """
        if self.name is None or not self.is_standard_field():
            return False
        for child in self.children:
            if child.children:
                if child.has_extension_content():
                    return True
            elif child.name is not None and not child.is_standard_field():
                return True
        return False

    def is_array_wrapper(self) -> bool:
        """True for a node whose first child repeats its name with a value (JSON scalar arrays)."""
        if self.name is None or not self.children:
            return False
        first = self.children[0]
        return first.name == self.name and first.value is not None

    def local_name(self) -> str:
        return self.name.split(":", 1)[1] if self.name and ":" in self.name else (self.name or "")

    def namespace_uri(self) -> Optional[str]:
        if not self.name or ":" not in self.name:
            return None
        return self.namespaces.get(self.name.split(":", 1)[0])
