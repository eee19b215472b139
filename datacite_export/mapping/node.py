"""
Element tree handed from the mapper to the serializer.

Each node carries a tag name, optional text, attributes and ordered children.
Attribute names may use the ``xml:`` or ``xsi:`` prefixes; they are expanded
to Clark notation when the tree is serialized with lxml.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from lxml import etree as ET
from lxml.builder import ElementMaker

DATACITE_XMLNS = "http://datacite.org/schema/kernel-4"
DATACITE_XSI_SCHEMA_LOCATION = "http://schema.datacite.org/meta/kernel-4.3/metadata.xsd"
XMLNS_XSI = "http://www.w3.org/2001/XMLSchema-instance"
XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"

ROOT_ELEMENT_NAME = "resource"

_ATTRIBUTE_PREFIXES = {
    "xml": XML_NAMESPACE,
    "xsi": XMLNS_XSI,
}

class SerializationError(ValueError):
    """Raised when a value cannot be written as XML, e.g. it contains control characters."""
    pass


E = ElementMaker(namespace=DATACITE_XMLNS, nsmap={None: DATACITE_XMLNS, "xsi": XMLNS_XSI})


@dataclass
class Node:
    """An XML element in the DataCite kernel-4 namespace."""

    tag: str
    text: Optional[str] = None
    attributes: Dict[str, str] = field(default_factory=dict)
    children: List["Node"] = field(default_factory=list)

    def append(self, child: "Node") -> "Node":
        """Append a child and return it."""
        self.children.append(child)
        return child

    def find(self, tag: str) -> Optional["Node"]:
        """Return the first direct child with the given tag."""
        for child in self.children:
            if child.tag == tag:
                return child
        return None

    def find_all(self, tag: str) -> List["Node"]:
        """Return all direct children with the given tag."""
        return [child for child in self.children if child.tag == tag]


def create_root_node() -> Node:
    """Create the ``resource`` root carrying the schema location."""
    return Node(
        ROOT_ELEMENT_NAME,
        attributes={"xsi:schemaLocation": f"{DATACITE_XMLNS} {DATACITE_XSI_SCHEMA_LOCATION}"},
    )


def _expand_attribute_name(name: str) -> str:
    prefix, sep, local = name.partition(":")
    if sep and prefix in _ATTRIBUTE_PREFIXES:
        return f"{{{_ATTRIBUTE_PREFIXES[prefix]}}}{local}"
    return name


def _fill(element: ET._Element, node: Node) -> None:
    try:
        for name, value in node.attributes.items():
            element.set(_expand_attribute_name(name), value)
        if node.text is not None:
            element.text = node.text
    except ValueError as e:
        raise SerializationError(f"Invalid value in <{node.tag}>: {str(e)}") from e
    for child in node.children:
        _fill(ET.SubElement(element, f"{{{DATACITE_XMLNS}}}{child.tag}"), child)


def to_element(node: Node) -> ET._Element:
    """Convert a node tree into an lxml element tree."""
    element = E(node.tag)
    _fill(element, node)
    return element


def serialize_resource(node: Node) -> bytes:
    """
    Serialize a node tree to a pretty printed UTF-8 XML document.

    Raises:
        SerializationError: If a text or attribute value is not XML compatible
    """
    return ET.tostring(
        to_element(node),
        encoding="utf-8",
        xml_declaration=True,
        pretty_print=True,
    )
