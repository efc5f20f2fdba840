"""Reading simplified test descriptions into read-only node trees.

The collector never touches lxml directly; it walks InputNode values,
which carry just what it needs: the element name, element children,
attributes, text content and the source line used in diagnostics.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional, Union

from lxml import etree

from jmx_builder.exceptions import SourceParseException


@dataclass(frozen=True)
class InputNode:
    """One element of a simplified test description.

    Attributes:
        name: Local element name (e.g. "http", "timer")
        children: Element children in document order (text, comments and
                  processing instructions are not nodes)
        attributes: Element attributes in document order
        content: Concatenated descendant text, stripped of surrounding whitespace
        line: 1-based source line of the element (0 when unknown)
        source: Path of the document the element was read from
    """

    name: str
    children: tuple["InputNode", ...] = ()
    attributes: dict[str, str] = field(default_factory=dict)
    content: str = ""
    line: int = 0
    source: str = ""

    @property
    def has_children(self) -> bool:
        """True when the node has at least one element child."""
        return len(self.children) > 0

    def __iter__(self) -> Iterator["InputNode"]:
        return iter(self.children)

    @property
    def base_dir(self) -> Optional[Path]:
        """Directory of the source document, used to resolve relative paths."""
        if not self.source or self.source.startswith("<"):
            return None
        return Path(self.source).resolve().parent


def _make_parser() -> etree.XMLParser:
    # Entities are not resolved and no network access is allowed
    return etree.XMLParser(
        remove_comments=True,
        remove_pis=True,
        resolve_entities=False,
        no_network=True,
    )


def _from_element(element: etree._Element, source: str) -> InputNode:
    children = tuple(
        _from_element(child, source) for child in element if isinstance(child.tag, str)
    )

    return InputNode(
        name=etree.QName(element).localname,
        children=children,
        attributes={
            etree.QName(key).localname: value for key, value in element.attrib.items()
        },
        content="".join(element.itertext()).strip(),
        line=element.sourceline or 0,
        source=source,
    )


def parse_document(path: Union[str, Path]) -> InputNode:
    """Parse a simplified test description file.

    Args:
        path: Path to the XML document

    Returns:
        InputNode for the document's root element

    Raises:
        FileNotFoundError: Document doesn't exist
        SourceParseException: Document is not well-formed XML
    """
    doc_path = Path(path)

    if not doc_path.is_file():
        raise FileNotFoundError(f"Test description not found: {path}")

    try:
        tree = etree.parse(str(doc_path), parser=_make_parser())
    except etree.XMLSyntaxError as e:
        raise SourceParseException(str(doc_path), str(e)) from e
    except OSError as e:
        raise SourceParseException(str(doc_path), str(e)) from e

    return _from_element(tree.getroot(), str(doc_path))


def parse_string(text: str, source: str = "<string>") -> InputNode:
    """Parse a simplified test description held in memory.

    Args:
        text: XML document text
        source: Name reported in diagnostics

    Returns:
        InputNode for the document's root element

    Raises:
        SourceParseException: Text is not well-formed XML
    """
    try:
        root = etree.fromstring(text.encode("utf-8"), parser=_make_parser())
    except etree.XMLSyntaxError as e:
        raise SourceParseException(source, str(e)) from e

    return _from_element(root, source)
