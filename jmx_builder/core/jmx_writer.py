"""Serialization of generated test plans to JMX text.

Element text and attribute values are escaped here, and only here, with
the sanitizer, so text coming from the input document is escaped exactly
once.
"""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Union

from jmx_builder.core.sanitizer import sanitize

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
INDENT = "  "


def _write_element(elem: ET.Element, lines: list[str], depth: int) -> None:
    indent = INDENT * depth
    attrs = "".join(f' {key}="{sanitize(value, quote=True)}"' for key, value in elem.attrib.items())
    children = list(elem)

    if not children:
        if elem.text:
            lines.append(f"{indent}<{elem.tag}{attrs}>{sanitize(elem.text)}</{elem.tag}>")
        else:
            lines.append(f"{indent}<{elem.tag}{attrs}/>")
        return

    # Elements with children never carry text of their own in a JMX plan
    lines.append(f"{indent}<{elem.tag}{attrs}>")
    for child in children:
        _write_element(child, lines, depth + 1)
    lines.append(f"{indent}</{elem.tag}>")


def serialize(root: ET.Element) -> str:
    """Convert a test plan tree to pretty-printed JMX text.

    Args:
        root: jmeterTestPlan element

    Returns:
        XML text with a declaration, 2-space indentation and self-closed
        empty elements
    """
    lines = [XML_DECLARATION]
    _write_element(root, lines, 0)
    return "\n".join(lines) + "\n"


def write_plan(root: ET.Element, output_path: Union[str, Path]) -> Path:
    """Serialize a test plan and write it as UTF-8.

    Parent directories are created as needed.

    Args:
        root: jmeterTestPlan element
        output_path: Destination .jmx file

    Returns:
        Absolute path of the written file

    Raises:
        OSError: File can't be written
    """
    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(serialize(root), encoding="utf-8")
    return output_file.absolute()
