"""Tests for jmx_writer module."""

import xml.etree.ElementTree as ET

from jmx_builder.core.jmx_writer import XML_DECLARATION, serialize, write_plan


def sample_tree() -> ET.Element:
    root = ET.Element("jmeterTestPlan", {"version": "1.2"})
    tree = ET.SubElement(root, "hashTree")
    sampler = ET.SubElement(tree, "HTTPSamplerProxy", {"testname": 'Say "hi" & <go>'})
    ET.SubElement(sampler, "stringProp", {"name": "HTTPSampler.path"}).text = "/a?b=1&c=<2>"
    ET.SubElement(sampler, "stringProp", {"name": "HTTPSampler.port"}).text = ""
    ET.SubElement(tree, "hashTree")
    return root


class TestSerialize:
    """Test suite for serialize()."""

    def test_layout(self):
        """Test declaration, indentation and self-closed empty elements."""
        text = serialize(sample_tree())

        assert text.splitlines() == [
            XML_DECLARATION,
            '<jmeterTestPlan version="1.2">',
            "  <hashTree>",
            '    <HTTPSamplerProxy testname="Say &quot;hi&quot; &amp; &lt;go&gt;">',
            '      <stringProp name="HTTPSampler.path">/a?b=1&amp;c=&lt;2&gt;</stringProp>',
            '      <stringProp name="HTTPSampler.port"/>',
            "    </HTTPSamplerProxy>",
            "    <hashTree/>",
            "  </hashTree>",
            "</jmeterTestPlan>",
        ]
        assert text.endswith("\n")

    def test_output_is_well_formed(self):
        """Test the escaped text parses back to the original values."""
        root = ET.fromstring(serialize(sample_tree()).encode("utf-8"))

        sampler = root.find("hashTree/HTTPSamplerProxy")
        assert sampler.get("testname") == 'Say "hi" & <go>'
        assert sampler.find("stringProp").text == "/a?b=1&c=<2>"

    def test_text_escaped_once(self):
        """Test text already holding an entity is escaped, not passed through."""
        root = ET.Element("stringProp")
        root.text = "&amp;"

        assert "<stringProp>&amp;amp;</stringProp>" in serialize(root)


class TestWritePlan:
    """Test suite for write_plan()."""

    def test_creates_parent_directories(self, tmp_path):
        """Test the file is written as UTF-8 under new directories.

        Args:
            tmp_path: Pytest temporary directory fixture
        """
        root = ET.Element("jmeterTestPlan")
        root.text = "Zażółć"

        path = write_plan(root, tmp_path / "out" / "nested" / "plan.jmx")

        assert path.is_absolute()
        assert path.read_text(encoding="utf-8").startswith(XML_DECLARATION)
        assert "Zażółć" in path.read_text(encoding="utf-8")
