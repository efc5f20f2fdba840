"""Tests for input_tree module."""

from pathlib import Path

import pytest

from jmx_builder.core.input_tree import InputNode, parse_document, parse_string
from jmx_builder.exceptions import SourceParseException


class TestParseString:
    """Test suite for parse_string()."""

    def test_element_children_only(self):
        """Test text, comments and processing instructions are not nodes."""
        root = parse_string(
            "<test>text<!-- note --><?pi data?><http/>tail<timer/></test>"
        )

        assert root.name == "test"
        assert [child.name for child in root] == ["http", "timer"]

    def test_content_is_stripped_descendant_text(self):
        """Test content joins descendant text and strips surrounding whitespace."""
        root = parse_string("<test><name>\n   a<b>b</b>c  \n</name></test>")

        assert root.children[0].content == "abc"

    def test_attributes(self):
        """Test attributes are kept in document order."""
        root = parse_string('<asserts not="true" type="matches"/>')

        assert list(root.attributes.items()) == [("not", "true"), ("type", "matches")]

    def test_line_numbers(self):
        """Test every node carries its 1-based source line."""
        root = parse_string("<test>\n  <http>\n    <path>/</path>\n  </http>\n</test>")

        http = root.children[0]
        assert root.line == 1
        assert http.line == 2
        assert http.children[0].line == 3

    def test_namespaced_names_use_local_name(self):
        """Test namespace prefixes don't change element names."""
        root = parse_string('<t:test xmlns:t="urn:example"><t:http/></t:test>')

        assert root.name == "test"
        assert root.children[0].name == "http"

    def test_has_children(self):
        """Test has_children is true only for nodes with element children."""
        root = parse_string("<test><timer>text only</timer><http><path>/</path></http></test>")

        timer, http = root.children
        assert timer.has_children is False
        assert http.has_children is True

    def test_string_source_has_no_base_dir(self):
        """Test documents held in memory have no base directory."""
        root = parse_string("<test/>")

        assert root.source == "<string>"
        assert root.base_dir is None

    def test_malformed_xml_raises(self):
        """Test malformed XML raises SourceParseException."""
        with pytest.raises(SourceParseException) as exc_info:
            parse_string("<test><http></test>", source="broken")

        assert exc_info.value.path == "broken"


class TestParseDocument:
    """Test suite for parse_document()."""

    def test_parse_file(self, write_file):
        """Test a document is parsed with its path as source.

        Args:
            write_file: File writer fixture
        """
        path = write_file("plans/smoke.xml", "<test><http/></test>")

        root = parse_document(path)

        assert isinstance(root, InputNode)
        assert root.source == str(path)
        assert root.children[0].source == str(path)
        assert root.base_dir == path.parent.resolve()

    def test_missing_file_raises(self, tmp_path: Path):
        """Test a missing document raises FileNotFoundError.

        Args:
            tmp_path: Pytest temporary directory fixture
        """
        with pytest.raises(FileNotFoundError):
            parse_document(tmp_path / "missing.xml")

    def test_malformed_file_raises(self, write_file):
        """Test a malformed document raises SourceParseException naming the file.

        Args:
            write_file: File writer fixture
        """
        path = write_file("broken.xml", "<test><http>")

        with pytest.raises(SourceParseException) as exc_info:
            parse_document(path)

        assert exc_info.value.path == str(path)
        assert "broken.xml" in str(exc_info.value)
