"""Tests for sanitizer module."""

import pytest

from jmx_builder.core.sanitizer import sanitize


class TestSanitize:
    """Test suite for sanitize()."""

    def test_escapes_reserved_characters(self):
        """Test <, & and > are replaced by entities."""
        assert sanitize("<a&b>") == "&lt;a&amp;b&gt;"

    def test_existing_entity_is_escaped_once(self):
        """Test an ampersand already in the text is escaped, not its result."""
        assert sanitize("&lt;") == "&amp;lt;"

    def test_plain_text_unchanged(self):
        """Test text without reserved characters is returned as is."""
        assert sanitize("GET /api/users?id=1") == "GET /api/users?id=1"

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty_values(self, value):
        """Test None and empty string both become an empty string.

        Args:
            value: Empty input
        """
        assert sanitize(value) == ""

    def test_quotes_kept_by_default(self):
        """Test double quotes are left alone for element content."""
        assert sanitize('say "hi"') == 'say "hi"'

    def test_quotes_escaped_for_attributes(self):
        """Test quote=True also escapes double quotes."""
        assert sanitize('say "hi" & <bye>', quote=True) == (
            "say &quot;hi&quot; &amp; &lt;bye&gt;"
        )

    def test_attribute_whitespace_escaped(self):
        """Test quote=True writes newline, carriage return and tab as references."""
        assert sanitize("a\nb\rc\td", quote=True) == "a&#10;b&#13;c&#9;d"

    def test_content_whitespace_kept(self):
        """Test element content keeps newlines and tabs as they are."""
        assert sanitize("a\nb\td") == "a\nb\td"
