"""Escaping of text destined for JMX element content and attributes."""

from typing import Optional

_ENTITIES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
}

# Whitespace other than spaces is normalized away in attribute values
_QUOTED_ENTITIES = dict(
    _ENTITIES,
    **{
        '"': "&quot;",
        "\n": "&#10;",
        "\r": "&#13;",
        "\t": "&#9;",
    },
)


def sanitize(text: Optional[str], quote: bool = False) -> str:
    """Escape reserved markup characters in a string.

    Replacement is done in a single pass over the original string, so the
    ampersands introduced by ``&lt;`` and ``&gt;`` are never escaped again.

    Args:
        text: String to escape (None is treated as an empty string)
        quote: Also escape double quotes, newlines, carriage returns and
            tabs, for attribute values

    Returns:
        The escaped string

    Example:
        >>> sanitize("<a&b>")
        '&lt;a&amp;b&gt;'
    """
    if not text:
        return ""

    table = _QUOTED_ENTITIES if quote else _ENTITIES
    return "".join(table.get(char, char) for char in text)
