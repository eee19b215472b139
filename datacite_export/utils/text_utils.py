"""Plain-text helpers for metadata that may contain markup."""

import logging

import lxml.html
from lxml.etree import ParserError

logger = logging.getLogger(__name__)


def html_to_text(value: str) -> str:
    """
    Strip HTML markup and collapse whitespace.

    Args:
        value: Text that may contain HTML (titles and abstracts usually do)

    Returns:
        Plain text, or an empty string for empty input.

    Examples:
        >>> html_to_text("<p>A <em>short</em> abstract</p>")
        'A short abstract'
    """
    if not value or not value.strip():
        return ""
    try:
        text = lxml.html.fromstring(value).text_content()
    except ParserError:
        logger.debug(f"Could not parse markup, using raw text: {value!r}")
        text = value
    return " ".join(text.split())
