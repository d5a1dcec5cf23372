"""
Table Normalizer Module

Rewrites every <table> opening tag into a canonical, email-safe form:
presentation role, centered, no borders/padding/spacing, a consistent
container width and Outlook table CSS.
"""

import re
import logging
from typing import Optional

from .attributes import Attribute, AttributeList, InlineStyle, merge_tag_attributes
from .tag_scanner import TagToken, rewrite_tags

logger = logging.getLogger(__name__)

# Outlook-compatibility CSS injected ahead of any author style
TABLE_BASE_STYLE = "mso-table-lspace:0pt;mso-table-rspace:0pt;border-collapse:collapse;"

# Author attributes carried over from the original tag
_PRESERVED_ATTRS = frozenset(['id', 'class', 'lang', 'dir', 'bgcolor'])
_PRESERVED_PREFIX_RE = re.compile(r'^(?:data|aria)-[\w-]+$', re.IGNORECASE)

# Author declarations that would fight the container width
_WIDTH_PROPERTIES = ('width', 'max-width')


def strip_table_heights(html: str) -> str:
    """Remove every height attribute from <table> opening tags."""
    stripped = 0

    def strip(token: TagToken) -> Optional[str]:
        nonlocal stripped
        if token.closing:
            return None
        if not AttributeList.parse(token.attrs).has('height'):
            return None
        stripped += 1
        return f"<table{merge_tag_attributes(token.attrs, drop=['height'])}>"

    html = rewrite_tags(html, ['table'], strip)
    logger.debug(f"Stripped height from {stripped} table(s)")
    return html


def _table_style(config, existing: str = "") -> str:
    block = InlineStyle.parse(TABLE_BASE_STYLE)
    if config.responsive:
        block.set('max-width', f"{config.target_width}px")

    author = InlineStyle.parse(existing)
    for prop in _WIDTH_PROPERTIES:
        author.remove(prop)
    return author.merged_ahead(block).render()


def normalize_table_tag(attrs_text: str, config) -> str:
    """
    Build the normalized opening tag for one table.

    Args:
        attrs_text: Raw attribute text of the original tag
        config: TransformConfig (uses responsive and target_width)

    Returns:
        The complete "<table ...>" tag
    """
    original = AttributeList.parse(attrs_text)

    attrs = AttributeList(
        Attribute(attr.name, attr.value)
        for attr in original
        if attr.key in _PRESERVED_ATTRS or _PRESERVED_PREFIX_RE.match(attr.key)
    )

    width = "100%" if config.responsive else str(config.target_width)
    attrs.set('role', 'presentation')
    attrs.set('align', 'center')
    attrs.set('width', width)
    attrs.set('border', '0')
    attrs.set('cellpadding', '0')
    attrs.set('cellspacing', '0')
    attrs.set('style', _table_style(config, original.get('style') or ""))

    return f"<table{attrs.render()}>"


def build_table_tag(config) -> str:
    """Normalized <table> tag with no author attributes."""
    return normalize_table_tag("", config)


def normalize_tables(html: str, config) -> str:
    """
    Normalize every <table> opening tag in the document.

    Closing tags, nesting and tag order are left alone. Tables inside
    conditional comments are not touched.
    """
    count = 0

    def normalize(token: TagToken) -> Optional[str]:
        nonlocal count
        if token.closing:
            return None
        count += 1
        return normalize_table_tag(token.attrs, config)

    html = rewrite_tags(html, ['table'], normalize)
    logger.debug(f"Normalized {count} table(s)")
    return html
