"""
Outlook Background Module

Some clients (Outlook desktop, older webmail) ignore CSS backgrounds on
table cells but honour the legacy bgcolor attribute. This module copies
the CSS background color into bgcolor where it is missing.
"""

import re
import logging
from typing import Optional

from .attributes import AttributeList, InlineStyle, merge_tag_attributes
from .tag_scanner import TagToken, rewrite_tags

logger = logging.getLogger(__name__)

_IMAGE_FUNCTION_RE = re.compile(
    r'\b(?:url|(?:repeating-)?(?:linear|radial|conic)-gradient)\(',
    re.IGNORECASE
)
_HEX_RE = re.compile(r'#([0-9a-f]{8}|[0-9a-f]{6}|[0-9a-f]{3})\b', re.IGNORECASE)
_RGB_RE = re.compile(
    r'rgba?\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*(?:,\s*[\d.]+%?\s*)?\)',
    re.IGNORECASE
)
_NAMED_RE = re.compile(r'^[a-z]+$', re.IGNORECASE)
_NON_COLORS = frozenset([
    'transparent', 'none', 'inherit', 'initial', 'unset', 'revert', 'currentcolor',
])


def _strip_image_functions(value: str) -> str:
    """Remove url() and gradient functions, which carry no flat color."""
    match = _IMAGE_FUNCTION_RE.search(value)
    while match:
        depth = 0
        end = len(value)
        for index in range(match.end() - 1, len(value)):
            if value[index] == '(':
                depth += 1
            elif value[index] == ')':
                depth -= 1
                if depth == 0:
                    end = index + 1
                    break
        value = value[:match.start()] + ' ' + value[end:]
        match = _IMAGE_FUNCTION_RE.search(value)
    return value


def _color_from_value(value: str, allow_named: bool) -> Optional[str]:
    """Extract a bgcolor-compatible color from one declaration value."""
    value = value.replace('!important', '')
    value = _strip_image_functions(value).strip()
    if not value:
        return None

    rgb = _RGB_RE.search(value)
    if rgb:
        channels = [min(255, int(channel)) for channel in rgb.groups()]
        return '#' + ''.join(f"{channel:02x}" for channel in channels)

    hex_match = _HEX_RE.search(value)
    if hex_match:
        digits = hex_match.group(1).lower()
        if len(digits) == 3:
            digits = ''.join(char * 2 for char in digits)
        return '#' + digits[:6]

    if allow_named and _NAMED_RE.match(value) and value.lower() not in _NON_COLORS:
        return value.lower()

    return None


def resolve_background_color(style: Optional[str]) -> Optional[str]:
    """
    Resolve the background color declared in an inline style.

    The last background/background-color declaration carrying a color
    wins. Named colors are only accepted from background-color.

    Returns:
        "#rrggbb", a color name, or None
    """
    color = None
    for prop, value in InlineStyle.parse(style or "").items():
        prop = prop.lower()
        if prop == 'background-color':
            found = _color_from_value(value, allow_named=True)
        elif prop == 'background':
            found = _color_from_value(value, allow_named=False)
        else:
            continue
        if found:
            color = found
    return color


def propagate_background_colors(html: str) -> str:
    """Add bgcolor to every <td> whose style sets a background color."""
    added = 0

    def propagate(token: TagToken) -> Optional[str]:
        nonlocal added
        if token.closing:
            return None
        attrs = AttributeList.parse(token.attrs)
        if attrs.has('bgcolor'):
            return None
        color = resolve_background_color(attrs.get('style'))
        if not color:
            return None
        added += 1
        return f"<td{merge_tag_attributes(token.attrs, forced={'bgcolor': color})}>"

    html = rewrite_tags(html, ['td'], propagate)
    logger.debug(f"Added bgcolor to {added} cell(s)")
    return html
