"""
Link Tagger Module

Appends UTM campaign parameters to outbound links.

Only <a> hrefs are touched. Mail, phone, in-page and script links are
skipped, as are hrefs holding sending-platform merge tags. Relative links
stay relative.
"""

import re
import html as html_lib
import logging
from typing import List, Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .attributes import AttributeList
from .tag_scanner import TagToken, rewrite_tags

logger = logging.getLogger(__name__)

_SKIP_PREFIX_RE = re.compile(r'^(?:mailto:|tel:|#|javascript:)', re.IGNORECASE)
_MERGE_TAG_RE = re.compile(r'\*\|.*?\|\*|\{\{.*?\}\}')


def is_taggable(href: Optional[str]) -> bool:
    """Check whether a href should receive UTM parameters."""
    if href is None:
        return False
    href = href.strip()
    if not href:
        return False
    if _SKIP_PREFIX_RE.match(href):
        return False
    if _MERGE_TAG_RE.search(href):
        return False
    return True


def _set_param(params: List[Tuple[str, str]], key: str, value: str) -> List[Tuple[str, str]]:
    """Overwrite the first same-named parameter in place, drop the rest, or append."""
    result = []
    replaced = False
    for name, current in params:
        if name == key:
            if not replaced:
                result.append((name, value))
                replaced = True
            continue
        result.append((name, current))
    if not replaced:
        result.append((key, value))
    return result


def add_utm_parameters(href: str, utm_medium: str = "", utm_campaign: str = "") -> str:
    """
    Set utm_medium/utm_campaign on a URL.

    Args:
        href: Absolute or relative URL (entity-free)
        utm_medium: Value for utm_medium (skipped when empty)
        utm_campaign: Value for utm_campaign (skipped when empty)

    Returns:
        The tagged URL

    Raises:
        ValueError: If the URL cannot be parsed
    """
    parts = urlsplit(href)
    parts.port  # raises ValueError on a malformed port

    params = parse_qsl(parts.query, keep_blank_values=True)
    if utm_medium:
        params = _set_param(params, 'utm_medium', utm_medium)
    if utm_campaign:
        params = _set_param(params, 'utm_campaign', utm_campaign)

    path = parts.path
    if parts.netloc and not path:
        path = '/'

    return urlunsplit((parts.scheme, parts.netloc, path, urlencode(params), parts.fragment))


def tag_links(html: str, utm_medium: str = "", utm_campaign: str = "") -> str:
    """
    Add UTM parameters to every eligible <a href>.

    A href that fails to parse is left exactly as it was.
    """
    utm_medium = (utm_medium or "").strip()
    utm_campaign = (utm_campaign or "").strip()
    if not utm_medium and not utm_campaign:
        return html

    tagged = 0
    failed = 0

    def tag(token: TagToken) -> Optional[str]:
        nonlocal tagged, failed
        if token.closing:
            return None

        attrs = AttributeList.parse(token.attrs)
        href = attrs.get('href')
        if not is_taggable(href):
            return None

        try:
            new_href = add_utm_parameters(html_lib.unescape(href.strip()), utm_medium, utm_campaign)
        except ValueError as e:
            failed += 1
            logger.warning(f"Could not parse link, left unchanged: {href[:100]} ({e})")
            return None

        attrs.set('href', new_href)
        tagged += 1
        return f"<a{attrs.render()}>"

    html = rewrite_tags(html, ['a'], tag)
    logger.debug(f"Tagged {tagged} link(s), {failed} left unchanged")
    return html
