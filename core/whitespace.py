"""
Whitespace Tidy Module

Light whitespace cleanup that never touches conditional comments,
VML or other Outlook-specific blocks.
"""

import re
import logging
from typing import List, Tuple

logger = logging.getLogger(__name__)

# Regions copied byte for byte
_PROTECTED_RE = re.compile(
    r'<!--.*?(?:-->|\Z)'
    r'|<(?:v|o|w):[a-z]+\b[^>]*/>'
    r'|<((?:v|o|w):[a-z]+)\b.*?</\1\s*>'
    r'|<xml\b.*?</xml\s*>'
    r'|<pre\b.*?</pre\s*>',
    re.IGNORECASE | re.DOTALL
)
_TRAILING_WS_RE = re.compile(r'[ \t]+(?=\r?\n)')
_SPACE_RUN_RE = re.compile(r' {2,}')


def protected_spans(html: str) -> List[Tuple[int, int]]:
    """(start, end) spans of comments, VML/Office elements, XML islands and <pre>."""
    return [(m.start(), m.end()) for m in _PROTECTED_RE.finditer(html or "")]


def _tidy_segment(text: str) -> str:
    text = _TRAILING_WS_RE.sub('', text)
    return _SPACE_RUN_RE.sub(' ', text)


def tidy_whitespace(html: str) -> str:
    """
    Trim spaces before line breaks and collapse runs of spaces.

    Only whitespace runs are changed; protected regions are untouched.
    """
    if not html:
        return html or ""

    parts = []
    last = 0
    for start, end in protected_spans(html):
        parts.append(_tidy_segment(html[last:start]))
        parts.append(html[start:end])
        last = end
    parts.append(_tidy_segment(html[last:]))

    tidied = ''.join(parts)
    logger.debug(f"Whitespace tidy: {len(html)} -> {len(tidied)} chars")
    return tidied
