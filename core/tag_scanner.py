"""
Tag Scanner Module

Tolerant tag tokenizer shared by all HTML transformers.

Exported email HTML is frequently malformed, so nothing here builds a
tree or validates nesting. The scanner only finds tag boundaries and
their raw attribute text, in document order, and skips everything that
sits inside ``<!-- ... -->`` comments (Outlook conditional comments
included) so those blocks pass through every transformation untouched.
"""

import re
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)

_TAG_START_RE = re.compile(r'<(/?)([a-zA-Z][a-zA-Z0-9:_-]*)(?=[\s/>])')
_COMMENT_RE = re.compile(r'<!--.*?(?:-->|\Z)', re.DOTALL)


@dataclass(frozen=True)
class TagToken:
    """A single opening or closing tag found in the document."""
    name: str           # Lower-cased tag name, e.g. "table" or "v:rect"
    attrs: str          # Raw attribute text (without the trailing "/")
    start: int          # Index of "<"
    end: int            # Index just past ">"
    closing: bool = False
    self_closing: bool = False


def comment_spans(html: str) -> List[Tuple[int, int]]:
    """
    Find every comment in the document.

    An unterminated comment runs to the end of the input.

    Returns:
        List of (start, end) index pairs
    """
    return [(m.start(), m.end()) for m in _COMMENT_RE.finditer(html or "")]


def _find_tag_end(html: str, pos: int) -> int:
    """
    Find the ">" that closes a tag whose attributes start at pos.

    Quotes only delimit a value when they directly follow "=", so a stray
    apostrophe in an unquoted value cannot swallow the rest of the page.

    Returns:
        Index of ">" or -1 if the tag never closes
    """
    length = len(html)
    i = pos
    last_significant = ''
    while i < length:
        char = html[i]
        if char == '>':
            return i
        if char in ('"', "'") and last_significant == '=':
            close = html.find(char, i + 1)
            if close != -1:
                i = close + 1
                last_significant = char
                continue
        if not char.isspace():
            last_significant = char
        i += 1
    return -1


def scan_tags(html: str, names: Optional[Iterable[str]] = None) -> Iterator[TagToken]:
    """
    Yield tag tokens in document order, skipping comments.

    Args:
        html: Document text
        names: Optional tag names to restrict the scan to (case-insensitive)

    Yields:
        TagToken for every opening/closing tag found
    """
    if not html:
        return

    wanted = {name.lower() for name in names} if names else None
    length = len(html)
    pos = 0

    while pos < length:
        lt = html.find('<', pos)
        if lt == -1:
            return

        if html.startswith('<!--', lt):
            comment_end = html.find('-->', lt + 4)
            if comment_end == -1:
                return
            pos = comment_end + 3
            continue

        match = _TAG_START_RE.match(html, lt)
        if not match:
            pos = lt + 1
            continue

        gt = _find_tag_end(html, match.end())
        if gt == -1:
            # Unterminated tag: treat the "<" as text
            pos = lt + 1
            continue

        name = match.group(2).lower()
        pos = gt + 1

        if wanted is not None and name not in wanted:
            continue

        attrs = html[match.end():gt]
        self_closing = False
        stripped = attrs.rstrip()
        if stripped.endswith('/'):
            self_closing = True
            attrs = stripped[:-1]

        yield TagToken(
            name=name,
            attrs=attrs,
            start=lt,
            end=gt + 1,
            closing=bool(match.group(1)),
            self_closing=self_closing,
        )


def find_tag(
    html: str,
    name: str,
    closing: bool = False,
    start: int = 0
) -> Optional[TagToken]:
    """
    Find the first opening (or closing) tag with the given name.

    Args:
        html: Document text
        name: Tag name
        closing: Look for "</name>" instead of "<name>"
        start: Ignore tags that begin before this index

    Returns:
        The first matching TagToken, or None
    """
    for token in scan_tags(html, [name]):
        if token.start >= start and token.closing == closing:
            return token
    return None


def find_last_tag(html: str, name: str, closing: bool = False) -> Optional[TagToken]:
    """Find the last opening (or closing) tag with the given name."""
    last = None
    for token in scan_tags(html, [name]):
        if token.closing == closing:
            last = token
    return last


def rewrite_tags(
    html: str,
    names: Iterable[str],
    func: Callable[[TagToken], Optional[str]]
) -> str:
    """
    Replace tags through a callback.

    Args:
        html: Document text
        names: Tag names to visit
        func: Receives each token, returns replacement text or None to keep
            the original bytes

    Returns:
        Rewritten document
    """
    if not html:
        return html or ""

    parts = []
    last = 0
    replaced = 0
    for token in scan_tags(html, names):
        replacement = func(token)
        if replacement is None:
            continue
        parts.append(html[last:token.start])
        parts.append(replacement)
        last = token.end
        replaced += 1

    if not replaced:
        return html

    parts.append(html[last:])
    return ''.join(parts)
