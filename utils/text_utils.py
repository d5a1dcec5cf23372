"""
Text Utilities Module

Small string helpers shared by the HTML transformers: escaping,
URL joining and position-based splicing.
"""

import re
from typing import Iterable, Tuple


def html_escape(text: str) -> str:
    """Escape text for use in HTML content or a double-quoted attribute."""
    if not text:
        return ""
    text = str(text)
    text = text.replace('&', '&amp;')
    text = text.replace('<', '&lt;')
    text = text.replace('>', '&gt;')
    text = text.replace('"', '&quot;')
    return text


def escape_style(style: str) -> str:
    """Escape double quotes in an inline style value."""
    return str(style or "").replace('"', '&quot;')


def join_url(base: str, path: str) -> str:
    """
    Join a base URL and a relative path with exactly one slash.

    Args:
        base: Base URL, e.g. "https://cdn.example.com/img/"
        path: Relative path, e.g. "/slices/hero.png"

    Returns:
        Joined URL, e.g. "https://cdn.example.com/img/slices/hero.png"
    """
    clean_base = re.sub(r'/+$', '', base or "")
    clean_path = re.sub(r'^/+', '', path or "")
    return f"{clean_base}/{clean_path}"


def insert_text(text: str, index: int, addition: str) -> str:
    """Insert a string at a position."""
    return text[:index] + addition + text[index:]


def splice_insertions(text: str, insertions: Iterable[Tuple[int, int, str]]) -> str:
    """
    Apply several point insertions to a string in one pass.

    Positions refer to the original string, so insertions never shift
    each other.

    Args:
        text: Original string
        insertions: (position, priority, text) tuples; at equal positions
            lower priority is written first

    Returns:
        The string with every insertion applied
    """
    ordered = sorted(insertions, key=lambda item: (item[0], item[1]))
    if not ordered:
        return text

    parts = []
    last = 0
    for position, _priority, addition in ordered:
        parts.append(text[last:position])
        parts.append(addition)
        last = position
    parts.append(text[last:])
    return ''.join(parts)


def excerpt_words(text: str, max_words: int = 6, max_chars: int = 40) -> str:
    """Return the first few words of a text, cut at a word boundary."""
    words = (text or "").split()
    excerpt = ""
    for word in words[:max_words]:
        candidate = f"{excerpt} {word}".strip()
        if len(candidate) > max_chars:
            break
        excerpt = candidate
    if not excerpt and words:
        excerpt = words[0][:max_chars]
    return excerpt
