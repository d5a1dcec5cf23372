"""
Attribute and Style Merger Module

Parses a tag's raw attribute text and inline ``style`` declarations into
ordered structures so transformers can force attributes and inject CSS
without ever inserting the same declaration twice.
"""

import re
import html as html_lib
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from utils.text_utils import escape_style

logger = logging.getLogger(__name__)

_ATTR_RE = re.compile(
    r'''([^\s"'>/=]+)'''
    r'''(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'=<>`]+)))?'''
)


@dataclass
class Attribute:
    """A single attribute as written in the source."""
    name: str
    value: Optional[str] = None  # None for bare attributes such as "nowrap"

    @property
    def key(self) -> str:
        return self.name.lower()


class AttributeList:
    """
    Ordered list of tag attributes.

    Values are kept exactly as written (entities are not decoded), and
    rendering always uses double quotes.
    """

    def __init__(self, attributes: Optional[Iterable[Attribute]] = None):
        self._items: List[Attribute] = list(attributes or [])

    @classmethod
    def parse(cls, text: str) -> 'AttributeList':
        """Parse raw attribute text; unparseable fragments are skipped."""
        items = []
        for match in _ATTR_RE.finditer(text or ""):
            name = match.group(1)
            if match.group(2) is not None:
                value = match.group(2)
            elif match.group(3) is not None:
                value = match.group(3)
            else:
                value = match.group(4)
            items.append(Attribute(name, value))
        return cls(items)

    def __iter__(self) -> Iterator[Attribute]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def has(self, name: str) -> bool:
        key = name.lower()
        return any(attr.key == key for attr in self._items)

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Value of the first attribute with this name."""
        key = name.lower()
        for attr in self._items:
            if attr.key == key:
                return attr.value if attr.value is not None else ""
        return default

    def set(self, name: str, value: Optional[str]):
        """Set an attribute in place; later duplicates are dropped."""
        key = name.lower()
        updated = False
        kept = []
        for attr in self._items:
            if attr.key == key:
                if updated:
                    continue
                attr = Attribute(name, value)
                updated = True
            kept.append(attr)
        if not updated:
            kept.append(Attribute(name, value))
        self._items = kept

    def remove(self, name: str) -> bool:
        """Remove every attribute with this name. Returns True if any was removed."""
        key = name.lower()
        before = len(self._items)
        self._items = [attr for attr in self._items if attr.key != key]
        return len(self._items) != before

    def render(self) -> str:
        """Render as ' name="value" bare' (leading space included)."""
        parts = []
        for attr in self._items:
            if attr.value is None:
                parts.append(attr.name)
            else:
                parts.append(f'{attr.name}="{escape_style(attr.value)}"')
        return (' ' + ' '.join(parts)) if parts else ''


def _split_declarations(text: str) -> List[str]:
    """Split a style string on ";" outside of parentheses and quotes."""
    chunks = []
    current = []
    depth = 0
    quote = ''
    for char in text:
        if quote:
            if char == quote:
                quote = ''
        elif char in ('"', "'"):
            quote = char
        elif char == '(':
            depth += 1
        elif char == ')':
            depth = max(0, depth - 1)
        elif char == ';' and depth == 0:
            chunks.append(''.join(current))
            current = []
            continue
        current.append(char)
    chunks.append(''.join(current))
    return chunks


class InlineStyle:
    """
    Ordered list of CSS declarations for an inline style.

    Declarations keep their source order, their original property casing
    and any repeats the author wrote as client fallbacks. Lookups compare
    property names case-insensitively.
    """

    def __init__(self, declarations: Optional[Iterable[Tuple[str, str]]] = None):
        self._decls: List[Tuple[str, str]] = [
            (prop.strip(), value.strip()) for prop, value in declarations or []
        ]

    @classmethod
    def parse(cls, text: str) -> 'InlineStyle':
        """
        Parse a style attribute value.

        Entities are decoded first so ``&quot;`` inside font stacks does not
        break declaration splitting. Declarations without a colon or value
        are dropped.
        """
        style = cls()
        if not text or not text.strip():
            return style

        for chunk in _split_declarations(html_lib.unescape(text)):
            prop, sep, value = chunk.partition(':')
            prop = prop.strip()
            value = value.strip()
            if not sep or not prop or not value:
                continue
            style._decls.append((prop, value))
        return style

    def __contains__(self, prop: str) -> bool:
        key = prop.strip().lower()
        return any(name.lower() == key for name, _ in self._decls)

    def __len__(self) -> int:
        return len(self._decls)

    def __bool__(self) -> bool:
        return bool(self._decls)

    def get(self, prop: str, default: Optional[str] = None) -> Optional[str]:
        """Value of the last declaration of a property."""
        key = prop.strip().lower()
        for name, value in reversed(self._decls):
            if name.lower() == key:
                return value
        return default

    def set(self, prop: str, value: str):
        """
        Set a property so it is declared exactly once.

        The first existing declaration keeps its position and casing;
        later repeats are dropped.
        """
        key = prop.strip().lower()
        updated = False
        kept = []
        for name, current in self._decls:
            if name.lower() == key:
                if updated:
                    continue
                current = value.strip()
                updated = True
            kept.append((name, current))
        if not updated:
            kept.append((prop.strip(), value.strip()))
        self._decls = kept

    def remove(self, prop: str) -> bool:
        """Remove every declaration of a property."""
        key = prop.strip().lower()
        before = len(self._decls)
        self._decls = [decl for decl in self._decls if decl[0].lower() != key]
        return len(self._decls) != before

    def items(self) -> List[Tuple[str, str]]:
        """Declarations in source order, repeats included."""
        return list(self._decls)

    def merged_ahead(self, block: 'InlineStyle') -> 'InlineStyle':
        """
        Return a new style with the block's declarations first.

        Existing declarations of a property the block sets are dropped;
        every other existing declaration follows in its original order.
        """
        merged = InlineStyle(block.items())
        merged._decls.extend(
            (name, value) for name, value in self._decls if name not in block
        )
        return merged

    def render(self) -> str:
        """Render as "prop:value;prop:value;"."""
        return ''.join(f"{prop}:{value};" for prop, value in self._decls)


StyleBlock = Union[InlineStyle, str, None]


def _as_style(block: StyleBlock) -> InlineStyle:
    if isinstance(block, InlineStyle):
        return block
    return InlineStyle.parse(block or "")


def merge_style(existing: Optional[str], block: StyleBlock) -> str:
    """
    Merge a declaration block ahead of an existing style value.

    Args:
        existing: Current style attribute value (may be None or blank)
        block: Properties to inject

    Returns:
        Rendered style value ("" when both are empty)
    """
    return InlineStyle.parse(existing or "").merged_ahead(_as_style(block)).render()


def apply_style(attrs: AttributeList, block: StyleBlock, drop: Iterable[str] = ()) -> AttributeList:
    """
    Merge a style block into an attribute list in place.

    Args:
        attrs: Attribute list to update
        block: Properties to inject ahead of the existing style
        drop: Existing properties to remove before merging

    Returns:
        The same attribute list
    """
    existing = InlineStyle.parse(attrs.get('style') or "")
    for prop in drop:
        existing.remove(prop)
    merged = existing.merged_ahead(_as_style(block))
    if merged:
        attrs.set('style', merged.render())
    else:
        attrs.remove('style')
    return attrs


def merge_tag_attributes(
    attrs_text: str,
    forced: Optional[Dict[str, str]] = None,
    style_block: StyleBlock = None,
    drop: Iterable[str] = ()
) -> str:
    """
    Produce new attribute text for a tag.

    An author style is only re-rendered when a block is merged into it;
    an empty style attribute is dropped.

    Args:
        attrs_text: Raw attribute text of the original tag
        forced: Attributes to set (present exactly once in the result)
        style_block: CSS to merge ahead of any existing style
        drop: Attribute names to remove

    Returns:
        Rendered attribute text with a leading space (or "")
    """
    attrs = AttributeList.parse(attrs_text)
    for name in drop:
        attrs.remove(name)
    for name, value in (forced or {}).items():
        attrs.set(name, value)
    if style_block is not None:
        apply_style(attrs, style_block)
    elif attrs.has('style') and not InlineStyle.parse(attrs.get('style')):
        attrs.remove('style')
    return attrs.render()
