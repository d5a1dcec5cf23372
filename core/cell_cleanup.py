"""
Cell Cleanup Module

Table-cell tidying that runs after image enhancement:
- zero padding/font metrics on cells holding nothing but one image,
  so sliced images butt up against each other without gaps
- drop colspan attributes that do nothing
"""

import logging
from typing import Optional, Set

from .attributes import AttributeList, merge_tag_attributes
from .tag_scanner import TagToken, rewrite_tags, scan_tags

logger = logging.getLogger(__name__)

IMAGE_CELL_STYLE = "padding:0;font-size:0;line-height:0;"


def find_image_only_cells(html: str) -> Set[int]:
    """
    Locate <td> tags whose only content is a single <img>.

    Returns:
        Start indices of the matching <td> opening tags
    """
    tokens = list(scan_tags(html))
    matches = set()

    for i, token in enumerate(tokens[:-2]):
        if token.name != 'td' or token.closing:
            continue
        image = tokens[i + 1]
        close = tokens[i + 2]
        if image.name != 'img' or image.closing:
            continue
        if close.name != 'td' or not close.closing:
            continue
        # Text or comments around the image disqualify the cell
        if html[token.end:image.start].strip() or html[image.end:close.start].strip():
            continue
        matches.add(token.start)

    return matches


def collapse_image_only_cells(html: str) -> str:
    """Merge zero padding/font-size/line-height into image-only cells."""
    targets = find_image_only_cells(html)
    if not targets:
        return html

    def collapse(token: TagToken) -> Optional[str]:
        if token.start not in targets:
            return None
        return f"<td{merge_tag_attributes(token.attrs, style_block=IMAGE_CELL_STYLE)}>"

    html = rewrite_tags(html, ['td'], collapse)
    logger.debug(f"Collapsed {len(targets)} image-only cell(s)")
    return html


def remove_noop_colspans(html: str) -> str:
    """Remove colspan="1" and empty colspans. Real colspans are kept."""
    removed = 0

    def clean(token: TagToken) -> Optional[str]:
        nonlocal removed
        if token.closing:
            return None
        attrs = AttributeList.parse(token.attrs)
        value = attrs.get('colspan')
        if value is None or value.strip() not in ('', '1'):
            return None
        attrs.remove('colspan')
        removed += 1
        closer = ' />' if token.self_closing else '>'
        return f"<{token.name}{attrs.render()}{closer}"

    html = rewrite_tags(html, ['td', 'th'], clean)
    logger.debug(f"Removed {removed} no-op colspan(s)")
    return html
