"""
Hidden Text Injector Module

Adds invisible table rows to the email:
- a preheader, shown by mail clients as the inbox preview snippet
- an optional balance-text block that improves the image-to-text ratio
  seen by spam filters

Both use the same layered hiding so the text stays invisible in every
major client (including Outlook via mso-hide).
"""

import logging

from .attributes import InlineStyle
from .tag_scanner import find_tag, scan_tags
from utils.text_utils import html_escape, insert_text

logger = logging.getLogger(__name__)

HIDDEN_STYLE = InlineStyle.parse(
    "display:none !important;font-size:1px;line-height:1px;max-height:0;max-width:0;"
    "opacity:0;overflow:hidden;mso-hide:all;visibility:hidden;"
).render()


def hidden_row(text: str) -> str:
    """Render one hidden table row holding escaped text."""
    return (
        '<tr><td style="padding:0;">'
        f'<div style="{HIDDEN_STYLE}">{html_escape(text)}</div>'
        '</td></tr>'
    )


def has_hidden_block(html: str) -> bool:
    """Check whether the document already carries an mso-hidden block."""
    for token in scan_tags(html, ['div', 'span', 'td']):
        if not token.closing and 'mso-hide' in token.attrs.lower():
            return True
    return False


def inject_preheader(html: str, text: str) -> str:
    """
    Insert the preheader row right after the first <table> tag.

    No-op when the text is empty or the document has no table.
    """
    text = (text or "").strip()
    if not text:
        return html

    table = find_tag(html, 'table')
    if table is None:
        logger.warning("No <table> found - preheader not injected")
        return html

    return insert_text(html, table.end, hidden_row(text))


def inject_balance_text(html: str, text: str) -> str:
    """
    Insert the balance-text row after the first </tr>.

    When a preheader was injected this lands right after it. Falls back
    to the position after the first <table> tag if no row exists yet.
    """
    text = (text or "").strip()
    if not text:
        return html

    row_end = find_tag(html, 'tr', closing=True)
    if row_end is not None:
        return insert_text(html, row_end.end, hidden_row(text))

    table = find_tag(html, 'table')
    if table is None:
        logger.warning("No <table> found - balance text not injected")
        return html

    return insert_text(html, table.end, hidden_row(text))
