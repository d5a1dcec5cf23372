"""
Document Wrapper Module

Makes sure the output is a complete, standalone email document.

Full documents only get their <body> tag fixed up. Fragments (the usual
output of slicing tools) are placed into a fresh XHTML shell with the
meta tags, Outlook document settings and baseline CSS that email
clients expect.
"""

import re
import logging
from typing import Tuple

from .attributes import AttributeList, apply_style
from .outlook_background import resolve_background_color
from .tag_scanner import TagToken, comment_spans, find_last_tag, find_tag, rewrite_tags
from utils.text_utils import html_escape, insert_text

logger = logging.getLogger(__name__)

BODY_BASE_STYLE = (
    "margin:0;padding:0;width:100% !important;"
    "-webkit-text-size-adjust:100%;-ms-text-size-adjust:100%;"
)

DOCTYPE = (
    '<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.0 Transitional//EN" '
    '"http://www.w3.org/TR/xhtml1/DTD/xhtml1-transitional.dtd">'
)

HTML_OPEN = (
    '<html xmlns="http://www.w3.org/1999/xhtml" '
    'xmlns:v="urn:schemas-microsoft-com:vml" '
    'xmlns:o="urn:schemas-microsoft-com:office:office">'
)

HEAD_META = (
    '<meta http-equiv="Content-Type" content="text/html; charset=UTF-8">\n'
    '<meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
    '<meta http-equiv="X-UA-Compatible" content="IE=edge">\n'
    '<meta name="x-apple-disable-message-reformatting">'
)

MSO_SETTINGS = """<!--[if mso]>
<noscript><xml>
<o:OfficeDocumentSettings>
<o:AllowPNG/>
<o:PixelsPerInch>96</o:PixelsPerInch>
</o:OfficeDocumentSettings>
</xml></noscript>
<![endif]-->"""

BASE_STYLESHEET = """<style type="text/css">
body{margin:0;padding:0;}
table,td{border-collapse:collapse;mso-table-lspace:0pt;mso-table-rspace:0pt;}
img{border:0;height:auto;line-height:100%;outline:none;text-decoration:none;-ms-interpolation-mode:bicubic;}
a[x-apple-data-detectors]{color:inherit !important;text-decoration:none !important;}
</style>"""

_DOCTYPE_RE = re.compile(r'<!DOCTYPE[^>]*>', re.IGNORECASE)
_XML_DECL_RE = re.compile(r'<\?xml[^>]*\?>', re.IGNORECASE)
_TITLE_RE = re.compile(r'<title\b[^>]*>(.*?)</title\s*>', re.IGNORECASE | re.DOTALL)

# Meta tags the shell already provides
_SHELL_META_NAMES = frozenset(['viewport', 'x-apple-disable-message-reformatting'])
_SHELL_META_EQUIVS = frozenset(['content-type', 'x-ua-compatible'])


def body_tag(attrs_text: str = "") -> str:
    """
    Build a <body> tag with the email-safe baseline attributes.

    The baseline style is merged ahead of the author's; bgcolor is derived
    from a background style when missing.
    """
    attrs = apply_style(AttributeList.parse(attrs_text), BODY_BASE_STYLE)
    if not attrs.has('bgcolor'):
        color = resolve_background_color(attrs.get('style'))
        if color:
            attrs.set('bgcolor', color)
    return f"<body{attrs.render()}>"


def is_full_document(html: str) -> bool:
    """Check for a doctype, an <html> root and a <body>."""
    return bool(
        _DOCTYPE_RE.search(html)
        and find_tag(html, 'html') is not None
        and find_tag(html, 'body') is not None
    )


def _drop_shell_meta(token: TagToken):
    attrs = AttributeList.parse(token.attrs)
    name = (attrs.get('name') or "").strip().lower()
    equiv = (attrs.get('http-equiv') or "").strip().lower()
    if attrs.has('charset') or name in _SHELL_META_NAMES or equiv in _SHELL_META_EQUIVS:
        return ''
    return None


def split_head(head_inner: str) -> Tuple[str, str]:
    """
    Separate an old <head>'s content into its title and the extra markup
    worth keeping (styles, custom meta, conditional blocks).

    Returns:
        (title, extra_markup)
    """
    title = ""
    title_match = _TITLE_RE.search(head_inner)
    if title_match:
        title = title_match.group(1).strip()
        head_inner = head_inner[:title_match.start()] + head_inner[title_match.end():]

    head_inner = rewrite_tags(head_inner, ['meta'], _drop_shell_meta)

    # The shell carries its own Office settings block
    for start, end in reversed(comment_spans(head_inner)):
        if 'OfficeDocumentSettings' in head_inner[start:end]:
            head_inner = head_inner[:start] + head_inner[end:]

    lines = [line.strip() for line in head_inner.splitlines()]
    return title, '\n'.join(line for line in lines if line)


def _strip_document_tags(content: str) -> str:
    """Remove stray doctype, XML declaration and html/head/body tags."""
    content = _DOCTYPE_RE.sub('', content)
    content = _XML_DECL_RE.sub('', content)
    return rewrite_tags(content, ['html', 'head', 'body'], lambda token: '')


def _finish_full_document(html: str, title: str = "") -> str:
    """Fix up the <body> tag of an existing document; add <head> if missing."""
    body = find_tag(html, 'body')
    html = html[:body.start] + body_tag(body.attrs) + html[body.end:]

    if find_tag(html, 'head') is None:
        root = find_tag(html, 'html')
        head = f"\n<head>\n{HEAD_META}\n<title>{title}</title>\n</head>"
        html = insert_text(html, root.end, head)
        logger.debug("Inserted missing <head> into existing document")

    return html


def wrap_document(html: str, title: str = "") -> str:
    """
    Return a complete HTML document for the given markup.

    Args:
        html: Body fragment or full document
        title: Title used when the markup carries none (escaped)

    Returns:
        Document with doctype, <html>, <head> and <body>
    """
    html = html or ""
    title = html_escape(title.strip()) if title else ""
    if is_full_document(html):
        logger.debug("Input is a full document - only updating <body>")
        return _finish_full_document(html, title)

    head_extra = ""
    head_open = find_tag(html, 'head')
    if head_open is not None:
        head_close = find_tag(html, 'head', closing=True, start=head_open.end)
        if head_close is not None:
            head_title, head_extra = split_head(html[head_open.end:head_close.start])
            html = html[:head_open.start] + html[head_close.end:]
            title = head_title or title

    body_attrs = ""
    content = html
    body_open = find_tag(html, 'body')
    if body_open is not None:
        body_attrs = body_open.attrs
        body_close = find_last_tag(html, 'body', closing=True)
        end = body_close.start if body_close and body_close.start >= body_open.end else len(html)
        content = html[body_open.end:end]

    content = _strip_document_tags(content).strip()

    parts = [
        DOCTYPE,
        HTML_OPEN,
        '<head>',
        HEAD_META,
        f'<title>{title}</title>',
        MSO_SETTINGS,
        BASE_STYLESHEET,
    ]
    if head_extra:
        parts.append(head_extra)
    parts.extend([
        '</head>',
        body_tag(body_attrs),
        content,
        '</body>',
        '</html>',
    ])

    logger.debug("Wrapped fragment in a new document shell")
    return '\n'.join(parts) + '\n'
