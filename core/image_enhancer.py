"""
Image Enhancer Module

Normalizes every <img> element:
- prefixes relative sources with the configured image base URL
- guarantees a non-empty alt text that is unique within the email
- forces a baseline inline style that renders consistently across clients

Pixel width/height attributes are never touched; slices exported at 2x
keep their pixel attributes and rely on max-width for fluid behaviour.
"""

import re
import html as html_lib
import logging
from typing import Optional, Set, Tuple
from urllib.parse import unquote

from .attributes import Attribute, AttributeList, merge_style
from .tag_scanner import TagToken, rewrite_tags
from utils.text_utils import excerpt_words, html_escape, join_url

logger = logging.getLogger(__name__)

IMAGE_BASE_STYLE = (
    "display:block;line-height:0;font-size:0;height:auto;max-width:100%;border:0;"
    "outline:none;text-decoration:none;-ms-interpolation-mode:bicubic;"
)

_ABSOLUTE_SRC_RE = re.compile(r'^(?:https?://|data:|cid:|//)', re.IGNORECASE)

# Name prefixes added by slicing/export tools (Photoshop, Figma, Fireworks...)
_EXPORT_PREFIX_RE = re.compile(
    r'^(?:slices?|index|images?|img|untitled|layer|artboard|group)(?=$|[\s._-]|\d)',
    re.IGNORECASE
)
_EXTENSION_RE = re.compile(r'\.[a-z0-9]+$', re.IGNORECASE)
_RETINA_SUFFIX_RE = re.compile(r'@\d+x$', re.IGNORECASE)
_SEPARATORS_RE = re.compile(r'[\s._-]+')


def is_relative_src(src: Optional[str]) -> bool:
    """Check whether an image source needs the base URL."""
    src = (src or "").strip()
    return bool(src) and not _ABSOLUTE_SRC_RE.match(src)


class AltTextRegistry:
    """
    Case-insensitive set of alt texts used during one enhancement pass.

    A new registry is created for every call to enhance_images, so
    concurrent runs never share one.
    """

    def __init__(self):
        self._used: Set[str] = set()

    def __contains__(self, alt: str) -> bool:
        return alt.lower() in self._used

    def __len__(self) -> int:
        return len(self._used)

    def claim(self, alt: str, explicit: bool, index: int) -> str:
        """
        Reserve an alt text, resolving collisions.

        Args:
            alt: Desired alt text
            explicit: True for author-supplied alts, False for generated ones
            index: 0-based position of the image in the document

        Returns:
            The alt text actually reserved
        """
        candidate = alt
        if explicit:
            counter = index + 1
            while candidate.lower() in self._used:
                candidate = f"{alt} {counter}"
                counter += 1
        else:
            counter = 2
            while candidate.lower() in self._used:
                candidate = f"{alt} variant {counter}"
                counter += 1

        self._used.add(candidate.lower())
        return candidate


def alt_from_filename(src: str) -> str:
    """
    Derive readable alt text from an image path.

    "images/hero-banner_03.png" -> "Hero Banner section 03"
    "slice_01.png"              -> "Email section 01"

    Returns:
        Alt text, or "" when nothing meaningful is left
    """
    if not src or src.lower().startswith(('data:', 'cid:')):
        return ""

    name = re.split(r'[?#]', src, maxsplit=1)[0]
    name = unquote(name.rstrip('/').rsplit('/', 1)[-1])
    name = _EXTENSION_RE.sub('', name)
    name = _RETINA_SUFFIX_RE.sub('', name)

    while True:
        stripped = _EXPORT_PREFIX_RE.sub('', name, count=1).lstrip(' ._-')
        if stripped == name:
            break
        name = stripped

    tokens = [token for token in _SEPARATORS_RE.split(name) if token]
    numbers = [token for token in tokens if token.isdigit()]
    words = [
        word.capitalize() if len(word) > 2 else word
        for word in tokens
        if not word.isdigit()
    ]

    if not words and not numbers:
        return ""

    label = ' '.join(words) or "Email"
    if numbers:
        return f"{label} section {numbers[-1]}"
    return label


def _choose_alt(existing: Optional[str], src: str, index: int, config) -> Tuple[str, bool]:
    """Pick the alt text for one image. Returns (alt, is_explicit)."""
    if existing is not None:
        decoded = html_lib.unescape(existing).strip()
        if decoded:
            return decoded, True

    from_file = alt_from_filename(src)
    if from_file:
        return from_file, False

    excerpt = excerpt_words(config.balance_text or config.preheader_text)
    if excerpt:
        return f"{excerpt} {index + 1}", False

    return f"Email content image {index + 1}", False


def enhance_images(html: str, config) -> str:
    """
    Rewrite every <img> tag as <img src alt style ...other attributes>.

    Args:
        html: Document text
        config: TransformConfig (uses image_base_url, balance_text,
            preheader_text)

    Returns:
        Document with enhanced images
    """
    registry = AltTextRegistry()
    position = 0
    rebased = 0

    def enhance(token: TagToken) -> Optional[str]:
        nonlocal position, rebased
        if token.closing:
            return None

        index = position
        position += 1

        attrs = AttributeList.parse(token.attrs)
        src = (attrs.get('src') or "").strip()
        final_src = src
        if config.image_base_url and is_relative_src(src):
            final_src = join_url(config.image_base_url, src)
            rebased += 1

        alt, explicit = _choose_alt(attrs.get('alt'), src, index, config)
        alt = registry.claim(alt, explicit, index)

        ordered = []
        if attrs.has('src'):
            ordered.append(Attribute('src', final_src))
        ordered.append(Attribute('alt', html_escape(alt)))
        ordered.append(Attribute('style', merge_style(attrs.get('style'), IMAGE_BASE_STYLE)))
        ordered.extend(
            attr for attr in attrs
            if attr.key not in ('src', 'alt', 'style')
        )

        closer = ' />' if token.self_closing else '>'
        return f"<img{AttributeList(ordered).render()}{closer}"

    html = rewrite_tags(html, ['img'], enhance)
    logger.debug(f"Enhanced {position} image(s), rebased {rebased} source(s)")
    return html
