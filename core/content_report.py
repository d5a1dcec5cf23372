"""
Content Report Module

Post-run analysis of a formatted email using BeautifulSoup: image and
link counts, alt text problems, UTM coverage and the visible text
volume that spam filters weigh against images.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import List
from urllib.parse import parse_qsl, urlsplit

from bs4 import BeautifulSoup, Comment

logger = logging.getLogger(__name__)

# Visible characters per image below which an email counts as image-heavy
MIN_TEXT_PER_IMAGE = 100

_INVISIBLE_TAGS = ['head', 'title', 'style', 'script', 'noscript']


@dataclass
class ContentReport:
    """Findings for one formatted email"""
    image_count: int = 0
    images_missing_alt: int = 0
    duplicate_alts: List[str] = field(default_factory=list)
    link_count: int = 0
    utm_tagged_links: int = 0
    visible_text_length: int = 0
    table_count: int = 0

    @property
    def image_heavy(self) -> bool:
        if self.image_count == 0:
            return False
        return self.visible_text_length < MIN_TEXT_PER_IMAGE * self.image_count

    def findings(self) -> List[str]:
        """Human readable problems worth surfacing as warnings."""
        problems = []
        if self.images_missing_alt:
            problems.append(f"{self.images_missing_alt} image(s) without alt text")
        if self.duplicate_alts:
            problems.append(f"Duplicate alt text: {', '.join(self.duplicate_alts)}")
        if self.image_heavy:
            problems.append(
                f"Image-heavy email: {self.visible_text_length} visible characters "
                f"for {self.image_count} image(s)"
            )
        return problems

    def summary(self) -> str:
        """One-line summary for status bars and CLI output."""
        return (
            f"{self.table_count} tables, {self.image_count} images, "
            f"{self.link_count} links ({self.utm_tagged_links} tagged), "
            f"{self.visible_text_length} chars of text"
        )


def _is_hidden(tag) -> bool:
    style = (tag.get('style') or "").replace(' ', '').lower()
    return 'mso-hide:all' in style or 'display:none' in style


def _has_utm(href: str) -> bool:
    try:
        query = urlsplit(href).query
    except ValueError:
        return False
    return any(key.lower().startswith('utm_') for key, _ in parse_qsl(query, keep_blank_values=True))


def analyze_html(html: str) -> ContentReport:
    """
    Analyze formatted email HTML.

    Args:
        html: Final email document (or fragment)

    Returns:
        ContentReport with counts and findings
    """
    soup = BeautifulSoup(html or "", 'html.parser')
    report = ContentReport()

    report.table_count = len(soup.find_all('table'))

    images = soup.find_all('img')
    report.image_count = len(images)
    alts = []
    for img in images:
        alt = (img.get('alt') or "").strip()
        if alt:
            alts.append(alt.lower())
        else:
            report.images_missing_alt += 1
    report.duplicate_alts = sorted(alt for alt, count in Counter(alts).items() if count > 1)

    links = [a for a in soup.find_all('a') if a.get('href')]
    report.link_count = len(links)
    report.utm_tagged_links = sum(1 for a in links if _has_utm(a['href']))

    # Everything below only strips nodes for the text measurement
    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()
    for tag in soup.find_all(_INVISIBLE_TAGS) + soup.find_all(_is_hidden):
        if not tag.decomposed:
            tag.decompose()

    text = ' '.join(soup.get_text(' ').split())
    report.visible_text_length = len(text)

    logger.debug(f"Content report: {report.summary()}")
    return report
