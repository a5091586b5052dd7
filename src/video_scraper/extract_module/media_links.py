"""
Media Links - Extract Module

Patterns shared by the static and rendered-DOM extractors: media element
sources, nested <source> children, and anchors pointing at media files.
"""

import logging
import re
from typing import Iterable, List
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from ..errors import ParseError

logger = logging.getLogger(__name__)

MEDIA_EXTENSIONS = ('mp4', 'webm', 'ogg')

MEDIA_LINK = re.compile(r'\.(?:mp4|webm|ogg)(?:\?.*)?$', re.IGNORECASE)

# Runs inside the rendered page; mirrors extract_media_links() below.
MEDIA_QUERY_SCRIPT = r"""
() => {
    const found = [];
    document.querySelectorAll('video').forEach(video => {
        if (video.src) found.push(video.src);
        video.querySelectorAll('source').forEach(source => {
            if (source.src) found.push(source.src);
        });
    });
    document.querySelectorAll('a').forEach(a => {
        if (a.href && /\.(mp4|webm|ogg)(\?.*)?$/i.test(a.href)) found.push(a.href);
    });
    return Array.from(new Set(found));
}
"""


def is_media_link(href: str) -> bool:
    return bool(href) and MEDIA_LINK.search(href.strip()) is not None


def unique(urls: Iterable[str]) -> List[str]:
    """Drop exact duplicates, keeping first-seen order."""
    return list(dict.fromkeys(u for u in urls if u))


def extract_media_links(html: str, base_url: str) -> List[str]:
    """
    Find direct video references in raw markup.

    Args:
        html: Page markup (may be partial or malformed)
        base_url: URL the markup was served from, for resolving relative links

    Returns:
        Absolute media URLs in document order, without duplicates

    Raises:
        ParseError: The parser gave up on the markup
    """
    try:
        soup = BeautifulSoup(html, 'html.parser')
    except Exception as e:
        raise ParseError(f"Unparseable markup: {e}") from e
    found = []

    for video in soup.find_all('video'):
        src = video.get('src')
        if src:
            found.append(urljoin(base_url, src.strip()))
        for source in video.find_all('source'):
            src = source.get('src')
            if src:
                found.append(urljoin(base_url, src.strip()))

    for anchor in soup.find_all('a', href=True):
        href = anchor['href']
        if is_media_link(href):
            found.append(urljoin(base_url, href.strip()))

    return unique(found)
