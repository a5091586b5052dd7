"""
Extractors Package - Extraction Strategies

Contains one strategy per extraction technique:
- StaticExtractor: Raw HTML parse
- RenderedExtractor: Headless-browser DOM scrape
- TikTokExtractor: Embedded-data parse with network-sniff fallback
- ResolverExtractor: Third-party resolver (yt-dlp)
"""

from .base_extractor import BaseExtractor
from .static_extractor import StaticExtractor
from .rendered_extractor import RenderedExtractor
from .tiktok_extractor import TikTokExtractor
from .resolver_extractor import ResolverExtractor

__all__ = [
    'BaseExtractor',
    'StaticExtractor',
    'RenderedExtractor',
    'TikTokExtractor',
    'ResolverExtractor'
]
