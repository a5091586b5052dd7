"""
URL Detector - Extract Module

Classifies a target URL once per request to pick the extraction chain:
a recognized platform gets its platform-specific chain, everything else
the generic one.
"""

import logging
import re
from typing import Dict, Pattern

logger = logging.getLogger(__name__)

GENERIC = 'generic'


class URLDetector:
    """
    URL Detector - Platform Classification

    Pure and deterministic: the same URL always yields the same tag and
    nothing is fetched.
    """

    # Platform tag -> URL pattern
    PLATFORM_PATTERNS: Dict[str, Pattern] = {
        'tiktok': re.compile(r'tiktok\.com/', re.IGNORECASE),
    }

    def detect(self, url: str) -> str:
        """
        Detect platform for a URL.

        Args:
            url: URL to classify

        Returns:
            Platform tag (e.g. 'tiktok') or 'generic'
        """
        for platform, pattern in self.PLATFORM_PATTERNS.items():
            if pattern.search(url):
                logger.debug(f"URL platform: {platform}")
                return platform

        logger.debug("URL platform: generic")
        return GENERIC


# Singleton instance
_detector = None


def get_url_detector() -> URLDetector:
    """Get singleton URL detector instance."""
    global _detector
    if _detector is None:
        _detector = URLDetector()
    return _detector


def classify_url(url: str) -> str:
    return get_url_detector().detect(url)
