"""
Static Extractor - Extract Module

Fetch raw HTML and parse it for direct video references. No rendering,
so client-injected players are invisible here.
"""

import asyncio
import logging
from typing import List

import aiohttp

from ... import config
from ...errors import FetchError, ParseError
from ...models import Candidate, ExtractionRequest
from ..media_links import extract_media_links
from .base_extractor import BaseExtractor

logger = logging.getLogger(__name__)


class StaticExtractor(BaseExtractor):
    """Parse server-rendered markup for media links"""

    name = 'static'
    timeout = config.STATIC_STRATEGY_TIMEOUT

    def __init__(self, fetch_timeout: float = config.STATIC_FETCH_TIMEOUT):
        self.fetch_timeout = fetch_timeout

    async def extract(self, request: ExtractionRequest) -> List[Candidate]:
        """
        Fetch the page and collect media links.

        Args:
            request: The extraction request

        Returns:
            Candidates found in the markup

        Raises:
            FetchError: Network failure or non-2xx status
        """
        logger.info(f"Static extraction: {request.url[:80]}")

        html, final_url = await self.fetch_html(request.url)

        try:
            links = extract_media_links(html, final_url)
        except ParseError as e:
            # Partial markup is common; treat an unparseable page as empty
            logger.warning(f"Could not parse markup from {request.url[:60]}: {e}")
            return []

        logger.info(f"Static extraction found {len(links)} links")
        return [Candidate.from_url(link) for link in links]

    async def fetch_html(self, url: str):
        """
        GET a page.

        Args:
            url: Page URL

        Returns:
            Tuple of (markup, final URL after redirects)
        """
        timeout = aiohttp.ClientTimeout(total=self.fetch_timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url, allow_redirects=True) as response:
                    if not 200 <= response.status < 300:
                        raise FetchError(f"HTTP {response.status} fetching {url}")
                    html = await response.text(errors='replace')
                    return html, str(response.url)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Failed to fetch {url[:60]}: {e}")
            raise FetchError(f"Failed to fetch {url}: {e}") from e
