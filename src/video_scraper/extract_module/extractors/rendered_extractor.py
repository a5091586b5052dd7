"""
Rendered Extractor - Extract Module

Load the page in a headless browser (JS executed), then re-scan the live
DOM with the same patterns as the static extractor.
"""

import logging
from typing import List

from ... import config
from ...errors import NavigationTimeout, RenderTimeout
from ...models import Candidate, ExtractionRequest
from .base_extractor import BaseExtractor

logger = logging.getLogger(__name__)


class RenderedExtractor(BaseExtractor):
    """Scrape media links from the rendered DOM"""

    name = 'rendered'
    timeout = config.RENDERED_STRATEGY_TIMEOUT

    def __init__(self, browser_manager,
                 page_load_timeout: float = config.PAGE_LOAD_TIMEOUT,
                 grace_period: float = config.RENDER_GRACE_PERIOD):
        """
        Initialize extractor.

        Args:
            browser_manager: BrowserManager providing rendering sessions
            page_load_timeout: Navigation deadline in seconds
            grace_period: Pause after load so lazy media elements can attach
        """
        self.browser = browser_manager
        self.page_load_timeout = page_load_timeout
        self.grace_period = grace_period

    async def extract(self, request: ExtractionRequest) -> List[Candidate]:
        """
        Render the page and collect media links.

        Raises:
            BrowserLaunchError: Engine failed to start
            RenderTimeout: Page never reached network idle
            NavigationError: Navigation failed outright
        """
        logger.info(f"Rendered extraction: {request.url[:80]}")

        async with self.browser.session(proxy=request.proxy, debug=request.debug) as session:
            try:
                await session.navigate(request.url, wait_until='networkidle',
                                       timeout=self.page_load_timeout)
            except NavigationTimeout as e:
                raise RenderTimeout(str(e)) from e
            if request.debug:
                logger.info(f"Page loaded: {request.url}")

            await session.pause(self.grace_period)

            links = await session.query_media()

        logger.info(f"Rendered extraction found {len(links)} links")
        return [Candidate.from_url(link) for link in links]
