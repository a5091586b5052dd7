"""
TikTok Extractor - Extract Module

Platform-specific extraction for short-video pages, run as a small state
machine over one rendering session:

    NAVIGATING -> BLOB_WAIT -> BLOB_PARSE -> DONE
                      |            |
                      +------------+--> NETWORK_SNIFF -> DONE
    NAVIGATING --(attempts used up)--> FAILED

Every state has a bounded wait; the whole run shares one deadline.
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ... import config
from ...errors import NavigationError, NavigationTimeout
from ...models import Candidate, ExtractionRequest
from ..media_links import unique
from .base_extractor import BaseExtractor

logger = logging.getLogger(__name__)


class CrawlState(Enum):
    NAVIGATING = 'navigating'
    BLOB_WAIT = 'blob_wait'
    BLOB_PARSE = 'blob_parse'
    NETWORK_SNIFF = 'network_sniff'
    DONE = 'done'
    FAILED = 'failed'


TERMINAL_STATES = (CrawlState.DONE, CrawlState.FAILED)

# Playwright reads a timeout of 0 as "wait forever"
MIN_WAIT = 0.1


@dataclass
class CrawlContext:
    request: ExtractionRequest
    session: object
    deadline: float
    blob_text: Optional[str] = None
    urls: List[str] = field(default_factory=list)
    error: Optional[Exception] = None
    trail: List[CrawlState] = field(default_factory=list)


class TikTokExtractor(BaseExtractor):
    """Embedded-data parse with a network-sniff fallback"""

    name = 'tiktok'
    timeout = config.PLATFORM_STRATEGY_TIMEOUT

    BLOB_SELECTOR = 'script[id="__UNIVERSAL_DATA_FOR_REHYDRATION__"]'
    VIDEO_PATH = ('__DEFAULT_SCOPE__', 'webapp.video-detail', 'itemInfo', 'itemStruct', 'video')

    CDN_PATTERN = re.compile(r'tiktokcdn[\w.-]*\.com/video/', re.IGNORECASE)
    MIME_PATTERN = re.compile(r'mime_type=video_mp4', re.IGNORECASE)

    def __init__(self, browser_manager,
                 page_load_timeout: float = config.PAGE_LOAD_TIMEOUT,
                 navigation_attempts: int = config.NAVIGATION_ATTEMPTS,
                 retry_delay: float = config.NAVIGATION_RETRY_DELAY,
                 blob_wait_timeout: float = config.BLOB_WAIT_TIMEOUT,
                 sniff_window: float = config.SNIFF_WINDOW,
                 enable_sniff: bool = config.ENABLE_NETWORK_SNIFF):
        self.browser = browser_manager
        self.page_load_timeout = page_load_timeout
        self.navigation_attempts = max(1, navigation_attempts)
        self.retry_delay = retry_delay
        self.blob_wait_timeout = blob_wait_timeout
        self.sniff_window = sniff_window
        self.enable_sniff = enable_sniff

        self._handlers = {
            CrawlState.NAVIGATING: self._navigating,
            CrawlState.BLOB_WAIT: self._blob_wait,
            CrawlState.BLOB_PARSE: self._blob_parse,
            CrawlState.NETWORK_SNIFF: self._network_sniff,
        }

    async def extract(self, request: ExtractionRequest) -> List[Candidate]:
        """
        Run the state machine for one page.

        Returns:
            Candidates from the data blob, else from sniffed traffic

        Raises:
            BrowserLaunchError: Engine failed to start
            NavigationError: Page could not be loaded in the allowed attempts
        """
        logger.info(f"[tiktok] Extracting: {request.url[:80]}")
        loop = asyncio.get_running_loop()

        async with self.browser.session(proxy=request.proxy, debug=request.debug) as session:
            ctx = CrawlContext(request=request, session=session,
                               deadline=loop.time() + self.timeout)
            state = await self.run_states(ctx)

        if state is CrawlState.FAILED:
            raise ctx.error or NavigationError(f"Could not load {request.url}")

        logger.info(f"[tiktok] Found {len(ctx.urls)} videos via "
                    f"{' -> '.join(s.name for s in ctx.trail)}")
        return [Candidate.from_url(url) for url in unique(ctx.urls)]

    async def run_states(self, ctx: CrawlContext) -> CrawlState:
        state = CrawlState.NAVIGATING
        while state not in TERMINAL_STATES:
            ctx.trail.append(state)
            if ctx.request.debug:
                logger.info(f"[tiktok] State: {state.name}")
            state = await self._handlers[state](ctx)
        ctx.trail.append(state)
        return state

    def _remaining(self, ctx: CrawlContext) -> float:
        return ctx.deadline - asyncio.get_running_loop().time()

    # === States ===

    async def _navigating(self, ctx: CrawlContext) -> CrawlState:
        for attempt in range(1, self.navigation_attempts + 1):
            remaining = self._remaining(ctx)
            if remaining <= 0:
                ctx.error = ctx.error or NavigationTimeout(f"No time left to load {ctx.request.url}")
                break

            try:
                await ctx.session.navigate(ctx.request.url, wait_until='domcontentloaded',
                                           timeout=max(min(self.page_load_timeout, remaining), MIN_WAIT))
                return CrawlState.BLOB_WAIT
            except NavigationError as e:
                ctx.error = e
                logger.warning(f"[tiktok] Navigation attempt {attempt}/{self.navigation_attempts} failed: {e}")

            if attempt < self.navigation_attempts:
                await ctx.session.pause(self.retry_delay)

        return CrawlState.FAILED

    async def _blob_wait(self, ctx: CrawlContext) -> CrawlState:
        remaining = self._remaining(ctx)
        if remaining <= 0:
            logger.info("[tiktok] No time left to wait for the data blob, sniffing network")
            return CrawlState.NETWORK_SNIFF

        wait = max(min(self.blob_wait_timeout, remaining), MIN_WAIT)
        text = await ctx.session.wait_for_text(self.BLOB_SELECTOR, timeout=wait)
        if not text:
            logger.info("[tiktok] Data blob not found, sniffing network")
            return CrawlState.NETWORK_SNIFF

        ctx.blob_text = text
        return CrawlState.BLOB_PARSE

    async def _blob_parse(self, ctx: CrawlContext) -> CrawlState:
        urls = self.parse_blob(ctx.blob_text)
        if not urls:
            logger.info("[tiktok] Data blob had no video URLs, sniffing network")
            return CrawlState.NETWORK_SNIFF

        ctx.urls = urls
        return CrawlState.DONE

    async def _network_sniff(self, ctx: CrawlContext) -> CrawlState:
        if not self.enable_sniff:
            logger.info("[tiktok] Network sniffing disabled")
            return CrawlState.DONE

        monitor = ctx.session.observe_requests(self.is_cdn_media)
        try:
            # Autoplay or prefetch traffic may still be caught if this fails
            if not await ctx.session.click('video'):
                logger.debug("[tiktok] Could not trigger playback")
            await ctx.session.pause(self.sniff_window)
        finally:
            ctx.urls = monitor.stop()

        return CrawlState.DONE

    # === Helpers ===

    @classmethod
    def is_cdn_media(cls, url: str) -> bool:
        return bool(cls.CDN_PATTERN.search(url) and cls.MIME_PATTERN.search(url))

    @classmethod
    def parse_blob(cls, text: Optional[str]) -> List[str]:
        """
        Pull video URLs out of the embedded rehydration JSON.

        Order: every bitrate variant's URL list, then playAddr, then
        downloadAddr.

        Returns:
            URLs in blob order; empty when the blob is malformed or has no video
        """
        if not text:
            return []

        try:
            data = json.loads(text)
        except ValueError as e:
            logger.warning(f"[tiktok] Data blob is not valid JSON: {e}")
            return []

        video = data
        for key in cls.VIDEO_PATH:
            if not isinstance(video, dict):
                return []
            video = video.get(key)
        if not isinstance(video, dict):
            return []

        urls = []
        for variant in video.get('bitrateInfo') or []:
            if not isinstance(variant, dict):
                continue
            play_addr = variant.get('PlayAddr')
            if not isinstance(play_addr, dict):
                continue
            urls.extend(u for u in play_addr.get('UrlList') or [] if isinstance(u, str))

        for key in ('playAddr', 'downloadAddr'):
            value = video.get(key)
            if isinstance(value, str):
                urls.append(value)

        return unique(urls)
