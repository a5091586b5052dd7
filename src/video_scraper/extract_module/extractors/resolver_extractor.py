"""
Resolver Extractor - Extract Module

Last-resort strategy: hand the page URL to the yt-dlp resolver and collect
the media URLs it reports.
"""

import asyncio
import logging
from typing import Dict, List

import yt_dlp

from ... import config
from ...models import Candidate, ExtractionRequest
from ..media_links import unique
from .base_extractor import BaseExtractor

logger = logging.getLogger(__name__)


class ResolverExtractor(BaseExtractor):
    """Resolve media URLs with yt-dlp"""

    name = 'resolver'
    timeout = config.RESOLVER_STRATEGY_TIMEOUT

    async def extract(self, request: ExtractionRequest) -> List[Candidate]:
        """
        Resolve media URLs for a page.

        Args:
            request: The extraction request

        Returns:
            One candidate per distinct media URL yt-dlp reports
        """
        logger.info(f"Resolving with yt-dlp: {request.url[:80]}")

        # Run yt-dlp in thread to avoid blocking
        loop = asyncio.get_running_loop()

        def _extract():
            ydl_opts = {
                'quiet': True,
                'no_warnings': True,
                'skip_download': True,
            }
            if request.proxy:
                ydl_opts['proxy'] = request.proxy

            with yt_dlp.YoutubeDL(ydl_opts) as ydl:
                return ydl.extract_info(request.url, download=False)

        info = await loop.run_in_executor(None, _extract)
        urls = self.collect_urls(info or {})

        logger.info(f"yt-dlp resolved {len(urls)} URLs")
        return [Candidate.from_url(url) for url in urls]

    @staticmethod
    def collect_urls(info: Dict) -> List[str]:
        """
        Media URLs from a yt-dlp info dict.

        Playlists contribute each entry's URL; a single video its own URL,
        falling back to its requested or listed formats.
        """
        entries = info.get('entries')
        if entries:
            return unique(e.get('url') for e in entries if isinstance(e, dict))

        if info.get('url'):
            return [info['url']]

        formats = info.get('requested_formats') or info.get('formats') or []
        return unique(f.get('url') for f in formats if isinstance(f, dict))
