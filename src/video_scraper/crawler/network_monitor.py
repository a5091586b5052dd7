"""
Network Monitor - Video Scraper

Records outgoing request URLs that match a predicate while a page is
open. Used by the network-sniff fallback of platform extractors.
"""

import logging
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class NetworkMonitor:
    """
    Network Monitor - URL Capture

    Capture matching URLs from outgoing requests. The captured set is live:
    it keeps growing until stop() is called.
    """

    def __init__(self, predicate: Callable[[str], bool]):
        """
        Initialize network monitor.

        Args:
            predicate: Returns True for request URLs worth recording
        """
        self.predicate = predicate
        self._urls: Dict[str, None] = {}  # insertion-ordered set
        self._detach: Optional[Callable[[], None]] = None
        self.stopped = False

    def capture_urls(self) -> Callable:
        """
        Return a callback for Playwright request handler.

        Returns:
            Callback function that can be passed to page.on('request')
        """
        def on_request(request):
            if self.stopped:
                return

            url = request.url
            if not self.predicate(url):
                return

            if url not in self._urls:
                self._urls[url] = None
                logger.debug(f"Captured media request: {url[:80]}")

        return on_request

    def attach(self, detach: Callable[[], None]):
        """Remember how to unhook this monitor from its page."""
        self._detach = detach

    def get_unique_urls(self) -> List[str]:
        """
        Return captured URLs in first-seen order.

        Returns:
            List of unique URLs
        """
        return list(self._urls)

    def stop(self) -> List[str]:
        """Stop recording and return everything captured so far."""
        if not self.stopped:
            self.stopped = True
            if self._detach is not None:
                try:
                    self._detach()
                except Exception as e:
                    logger.warning(f"Error detaching network monitor: {e}")
        return self.get_unique_urls()

    def reset(self):
        """Clear captured URLs."""
        self._urls.clear()
        logger.debug("Network monitor reset")
