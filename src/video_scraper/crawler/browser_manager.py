"""
Browser Manager - Video Scraper

Launches Playwright rendering sessions. Each session (playwright driver,
browser, context, page) is owned by exactly one strategy invocation and is
released through BrowserManager.session() on every exit path.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Callable, List, Optional, Sequence

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from ..errors import BrowserLaunchError, NavigationError, NavigationTimeout
from ..extract_module.media_links import MEDIA_QUERY_SCRIPT, unique
from .network_monitor import NetworkMonitor
from .user_agents import USER_AGENTS, pick_user_agent

logger = logging.getLogger(__name__)

VIEWPORT = {'width': 1280, 'height': 800}
LOCALE = 'en-US'


class BrowserSession:
    """
    One rendering session: navigate, wait, query the DOM, observe requests.

    Created by BrowserManager.launch(); close() is safe to call twice but
    only counts once.
    """

    def __init__(self, manager, playwright, browser, context, page,
                 user_agent: str, debug: bool = False):
        self.manager = manager
        self.playwright = playwright
        self.browser = browser
        self.context = context
        self.page = page
        self.user_agent = user_agent
        self.debug = debug
        self.closed = False

        if debug:
            self._attach_debug_listeners()

    def _attach_debug_listeners(self):
        """Log console output, failed sub-requests and bad responses."""
        def on_console(msg):
            logger.info(f"[Browser console] {msg.text}")

        def on_request_failed(request):
            logger.warning(f"[Request failed] {request.url} {request.failure}")

        def on_response(response):
            if not response.ok:
                logger.warning(f"[Bad response] {response.url} {response.status}")

        self.page.on('console', on_console)
        self.page.on('requestfailed', on_request_failed)
        self.page.on('response', on_response)
        logger.info(f"Debug session using user-agent: {self.user_agent}")

    async def navigate(self, url: str, wait_until: str = 'load',
                       timeout: float = 40.0) -> None:
        """
        Navigate to a URL.

        Args:
            url: Page to load
            wait_until: Playwright load state ('domcontentloaded', 'networkidle', ...)
            timeout: Deadline in seconds

        Raises:
            NavigationTimeout: Load state not reached in time
            NavigationError: Any other navigation failure
        """
        logger.info(f"Navigating to: {url}")
        try:
            await self.page.goto(url, wait_until=wait_until, timeout=timeout * 1000)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout(f"Navigation to {url} timed out after {timeout:.0f}s") from e
        except PlaywrightError as e:
            raise NavigationError(f"Navigation to {url} failed: {e.message}") from e

    async def wait_for_text(self, selector: str, timeout: float) -> Optional[str]:
        """
        Wait for an element to be attached and return its text content.

        Returns:
            Text content, or None if the element never appeared
        """
        try:
            element = await self.page.wait_for_selector(
                selector, state='attached', timeout=timeout * 1000
            )
        except PlaywrightTimeoutError:
            return None
        if element is None:
            return None
        return await element.text_content()

    async def query_media(self) -> List[str]:
        """Scan the live DOM for media sources and media-file anchors."""
        found = await self.page.evaluate(MEDIA_QUERY_SCRIPT)
        return unique(found or [])

    def observe_requests(self, predicate: Callable[[str], bool]) -> NetworkMonitor:
        """
        Start recording outgoing request URLs matching predicate.

        Returns:
            A live NetworkMonitor; call stop() to detach it
        """
        monitor = NetworkMonitor(predicate)
        callback = monitor.capture_urls()
        self.page.on('request', callback)
        monitor.attach(lambda: self.page.remove_listener('request', callback))
        return monitor

    async def click(self, selector: str, timeout: float = 2.0) -> bool:
        """Best-effort click; returns False instead of raising."""
        try:
            await self.page.click(selector, timeout=timeout * 1000)
            return True
        except PlaywrightError as e:
            logger.debug(f"Click on {selector} failed: {e.message}")
            return False

    async def pause(self, seconds: float):
        await asyncio.sleep(seconds)

    async def close(self):
        """Close context, browser and driver."""
        if self.closed:
            return
        self.closed = True

        for name, closer in (
            ('context', self.context.close),
            ('browser', self.browser.close),
            ('playwright', self.playwright.stop),
        ):
            try:
                await closer()
            except Exception as e:
                logger.warning(f"Error closing {name}: {e}")

        self.manager.closed_count += 1
        logger.debug("Rendering session closed")


class BrowserManager:
    """
    Browser Manager - Playwright Integration

    Launches one isolated browser per session with a randomized client
    identity. Keeps open/close counters so leaks are observable.
    """

    def __init__(self, headless: bool = True, user_agents: Sequence[str] = USER_AGENTS):
        """Initialize browser manager."""
        self.headless = headless
        self.user_agents = tuple(user_agents)
        self.opened_count = 0
        self.closed_count = 0

    @property
    def open_sessions(self) -> int:
        return self.opened_count - self.closed_count

    async def launch(self, proxy: Optional[str] = None, debug: bool = False) -> BrowserSession:
        """
        Launch a rendering session.

        Args:
            proxy: Optional proxy server URL for the browser
            debug: Attach diagnostic listeners

        Returns:
            Ready BrowserSession with a blank page

        Raises:
            BrowserLaunchError: Engine failed to start
        """
        user_agent = pick_user_agent(self.user_agents)
        launch_args = {
            'headless': self.headless,
            'args': [
                '--disable-dev-shm-usage',  # Reduce RAM
                '--disable-software-rasterizer',
                '--no-sandbox',  # If running as root
            ],
        }
        if proxy:
            launch_args['proxy'] = {'server': proxy}

        playwright = None
        browser = None
        try:
            playwright = await async_playwright().start()
            browser = await playwright.chromium.launch(**launch_args)
            context = await browser.new_context(
                user_agent=user_agent,
                viewport=VIEWPORT,
                locale=LOCALE,
            )
            page = await context.new_page()
        except asyncio.CancelledError:
            # Watchdog or client disconnect fired mid-launch
            logger.info("Browser launch cancelled, cleaning up")
            await self._discard(playwright, browser)
            raise
        except Exception as e:
            logger.error(f"Failed to launch browser: {e}")
            await self._discard(playwright, browser)
            raise BrowserLaunchError(f"Browser launch failed: {e}") from e

        self.opened_count += 1
        logger.info("Playwright browser launched")
        logger.debug(f"Session user-agent: {user_agent}")
        return BrowserSession(self, playwright, browser, context, page, user_agent, debug)

    async def _discard(self, playwright, browser):
        """Tear down a half-launched session."""
        if browser is not None:
            try:
                await browser.close()
            except Exception as e:
                logger.warning(f"Error closing browser: {e}")
        if playwright is not None:
            try:
                await playwright.stop()
            except Exception as e:
                logger.warning(f"Error stopping playwright: {e}")

    @asynccontextmanager
    async def session(self, proxy: Optional[str] = None, debug: bool = False):
        """
        Scoped rendering session, closed on success, error, timeout and
        cancellation alike.
        """
        session = await self.launch(proxy=proxy, debug=debug)
        try:
            yield session
        finally:
            await session.close()
