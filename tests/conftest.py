"""
Pytest configuration for Video Scraper tests.
"""

import asyncio
import os
import sys
from contextlib import asynccontextmanager
from types import SimpleNamespace

# Set test environment variables BEFORE any imports
os.environ['LOG_LEVEL'] = 'DEBUG'
os.environ['ENABLE_NETWORK_SNIFF'] = 'true'
os.environ['ENABLE_RESOLVER_FALLBACK'] = 'false'
os.environ['ENABLE_PROXY_RELAY'] = 'true'
os.environ['PROBE_METADATA'] = 'false'

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import pytest

from video_scraper.crawler.network_monitor import NetworkMonitor


class FakeSession:
    """
    Stand-in for BrowserSession.

    Navigation errors are consumed one per navigate() call. Every pause()
    replays `traffic` through any attached request observers, the way a
    playing video fires CDN requests while the page sits idle.
    """

    def __init__(self, manager, navigate_errors=(), blob_text=None, media=(),
                 traffic=(), hang=False, query_error=None):
        self.manager = manager
        self.navigate_errors = list(navigate_errors)
        self.blob_text = blob_text
        self.media = list(media)
        self.traffic = list(traffic)
        self.hang = hang
        self.query_error = query_error

        self.navigations = []
        self.pauses = []
        self.clicked = []
        self.listeners = []
        self.closed = False
        self.proxy = None

    async def navigate(self, url, wait_until='load', timeout=40.0):
        self.navigations.append((url, wait_until, timeout))
        if self.navigate_errors:
            error = self.navigate_errors.pop(0)
            if error is not None:
                raise error

    async def wait_for_text(self, selector, timeout):
        return self.blob_text

    async def query_media(self):
        if self.query_error is not None:
            raise self.query_error
        return list(self.media)

    def observe_requests(self, predicate):
        monitor = NetworkMonitor(predicate)
        callback = monitor.capture_urls()
        self.listeners.append(callback)
        monitor.attach(lambda: self.listeners.remove(callback))
        return monitor

    async def click(self, selector, timeout=2.0):
        self.clicked.append(selector)
        return True

    async def pause(self, seconds):
        self.pauses.append(seconds)
        if self.hang:
            await asyncio.sleep(3600)
        for url in self.traffic:
            for callback in list(self.listeners):
                callback(SimpleNamespace(url=url))

    async def close(self):
        if self.closed:
            return
        self.closed = True
        self.manager.closed_count += 1


class FakeBrowserManager:
    """Stand-in for BrowserManager that counts opened and closed sessions."""

    def __init__(self, launch_error=None, **session_options):
        self.launch_error = launch_error
        self.session_options = session_options
        self.opened_count = 0
        self.closed_count = 0
        self.sessions = []

    @property
    def open_sessions(self):
        return self.opened_count - self.closed_count

    async def launch(self, proxy=None, debug=False):
        if self.launch_error is not None:
            raise self.launch_error
        self.opened_count += 1
        session = FakeSession(self, **self.session_options)
        session.proxy = proxy
        self.sessions.append(session)
        return session

    @asynccontextmanager
    async def session(self, proxy=None, debug=False):
        session = await self.launch(proxy=proxy, debug=debug)
        try:
            yield session
        finally:
            await session.close()


@pytest.fixture
def fake_browser():
    """Factory for fake rendering capabilities."""
    return FakeBrowserManager

