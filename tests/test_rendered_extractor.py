"""
Tests for the rendered-DOM extractor.
"""

import pytest

from video_scraper.errors import BrowserLaunchError, NavigationError, NavigationTimeout
from video_scraper.extract_module.extractors import RenderedExtractor
from video_scraper.models import ExtractionRequest, StrategyOutcome

URL = 'https://example.com/watch'


class TestRenderedExtractor:
    """Test cases for RenderedExtractor."""

    @pytest.mark.asyncio
    async def test_collects_media_after_grace_period(self, fake_browser):
        browser = fake_browser(media=['https://example.com/a.mp4', 'https://example.com/b.webm'])
        extractor = RenderedExtractor(browser, page_load_timeout=40, grace_period=5)

        candidates = await extractor.extract(ExtractionRequest(url=URL))

        session = browser.sessions[0]
        assert session.navigations == [(URL, 'networkidle', 40)]
        assert session.pauses == [5]
        assert [c.url for c in candidates] == ['https://example.com/a.mp4', 'https://example.com/b.webm']
        assert browser.open_sessions == 0

    @pytest.mark.asyncio
    async def test_proxy_forwarded_to_launch(self, fake_browser):
        browser = fake_browser(media=['https://example.com/a.mp4'])
        extractor = RenderedExtractor(browser, grace_period=0)

        await extractor.extract(ExtractionRequest(url=URL, proxy='http://proxy:8080'))

        assert browser.sessions[0].proxy == 'http://proxy:8080'

    @pytest.mark.asyncio
    async def test_empty_page(self, fake_browser):
        browser = fake_browser(media=[])
        extractor = RenderedExtractor(browser, grace_period=0)

        result = await extractor.run(ExtractionRequest(url=URL))

        assert result.outcome is StrategyOutcome.EMPTY
        assert browser.opened_count == browser.closed_count == 1

    @pytest.mark.asyncio
    async def test_navigation_timeout_becomes_render_timeout(self, fake_browser):
        browser = fake_browser(navigate_errors=[NavigationTimeout('too slow')])
        extractor = RenderedExtractor(browser, grace_period=0)

        result = await extractor.run(ExtractionRequest(url=URL))

        assert result.outcome is StrategyOutcome.EXHAUSTED
        assert result.error == 'too slow'
        assert browser.opened_count == browser.closed_count == 1

    @pytest.mark.asyncio
    async def test_navigation_error(self, fake_browser):
        browser = fake_browser(navigate_errors=[NavigationError('net::ERR_NAME_NOT_RESOLVED')])
        extractor = RenderedExtractor(browser, grace_period=0)

        result = await extractor.run(ExtractionRequest(url=URL))

        assert result.hard_failed
        assert browser.open_sessions == 0

    @pytest.mark.asyncio
    async def test_query_crash_still_closes(self, fake_browser):
        browser = fake_browser(query_error=RuntimeError('page crashed'))
        extractor = RenderedExtractor(browser, grace_period=0)

        result = await extractor.run(ExtractionRequest(url=URL))

        assert result.outcome is StrategyOutcome.EXHAUSTED
        assert browser.opened_count == browser.closed_count == 1

    @pytest.mark.asyncio
    async def test_launch_failure(self, fake_browser):
        browser = fake_browser(launch_error=BrowserLaunchError('no chromium'))
        extractor = RenderedExtractor(browser)

        result = await extractor.run(ExtractionRequest(url=URL))

        assert result.outcome is StrategyOutcome.LAUNCH_FAILED
        assert browser.opened_count == browser.closed_count == 0
