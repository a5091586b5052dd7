"""
Strategy Runner - Extract Module

Given a target URL, picks a chain of strategies and runs them one at a
time, cheapest first, stopping at the first one that finds anything.

Usage:
    runner = build_runner()
    result = await runner.run(ExtractionRequest(url=url))
    print(result.to_dict())
"""

import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from .. import config
from ..crawler.browser_manager import BrowserManager
from ..crawler.metadata_probe import MetadataProbe
from ..crawler.video_detector import VideoDetector
from ..errors import AllStrategiesExhausted, MissingURLError
from ..models import ExtractionRequest, ExtractionResult, StrategyOutcome, StrategyResult
from .extractors import (
    BaseExtractor,
    RenderedExtractor,
    ResolverExtractor,
    StaticExtractor,
    TikTokExtractor,
)
from .url_detector import GENERIC, URLDetector, get_url_detector

logger = logging.getLogger(__name__)

# Platform tag -> ordered strategy names. Recognized platforms skip the
# static parse: their pages always need rendering.
CHAINS: Dict[str, Sequence[str]] = {
    'tiktok': ('tiktok', 'rendered'),
    GENERIC: ('static', 'rendered'),
}


class StrategyRunner:
    """
    Strategy Runner - Sequential Fallback Chain

    Each strategy reports a StrategyResult; the runner folds over the chain
    and only it turns an all-empty chain into an error for the caller.
    """

    def __init__(self, extractors: Sequence[BaseExtractor],
                 chains: Dict[str, Sequence[str]] = CHAINS,
                 url_detector: Optional[URLDetector] = None,
                 video_detector: Optional[VideoDetector] = None,
                 fallback: Sequence[str] = ()):
        """
        Initialize runner.

        Args:
            extractors: Available strategies (looked up by name)
            chains: Platform tag -> strategy names, must include 'generic'
            url_detector: Platform classifier
            video_detector: Deduplicator applied to the winning strategy's output
            fallback: Strategy names appended to the end of every chain
        """
        self.extractors = {e.name: e for e in extractors}
        self.url_detector = url_detector or get_url_detector()
        self.video_detector = video_detector or VideoDetector()

        if GENERIC not in chains:
            raise ValueError("A generic chain is required")

        self.chains: Dict[str, List[BaseExtractor]] = {}
        for platform, names in chains.items():
            chain = [self.extractors[n] for n in unique_names(list(names) + list(fallback))]
            if not chain:
                raise ValueError(f"Chain for {platform} is empty")
            self.chains[platform] = chain

    def select_chain(self, url: str) -> List[BaseExtractor]:
        platform = self.url_detector.detect(url)
        return self.chains.get(platform, self.chains[GENERIC])

    async def run(self, request: ExtractionRequest) -> ExtractionResult:
        """
        Run the selected chain for a request.

        Returns:
            Deduplicated candidates plus the tag of the strategy that found them

        Raises:
            MissingURLError: Request has no URL
            AllStrategiesExhausted: Every strategy came back empty or failed,
                counting a strategy whose candidates were all filtered as
                unplayable as empty
        """
        if not request.url:
            raise MissingURLError("No URL provided")

        chain = self.select_chain(request.url)
        logger.info(f"Extracting {request.url[:80]} via {' -> '.join(e.name for e in chain)}")

        attempts: List[StrategyResult] = []
        for extractor in chain:
            result = await self.run_strategy(extractor, request)
            attempts.append(result)

            if result.succeeded:
                candidates = await self.video_detector.refine(
                    list(result.candidates), filter_unplayable=request.filter_unplayable
                )
                if not candidates:
                    # Everything was filtered out; a later strategy may still find playable media
                    logger.info(f"[{extractor.name}] No playable candidates left, trying next strategy")
                    attempts[-1] = StrategyResult(strategy=extractor.name,
                                                  outcome=StrategyOutcome.EMPTY,
                                                  error='no playable candidates')
                    continue

                logger.info(f"[{extractor.name}] Returning {len(candidates)} videos")
                return ExtractionResult(
                    candidates=candidates,
                    strategy_used=extractor.name,
                    attempts=attempts,
                )

        error = AllStrategiesExhausted(request.url, attempts)
        logger.warning(str(error))
        raise error

    async def run_strategy(self, extractor: BaseExtractor, request: ExtractionRequest) -> StrategyResult:
        """
        Run one strategy under its own watchdog.

        The strategy's own deadlines may not fire (the rendering engine does
        not always deliver its timeouts), so the budget is enforced here too.
        """
        logger.info(f"[{extractor.name}] Trying strategy...")
        try:
            result = await asyncio.wait_for(extractor.run(request), timeout=extractor.timeout)
        except asyncio.TimeoutError:
            result = StrategyResult.failed(
                extractor.name,
                TimeoutError(f"timed out after {extractor.timeout:.0f}s"),
            )

        if result.outcome is StrategyOutcome.SUCCEEDED:
            logger.info(f"[{extractor.name}] Found {len(result.candidates)} candidates")
        elif result.outcome is StrategyOutcome.EMPTY:
            logger.info(f"[{extractor.name}] Produced no candidates")
        elif result.outcome is StrategyOutcome.LAUNCH_FAILED:
            logger.warning(f"[{extractor.name}] Browser launch failed: {result.error}")
        else:
            logger.warning(f"[{extractor.name}] Strategy failed: {result.error}")
        return result


def unique_names(names: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(names))


def build_runner(browser_manager: Optional[BrowserManager] = None) -> StrategyRunner:
    """Wire the default strategies from configuration."""
    browser = browser_manager or BrowserManager(headless=config.BROWSER_HEADLESS)

    extractors: List[BaseExtractor] = [
        StaticExtractor(),
        RenderedExtractor(browser),
        TikTokExtractor(browser),
    ]
    fallback: List[str] = []
    if config.ENABLE_RESOLVER_FALLBACK:
        extractors.append(ResolverExtractor())
        fallback.append(ResolverExtractor.name)

    probe = MetadataProbe(ffprobe_path=config.FFPROBE_PATH, timeout=config.PROBE_TIMEOUT)
    video_detector = VideoDetector(probe=probe, always_probe=config.PROBE_METADATA)

    return StrategyRunner(extractors, url_detector=URLDetector(),
                          video_detector=video_detector, fallback=fallback)
