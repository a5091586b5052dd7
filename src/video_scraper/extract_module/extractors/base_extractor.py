"""
Base Extractor - Extract Module

Base class for all extraction strategies.
"""

import logging
from abc import ABC, abstractmethod
from typing import List

from ...errors import BrowserLaunchError
from ...models import Candidate, ExtractionRequest, StrategyOutcome, StrategyResult

logger = logging.getLogger(__name__)


class BaseExtractor(ABC):
    """Base class for extraction strategies"""

    # Strategy tag reported to callers
    name: str = 'base'

    # Watchdog budget (seconds) enforced by the strategy runner
    timeout: float = 60.0

    @abstractmethod
    async def extract(self, request: ExtractionRequest) -> List[Candidate]:
        """
        Extract media candidates for a request.

        Args:
            request: The extraction request

        Returns:
            Discovered candidates, possibly empty

        Raises:
            ScraperError (or anything else) on failure; run() converts it
        """
        pass

    async def run(self, request: ExtractionRequest) -> StrategyResult:
        """
        Run the strategy and convert every outcome into a StrategyResult.

        Launch failures are reported separately from other crashes so the
        runner can log them apart. Cancellation is never swallowed.
        """
        try:
            candidates = await self.extract(request)
        except BrowserLaunchError as e:
            return StrategyResult.failed(self.name, e, StrategyOutcome.LAUNCH_FAILED)
        except Exception as e:
            logger.debug(f"[{self.name}] raised", exc_info=True)
            return StrategyResult.failed(self.name, e)

        return StrategyResult.found(self.name, candidates)
