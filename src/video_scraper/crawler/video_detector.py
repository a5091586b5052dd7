"""
Video Detector - Video Scraper

Collapses candidate URLs that point at the same media asset.
"""

import asyncio
import dataclasses
import logging
from typing import Hashable, List, Optional

from ..errors import ProbeError
from ..models import Candidate

logger = logging.getLogger(__name__)


class VideoDetector:
    """
    Video Detector - Duplicate Filtering

    Two candidates are the same asset when both carry a size hint and a
    duration hint and the pairs match. Candidates missing either hint only
    collapse with an identical URL.
    """

    def __init__(self, probe=None, always_probe: bool = False):
        """
        Initialize video detector.

        Args:
            probe: Optional MetadataProbe used to measure missing durations
            always_probe: Measure every result, not only when filtering
        """
        self.probe = probe
        self.always_probe = always_probe

    @staticmethod
    def dedupe_key(candidate: Candidate) -> Hashable:
        if candidate.size_hint is not None and candidate.duration_hint is not None:
            return ('hints', candidate.size_hint, candidate.duration_hint)
        return ('url', candidate.url)

    def dedupe(self, candidates: List[Candidate]) -> List[Candidate]:
        """
        Remove duplicate candidates, keeping the first occurrence.

        Args:
            candidates: Candidates in discovery order

        Returns:
            Order-preserving list of distinct candidates
        """
        seen = set()
        result = []

        for candidate in candidates:
            key = self.dedupe_key(candidate)
            if key in seen:
                logger.debug(f"Dropping duplicate: {candidate.url[:60]}")
                continue
            seen.add(key)
            result.append(candidate)

        if len(result) < len(candidates):
            logger.info(f"Deduplicated {len(candidates)} candidates to {len(result)}")
        return result

    async def measure(self, candidates: List[Candidate]) -> List[Candidate]:
        """
        Fill missing duration hints by probing media metadata.

        A candidate whose probe fails is kept and marked unplayable.
        """
        if self.probe is None:
            return list(candidates)

        return list(await asyncio.gather(*(self._measure_one(c) for c in candidates)))

    async def _measure_one(self, candidate: Candidate) -> Candidate:
        if candidate.duration_hint is not None:
            return candidate

        try:
            meta = await self.probe.probe(candidate.url)
        except ProbeError as e:
            logger.info(f"Metadata probe failed for {candidate.url[:60]}: {e}")
            return dataclasses.replace(candidate, playable=False)

        size: Optional[int] = candidate.size_hint
        if size is None:
            size = meta.get('size')
        return dataclasses.replace(
            candidate,
            duration_hint=meta.get('duration'),
            size_hint=size,
            playable=True,
        )

    async def refine(self, candidates: List[Candidate], filter_unplayable: bool = False) -> List[Candidate]:
        """
        Measure missing durations (always when always_probe is set, otherwise
        only when filtering was requested), drop unplayable entries if asked,
        then dedupe.
        """
        candidates = list(candidates)
        if self.always_probe or filter_unplayable:
            candidates = await self.measure(candidates)

        if filter_unplayable:
            playable = [c for c in candidates if c.playable is not False]
            if len(playable) < len(candidates):
                logger.info(f"Filtered {len(candidates) - len(playable)} unplayable candidates")
            candidates = playable

        return self.dedupe(candidates)
